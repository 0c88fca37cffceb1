"""Auth tests.

Covers:
1. Registration + duplicate prevention
2. Login → JWT tokens
3. Refresh token rotation and reuse detection
4. Logout
5. Password verification and the /me endpoint
6. Google sign-in with the ID-token verifier patched
"""

import uuid
from unittest.mock import patch

import pytest

from traveleasily.auth.jwt import (
    REFRESH,
    TokenError,
    create_access_token,
    create_refresh_token,
    verify_token,
)


# ═══════════════════════════════════════════════════════════
# Registration
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_register_user(client):
    """Register returns the public user fields plus a token pair."""
    email = f"test-{uuid.uuid4().hex[:8]}@example.com"
    r = await client.post(
        "/api/v1/auth/register",
        json={
            "email": email,
            "user_name": "Test User",
            "password": "secure_password_123",
        },
    )
    assert r.status_code == 201
    user = r.json()
    assert user["email"] == email
    assert user["user_name"] == "Test User"
    assert user["access_token"]
    assert user["refresh_token"]
    assert "password_hash" not in user
    assert "refresh_tokens" not in user


@pytest.mark.asyncio
async def test_register_duplicate_email(client):
    """Can't register with the same email twice."""
    body = {
        "email": f"dup-{uuid.uuid4().hex[:8]}@example.com",
        "user_name": "User 1",
        "password": "password_123",
    }

    r1 = await client.post("/api/v1/auth/register", json=body)
    assert r1.status_code == 201

    r2 = await client.post("/api/v1/auth/register", json=body)
    assert r2.status_code == 409


@pytest.mark.asyncio
async def test_register_short_password(client):
    """Password must be at least 8 characters."""
    r = await client.post(
        "/api/v1/auth/register",
        json={
            "email": f"short-{uuid.uuid4().hex[:8]}@example.com",
            "user_name": "Short",
            "password": "abc",
        },
    )
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_register_missing_email(client):
    r = await client.post(
        "/api/v1/auth/register",
        json={"user_name": "No Email", "password": "password_123"},
    )
    assert r.status_code == 422


# ═══════════════════════════════════════════════════════════
# Login
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_login_success(client, register_user):
    """Login with valid credentials returns tokens."""
    user = await register_user()
    r = await client.post(
        "/api/v1/auth/login",
        json={"email": user["email"], "password": user["password"]},
    )
    assert r.status_code == 200
    data = r.json()
    assert data["id"] == user["id"]
    assert data["token_type"] == "bearer"
    assert verify_token(data["access_token"])["sub"] == user["id"]


@pytest.mark.asyncio
async def test_login_wrong_password(client, register_user):
    user = await register_user()
    r = await client.post(
        "/api/v1/auth/login",
        json={"email": user["email"], "password": "not-the-password"},
    )
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_login_unknown_email(client):
    r = await client.post(
        "/api/v1/auth/login",
        json={"email": "nobody@example.com", "password": "password_123"},
    )
    assert r.status_code == 401


# ═══════════════════════════════════════════════════════════
# Refresh
# ═══════════════════════════════════════════════════════════


def _bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.mark.asyncio
async def test_refresh_rotates_token(client, register_user):
    """A refresh token is exchanged for a new pair and stops working."""
    user = await register_user()
    r = await client.post("/api/v1/auth/refresh", headers=_bearer(user["refresh_token"]))
    assert r.status_code == 200
    data = r.json()
    assert data["refresh_token"] != user["refresh_token"]
    assert verify_token(data["access_token"])["sub"] == user["id"]

    r = await client.post("/api/v1/auth/refresh", headers=_bearer(data["refresh_token"]))
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_refresh_reuse_revokes_all_tokens(client, register_user):
    """Replaying a rotated token revokes every token of that user."""
    user = await register_user()
    first = await client.post(
        "/api/v1/auth/refresh", headers=_bearer(user["refresh_token"])
    )
    rotated = first.json()["refresh_token"]

    replay = await client.post(
        "/api/v1/auth/refresh", headers=_bearer(user["refresh_token"])
    )
    assert replay.status_code == 403

    # The legitimately rotated token was revoked too
    r = await client.post("/api/v1/auth/refresh", headers=_bearer(rotated))
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_refresh_missing_header(client):
    r = await client.post("/api/v1/auth/refresh")
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_refresh_rejects_access_token(client, register_user):
    """Access tokens are signed with a different secret and type."""
    user = await register_user()
    r = await client.post("/api/v1/auth/refresh", headers=_bearer(user["access_token"]))
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_refresh_unknown_user(client):
    token = create_refresh_token(str(uuid.uuid4()))
    r = await client.post("/api/v1/auth/refresh", headers=_bearer(token))
    assert r.status_code == 404


# ═══════════════════════════════════════════════════════════
# Logout
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_logout_revokes_refresh_token(client, register_user):
    user = await register_user()
    r = await client.post("/api/v1/auth/logout", headers=_bearer(user["refresh_token"]))
    assert r.status_code == 200
    assert r.json() == {"detail": "Logged out"}

    r = await client.post("/api/v1/auth/refresh", headers=_bearer(user["refresh_token"]))
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_logout_twice_is_reuse(client, register_user):
    user = await register_user()
    await client.post("/api/v1/auth/logout", headers=_bearer(user["refresh_token"]))
    r = await client.post("/api/v1/auth/logout", headers=_bearer(user["refresh_token"]))
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_logout_invalid_token(client):
    r = await client.post("/api/v1/auth/logout", headers=_bearer("not-a-jwt"))
    assert r.status_code == 403


# ═══════════════════════════════════════════════════════════
# Password check and /me
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_verify_password(client, register_user):
    user = await register_user()
    url = f"/api/v1/auth/verify-password/{user['id']}"

    r = await client.post(url, json={"current_password": user["password"]}, headers=user["headers"])
    assert r.status_code == 200
    assert r.json() == {"is_valid": True}

    r = await client.post(url, json={"current_password": "wrong-one"}, headers=user["headers"])
    assert r.json() == {"is_valid": False}


@pytest.mark.asyncio
async def test_verify_password_unknown_user(client, register_user):
    user = await register_user()
    r = await client.post(
        f"/api/v1/auth/verify-password/{uuid.uuid4()}",
        json={"current_password": "whatever1"},
        headers=user["headers"],
    )
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_me_with_token(client, register_user):
    """/me returns the user behind the access token."""
    user = await register_user(user_name="Me Myself")
    r = await client.get("/api/v1/auth/me", headers=user["headers"])
    assert r.status_code == 200
    assert r.json()["id"] == user["id"]
    assert r.json()["user_name"] == "Me Myself"


@pytest.mark.asyncio
async def test_me_without_token(client):
    r = await client.get("/api/v1/auth/me")
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_me_with_garbage_token(client):
    r = await client.get("/api/v1/auth/me", headers=_bearer("garbage"))
    assert r.status_code == 401


# ═══════════════════════════════════════════════════════════
# Token helpers
# ═══════════════════════════════════════════════════════════


def test_verify_token_checks_type():
    user_id = str(uuid.uuid4())
    assert verify_token(create_refresh_token(user_id), REFRESH)["sub"] == user_id
    with pytest.raises(TokenError):
        verify_token(create_refresh_token(user_id))


def test_refresh_tokens_are_unique():
    user_id = str(uuid.uuid4())
    assert create_refresh_token(user_id) != create_refresh_token(user_id)


def test_expired_token_rejected():
    token = create_access_token(str(uuid.uuid4()), expires_minutes=-1)
    with pytest.raises(TokenError, match="expired"):
        verify_token(token)


# ═══════════════════════════════════════════════════════════
# Google sign-in
# ═══════════════════════════════════════════════════════════

VERIFIER = "google.oauth2.id_token.verify_oauth2_token"


@pytest.mark.asyncio
async def test_google_signin_creates_user(client):
    """First sign-in creates a passwordless account from the token claims."""
    email = f"g-{uuid.uuid4().hex[:8]}@gmail.com"
    claims = {"email": email, "name": "Gina", "picture": "https://img.example.com/g.png"}
    with patch(VERIFIER, return_value=claims) as verify:
        r = await client.post("/api/v1/auth/google", json={"credential": "id-token"})
    assert r.status_code == 200
    data = r.json()
    assert data["email"] == email
    assert data["user_name"] == "Gina"
    assert data["img_url"] == "https://img.example.com/g.png"
    assert verify_token(data["access_token"])["sub"] == data["id"]
    assert verify.call_args.args[0] == "id-token"

    # No password was set, so password login never matches
    r = await client.post(
        "/api/v1/auth/login", json={"email": email, "password": "password_123"}
    )
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_google_signin_existing_user(client, register_user):
    user = await register_user(user_name="Already Here")
    with patch(VERIFIER, return_value={"email": user["email"], "name": "Other"}):
        r = await client.post("/api/v1/auth/google", json={"credential": "id-token"})
    assert r.status_code == 200
    assert r.json()["id"] == user["id"]
    assert r.json()["user_name"] == "Already Here"

    # The issued refresh token joins the user's list and can be rotated
    r = await client.post(
        "/api/v1/auth/refresh", headers=_bearer(r.json()["refresh_token"])
    )
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_google_signin_invalid_credential(client):
    with patch(VERIFIER, side_effect=ValueError("Wrong number of segments")):
        r = await client.post("/api/v1/auth/google", json={"credential": "bogus"})
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_google_signin_without_email(client):
    with patch(VERIFIER, return_value={"sub": "12345"}):
        r = await client.post("/api/v1/auth/google", json={"credential": "id-token"})
    assert r.status_code == 400
