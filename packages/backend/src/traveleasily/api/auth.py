"""Auth API: registration, login, token rotation, logout.

- POST /auth/register → create account, returns user + tokens
- POST /auth/login → email/password → user + tokens
- POST /auth/google → Google ID token → user (created on first use) + tokens
- POST /auth/refresh → Bearer refresh token → new access/refresh pair
- POST /auth/logout → Bearer refresh token → revoke it
- POST /auth/verify-password/:id → check a user's current password
- GET /auth/me → current user info

Refresh tokens are single-use. Each user row keeps the list of tokens
still valid; presenting a correctly signed token that is no longer on
the list means it was already used (or stolen), so every token of that
user is revoked.
"""

import asyncio
import uuid
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Header, HTTPException
from google.auth.exceptions import GoogleAuthError
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from traveleasily.auth.dependencies import (
    CurrentIdentity,
    bearer_token,
    get_current_user,
)
from traveleasily.auth.jwt import (
    REFRESH,
    TokenError,
    create_access_token,
    create_refresh_token,
    verify_token,
)
from traveleasily.auth.password import hash_password, verify_password
from traveleasily.config import settings
from traveleasily.db.engine import get_db
from traveleasily.db.models import User
from traveleasily.schemas.user import UserRead

logger = structlog.get_logger()
router = APIRouter(prefix="/auth")


class RefreshTokenReuseError(Exception):
    """Raised when a validly signed refresh token is not on the user's list."""
    pass


# ─── Schemas ─────────────────────────────────────────────


class RegisterRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=8)
    user_name: str = Field(..., min_length=1, max_length=255)
    img_url: Optional[str] = None


class LoginRequest(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class AuthResponse(UserRead, TokenResponse):
    """User fields plus a fresh token pair."""


class VerifyPasswordRequest(BaseModel):
    current_password: str


class GoogleSigninRequest(BaseModel):
    credential: str = Field(..., min_length=1)  # Google ID token (JWT)


# ─── Helpers ─────────────────────────────────────────────


async def _issue_tokens(db: AsyncSession, user: User) -> TokenResponse:
    """Sign a new token pair and remember the refresh token on the user."""
    access_token = create_access_token(str(user.id))
    refresh_token = create_refresh_token(str(user.id))
    user.refresh_tokens = [*(user.refresh_tokens or []), refresh_token]
    await db.commit()
    return TokenResponse(access_token=access_token, refresh_token=refresh_token)


def _auth_response(user: User, tokens: TokenResponse) -> AuthResponse:
    return AuthResponse(
        id=user.id,
        email=user.email,
        user_name=user.user_name,
        img_url=user.img_url,
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
    )


def _require_refresh_token(authorization: Optional[str]) -> str:
    token = bearer_token(authorization)
    if not token:
        raise HTTPException(status_code=401, detail="Missing refresh token")
    return token


async def _owner_of_refresh_token(db: AsyncSession, token: str) -> User:
    """Resolve the user a refresh token belongs to.

    Raises TokenError for a bad signature/expiry, HTTPException(404) for
    a vanished user, and RefreshTokenReuseError (after revoking every
    token of the user) when the token is no longer on their list.
    """
    payload = verify_token(token, REFRESH)
    user = await db.get(User, uuid.UUID(payload["sub"]))
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    if token not in (user.refresh_tokens or []):
        user.refresh_tokens = []
        await db.commit()
        logger.warning("auth.refresh_token_reuse", user_id=str(user.id))
        raise RefreshTokenReuseError("Refresh token is no longer valid")
    return user


# ─── Register ────────────────────────────────────────────


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(body: RegisterRequest, db: AsyncSession = Depends(get_db)):
    """Create a new user account and sign them in."""
    q = select(User).where(User.email == body.email)
    result = await db.execute(q)
    if result.scalars().first():
        raise HTTPException(status_code=409, detail="Email already registered")

    user = User(
        email=body.email,
        user_name=body.user_name,
        img_url=body.img_url,
        password_hash=hash_password(body.password),
        refresh_tokens=[],
    )
    db.add(user)
    await db.flush()

    tokens = await _issue_tokens(db, user)
    logger.info("auth.registered", user_id=str(user.id))
    return _auth_response(user, tokens)


# ─── Login ───────────────────────────────────────────────


@router.post("/login", response_model=AuthResponse)
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Login with email and password → user + JWT tokens."""
    q = select(User).where(User.email == body.email)
    result = await db.execute(q)
    user = result.scalars().first()

    if not user or not verify_password(body.password, user.password_hash):
        logger.info("auth.login_failed", email=body.email)
        raise HTTPException(status_code=401, detail="Email or password incorrect")

    tokens = await _issue_tokens(db, user)
    logger.info("auth.login", user_id=str(user.id))
    return _auth_response(user, tokens)


# ─── Google sign-in ─────────────────────────────────────


async def _verify_google_credential(credential: str) -> dict:
    """Check the ID token's signature, expiry and audience. Raises ValueError."""
    return await asyncio.to_thread(
        id_token.verify_oauth2_token,
        credential,
        google_requests.Request(),
        settings.google_client_id or None,
    )


@router.post("/google", response_model=AuthResponse)
async def google_signin(body: GoogleSigninRequest, db: AsyncSession = Depends(get_db)):
    """Sign in with a Google ID token, creating the account on first use.

    Accounts created here have no password; password login never
    matches them.
    """
    try:
        claims = await _verify_google_credential(body.credential)
    except ValueError as e:
        logger.info("auth.google_rejected", error=str(e))
        raise HTTPException(status_code=400, detail="Invalid Google credential")
    except GoogleAuthError as e:
        logger.warning("auth.google_unavailable", error=str(e))
        raise HTTPException(status_code=502, detail="Google sign-in is unavailable")

    email = claims.get("email")
    if not email:
        raise HTTPException(status_code=400, detail="Email not provided by Google")

    result = await db.execute(select(User).where(User.email == email))
    user = result.scalars().first()
    if not user:
        user = User(
            email=email,
            user_name=claims.get("name") or email.split("@")[0],
            img_url=claims.get("picture"),
            password_hash=None,
            refresh_tokens=[],
        )
        db.add(user)
        await db.flush()
        logger.info("auth.google_registered", user_id=str(user.id))

    tokens = await _issue_tokens(db, user)
    logger.info("auth.google_login", user_id=str(user.id))
    return _auth_response(user, tokens)


# ─── Refresh ────────────────────────────────────────────


@router.post("/refresh", response_model=TokenResponse)
async def refresh(
    authorization: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
):
    """Exchange a refresh token for a new access + refresh pair."""
    token = _require_refresh_token(authorization)
    try:
        user = await _owner_of_refresh_token(db, token)
    except (TokenError, RefreshTokenReuseError) as e:
        raise HTTPException(status_code=403, detail=str(e))

    access_token = create_access_token(str(user.id))
    new_refresh_token = create_refresh_token(str(user.id))
    user.refresh_tokens = [
        t for t in user.refresh_tokens if t != token
    ] + [new_refresh_token]
    await db.commit()

    return TokenResponse(access_token=access_token, refresh_token=new_refresh_token)


# ─── Logout ─────────────────────────────────────────────


@router.post("/logout")
async def logout(
    authorization: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
):
    """Revoke the presented refresh token."""
    token = _require_refresh_token(authorization)
    try:
        user = await _owner_of_refresh_token(db, token)
    except TokenError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except RefreshTokenReuseError as e:
        raise HTTPException(status_code=401, detail=str(e))

    user.refresh_tokens = [t for t in user.refresh_tokens if t != token]
    await db.commit()
    logger.info("auth.logout", user_id=str(user.id))
    return {"detail": "Logged out"}


# ─── Password check ─────────────────────────────────────


@router.post("/verify-password/{user_id}")
async def check_password(
    user_id: uuid.UUID,
    body: VerifyPasswordRequest,
    identity: CurrentIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Tell whether `current_password` matches the user's password."""
    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return {"is_valid": verify_password(body.current_password, user.password_hash)}


# ─── Current user ───────────────────────────────────────


@router.get("/me", response_model=UserRead)
async def get_me(
    identity: CurrentIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get the current authenticated user's info."""
    user = await db.get(User, identity.user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user
