"""JWT token creation and verification.

- Access token: short-lived (60min), used for API calls and socket auth
- Refresh token: long-lived (30 days), signed with a separate secret,
  exchanged for a new pair at /auth/refresh

Every refresh token carries a random jti so two tokens issued to the
same user in the same second are still distinct.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from traveleasily.config import settings

ACCESS = "access"
REFRESH = "refresh"


class TokenError(Exception):
    """Raised when token creation/verification fails."""


def _secret_for(token_type: str) -> str:
    return settings.jwt_refresh_secret if token_type == REFRESH else settings.jwt_secret


def create_access_token(
    user_id: str,
    expires_minutes: Optional[int] = None,
) -> str:
    """Create a JWT access token."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "type": ACCESS,
        "exp": now + timedelta(
            minutes=expires_minutes or settings.access_token_expire_minutes
        ),
        "iat": now,
    }
    return jwt.encode(payload, _secret_for(ACCESS), algorithm=settings.jwt_algorithm)


def create_refresh_token(
    user_id: str,
    expires_days: Optional[int] = None,
) -> str:
    """Create a JWT refresh token."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "type": REFRESH,
        "jti": uuid.uuid4().hex,
        "exp": now + timedelta(days=expires_days or settings.refresh_token_expire_days),
        "iat": now,
    }
    return jwt.encode(payload, _secret_for(REFRESH), algorithm=settings.jwt_algorithm)


def verify_token(token: str, token_type: str = ACCESS) -> dict:
    """Verify and decode a JWT token of the given type.

    Returns the payload dict on success.
    Raises TokenError on failure.
    """
    try:
        payload = jwt.decode(
            token, _secret_for(token_type), algorithms=[settings.jwt_algorithm]
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Invalid token: {e}")

    if payload.get("type") != token_type:
        raise TokenError(f"Not an {token_type} token")
    try:
        uuid.UUID(str(payload.get("sub")))
    except ValueError:
        raise TokenError("Invalid token subject")
    return payload
