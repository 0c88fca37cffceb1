"""FastAPI auth dependencies.

Used as Depends() in route handlers to resolve the caller from the
`Authorization: Bearer <access token>` header.

- get_current_user: mandatory, 401 when the token is missing or bad
- get_current_user_optional: anonymous (None) when missing or bad, for
  public listings that personalise flags for signed-in users
"""

import uuid
from typing import Optional

import structlog
from fastapi import Depends, Header, HTTPException

from traveleasily.auth.jwt import TokenError, verify_token

logger = structlog.get_logger()


class CurrentIdentity:
    """The authenticated user making the request."""

    def __init__(self, user_id: uuid.UUID):
        self.user_id = user_id

    def is_user(self, user_id: uuid.UUID) -> bool:
        return self.user_id == user_id


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Extract the token from an `Authorization: Bearer ...` header."""
    if authorization and authorization.startswith("Bearer "):
        return authorization[7:].strip() or None
    return None


async def get_current_user_optional(
    authorization: Optional[str] = Header(None),
) -> Optional[CurrentIdentity]:
    """Extract current identity (optional: None if absent or invalid)."""
    token = bearer_token(authorization)
    if not token:
        return None
    try:
        payload = verify_token(token)
    except TokenError as e:
        logger.info("auth.optional_token_rejected", error=str(e))
        return None
    return CurrentIdentity(user_id=uuid.UUID(payload["sub"]))


async def get_current_user(
    authorization: Optional[str] = Header(None),
) -> CurrentIdentity:
    """Extract current identity (required: 401 if no valid auth)."""
    token = bearer_token(authorization)
    if not token:
        raise HTTPException(
            status_code=401,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        payload = verify_token(token)
    except TokenError as e:
        raise HTTPException(
            status_code=401,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )
    return CurrentIdentity(user_id=uuid.UUID(payload["sub"]))


def require_self(
    user_id: uuid.UUID,
    identity: CurrentIdentity = Depends(get_current_user),
) -> CurrentIdentity:
    """Only the user named in the path may act on their own account."""
    if not identity.is_user(user_id):
        raise HTTPException(status_code=403, detail="Not allowed to modify another user")
    return identity
