"""Pydantic schemas for users and favorites."""

import uuid
from typing import Optional

from pydantic import BaseModel, Field


class UserRead(BaseModel):
    """Public user fields, never the password hash or refresh tokens."""
    id: uuid.UUID
    email: str
    user_name: str
    img_url: Optional[str] = None

    model_config = {"from_attributes": True}


class UserUpdate(BaseModel):
    """Partial update: only non-None fields are applied."""
    user_name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[str] = Field(None, min_length=3, max_length=255)
    img_url: Optional[str] = None
    password: Optional[str] = Field(None, min_length=8)


class FavoritesResponse(BaseModel):
    message: str
    favorite_trips: list[uuid.UUID]
