"""Pydantic schemas for trips, comments and likes.

Read schemas are views relative to the caller: the same trip renders
with different is_liked/is_favorited flags, and the detailed view
exposes ids (owner, comment authors) that listings leave out.
"""

import datetime
import uuid
from typing import Optional

from pydantic import BaseModel, Field


# ─── Input ───────────────────────────────────────────────

class TripCreate(BaseModel):
    type_traveler: str = Field(..., min_length=1, max_length=100)
    country: str = Field(..., min_length=1, max_length=100)
    type_trip: str = Field(..., min_length=1, max_length=100)
    trip_description: list[str] = Field(..., min_length=1)
    trip_photos: list[str] = Field(default_factory=list)


class TripUpdate(TripCreate):
    """Full replacement of the editable trip fields."""


class CommentCreate(BaseModel):
    comment: str = Field(..., min_length=1)
    owner: Optional[str] = Field(None, max_length=255)  # display name; defaults to the user's
    date: Optional[datetime.date] = None


# ─── Output ──────────────────────────────────────────────

class TripOwner(BaseModel):
    user_name: Optional[str] = None
    img_url: Optional[str] = None
    id: Optional[uuid.UUID] = None  # only shown to the owner, in the detailed view


class CommentRead(BaseModel):
    id: uuid.UUID
    owner: str
    comment: str
    date: datetime.date
    owner_id: Optional[uuid.UUID] = None
    img_url: Optional[str] = None


class TripRead(BaseModel):
    id: uuid.UUID
    slug: str
    type_traveler: str
    country: str
    type_trip: str
    trip_description: list[str]
    trip_photos: list[str]
    num_of_days: int
    num_of_comments: int
    num_of_likes: int
    owner: TripOwner
    comments: list[CommentRead]
    is_liked_by_current_user: bool = False
    is_favorited_by_current_user: bool = False


class TripPage(BaseModel):
    trips: list[TripRead]
    total: int
    page: int
    limit: int
    total_pages: int


class TripSearchResult(BaseModel):
    data: list[TripRead]


class LikeDetail(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    user_name: Optional[str] = None
    img_url: Optional[str] = None
