"""SQLAlchemy ORM models: single source of truth for the database schema.

Declarative mapping in SQLAlchemy 2.0 style (Mapped[] + mapped_column).
Column types are the generic ones (Uuid, JSON) so the schema runs on
PostgreSQL in production and SQLite in tests.

Referential integrity lives in the schema: every child row carries an
ON DELETE CASCADE foreign key, likes are unique per (trip, user), and
favorites are unique per (user, trip).
"""

import uuid
from datetime import date as calendar_date, datetime, timezone
from typing import Optional

from sqlalchemy import (
    JSON,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_uuid() -> uuid.UUID:
    return uuid.uuid4()


class User(Base):
    """A registered traveller.

    refresh_tokens holds every refresh token currently issued to the
    user; a token missing from this list is treated as stolen.
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    user_name: Mapped[str] = mapped_column(String(255), nullable=False)
    password_hash: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    img_url: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    refresh_tokens: Mapped[list[str]] = mapped_column(
        JSON, nullable=False, default=list
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    # Relationships
    trips: Mapped[list["Trip"]] = relationship(
        back_populates="owner", passive_deletes=True
    )


class Trip(Base):
    """A shared trip.

    user_name/img_url snapshot the owner at creation time so listings
    still render if the owner row is not joined.
    """

    __tablename__ = "trips"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    img_url: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    type_traveler: Mapped[str] = mapped_column(String(100), nullable=False)
    country: Mapped[str] = mapped_column(String(100), nullable=False)
    type_trip: Mapped[str] = mapped_column(String(100), nullable=False)
    trip_photos: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    trip_description: Mapped[list[str]] = mapped_column(
        JSON, nullable=False, default=list
    )  # one entry per day
    num_of_comments: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    num_of_likes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
    )

    # Relationships
    owner: Mapped["User"] = relationship(back_populates="trips")
    comments: Mapped[list["Comment"]] = relationship(
        back_populates="trip",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Comment.created_at",
    )
    likes: Mapped[list["Like"]] = relationship(
        back_populates="trip",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def num_of_days(self) -> int:
        return len(self.trip_description or [])


class Comment(Base):
    """A comment on a trip. `owner` is the display name shown in the UI."""

    __tablename__ = "comments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    trip_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("trips.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    owner: Mapped[str] = mapped_column(String(255), nullable=False)
    comment: Mapped[str] = mapped_column(Text, nullable=False)
    date: Mapped[calendar_date] = mapped_column(Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    # Relationships
    trip: Mapped["Trip"] = relationship(back_populates="comments")
    user: Mapped["User"] = relationship()


class Like(Base):
    """One user's like on one trip."""

    __tablename__ = "likes"
    __table_args__ = (
        UniqueConstraint("trip_id", "user_id", name="uq_likes_trip_user"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    trip_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("trips.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    # Relationships
    trip: Mapped["Trip"] = relationship(back_populates="likes")
    user: Mapped["User"] = relationship()


class FavoriteTrip(Base):
    """A trip on a user's favorites list, ordered by created_at."""

    __tablename__ = "favorite_trips"
    __table_args__ = (
        UniqueConstraint("user_id", "trip_id", name="uq_favorite_trips_user_trip"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    trip_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("trips.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
