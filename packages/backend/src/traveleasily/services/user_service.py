"""User service: profile updates, favorites and account deletion.

Account deletion is the one multi-table mutation: it removes the
user's favorites, likes and comments, every trip they own (with the
likes, comments and favorites hanging off those trips), and finally
the user row, all inside one transaction. Counters on other users'
trips the deleted user had liked or commented on are recomputed before
commit.
"""

import uuid
from typing import Optional

import structlog
from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from traveleasily.auth.password import hash_password
from traveleasily.db.models import Comment, FavoriteTrip, Like, Trip, User
from traveleasily.events.types import DISCONNECT_USER, USER_DELETED
from traveleasily.realtime.socket import broadcast
from traveleasily.schemas.user import UserUpdate
from traveleasily.services.trip_service import refresh_counters, trips_touched_by

logger = structlog.get_logger()


class UserNotFoundError(Exception):
    """Raised when the user does not exist."""
    pass


class EmailTakenError(Exception):
    """Raised when an email is already registered to another user."""
    pass


class AlreadyFavoriteError(Exception):
    """Raised when a trip is already on the user's favorites list."""
    pass


class FavoriteTripNotFoundError(Exception):
    """Raised when favoriting a trip that does not exist."""
    pass


class UserService:
    """Business logic for user accounts and favorites."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ─── Read ────────────────────────────────────────────

    async def get_user(self, user_id: uuid.UUID) -> Optional[User]:
        return await self.db.get(User, user_id)

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalars().first()

    async def _require(self, user_id: uuid.UUID) -> User:
        user = await self.get_user(user_id)
        if not user:
            raise UserNotFoundError(f"User {user_id} not found")
        return user

    # ─── Update ──────────────────────────────────────────

    async def update_user(self, user_id: uuid.UUID, body: UserUpdate) -> User:
        """Partially update profile fields. A new password is re-hashed."""
        user = await self._require(user_id)

        if body.email is not None and body.email != user.email:
            other = await self.get_by_email(body.email)
            if other and other.id != user.id:
                raise EmailTakenError("Email already registered")
            user.email = body.email
        if body.user_name is not None:
            user.user_name = body.user_name
        if body.img_url is not None:
            user.img_url = body.img_url
        if body.password is not None:
            user.password_hash = hash_password(body.password)

        await self.db.commit()
        logger.info("users.updated", user_id=str(user_id))
        return user

    # ─── Delete ──────────────────────────────────────────

    async def delete_user(self, user_id: uuid.UUID) -> None:
        """Delete the user and everything they own in one transaction."""
        await self._require(user_id)

        own_trips = select(Trip.id).where(Trip.owner_id == user_id)
        try:
            touched = await trips_touched_by(self.db, user_id)
            await self.db.execute(
                delete(FavoriteTrip).where(
                    or_(
                        FavoriteTrip.user_id == user_id,
                        FavoriteTrip.trip_id.in_(own_trips),
                    )
                )
            )
            await self.db.execute(
                delete(Like).where(or_(Like.user_id == user_id, Like.trip_id.in_(own_trips)))
            )
            await self.db.execute(
                delete(Comment).where(
                    or_(Comment.user_id == user_id, Comment.trip_id.in_(own_trips))
                )
            )
            await self.db.execute(delete(Trip).where(Trip.owner_id == user_id))
            await self.db.execute(delete(User).where(User.id == user_id))
            await refresh_counters(self.db, touched)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            logger.exception("users.delete_failed", user_id=str(user_id))
            raise

        logger.info("users.deleted", user_id=str(user_id), recounted_trips=len(touched))
        await broadcast(USER_DELETED, {"user_id": user_id})
        await broadcast(DISCONNECT_USER, {"user_id": user_id}, room=str(user_id))

    # ─── Favorites ───────────────────────────────────────

    async def favorite_trip_ids(self, user_id: uuid.UUID) -> list[uuid.UUID]:
        """Favorite trip ids, oldest first. Raises UserNotFoundError."""
        await self._require(user_id)
        result = await self.db.execute(
            select(FavoriteTrip.trip_id)
            .where(FavoriteTrip.user_id == user_id)
            .order_by(FavoriteTrip.id)
        )
        return list(result.scalars().all())

    async def add_favorite(self, user_id: uuid.UUID, trip_id: uuid.UUID) -> list[uuid.UUID]:
        favorites = await self.favorite_trip_ids(user_id)
        if trip_id in favorites:
            raise AlreadyFavoriteError("Trip is already in favorites")

        trip = await self.db.execute(select(Trip.id).where(Trip.id == trip_id))
        if trip.first() is None:
            raise FavoriteTripNotFoundError(f"Trip {trip_id} not found")

        self.db.add(FavoriteTrip(user_id=user_id, trip_id=trip_id))
        await self.db.commit()
        logger.info("favorites.added", user_id=str(user_id), trip_id=str(trip_id))
        return favorites + [trip_id]

    async def remove_favorite(
        self, user_id: uuid.UUID, trip_id: uuid.UUID
    ) -> list[uuid.UUID]:
        """Remove a trip from favorites. Removing an absent trip is a no-op."""
        await self._require(user_id)
        await self.db.execute(
            delete(FavoriteTrip).where(
                FavoriteTrip.user_id == user_id, FavoriteTrip.trip_id == trip_id
            )
        )
        await self.db.commit()
        logger.info("favorites.removed", user_id=str(user_id), trip_id=str(trip_id))
        return await self.favorite_trip_ids(user_id)
