"""Trip service: business logic for trips, comments, likes and their views.

Every write follows the same shape:
1. Validate existence and ownership (raise a domain error otherwise)
2. Apply the change with plain INSERT/UPDATE/DELETE statements
3. Recount the denormalized num_of_likes / num_of_comments columns
4. Commit, then broadcast the matching socket event

Reads return TripRead views built relative to the caller, so the same
trip carries different is_liked / is_favorited flags per user.
"""

import datetime
import math
import uuid
from typing import Iterable, Optional

import structlog
from slugify import slugify as python_slugify
from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from traveleasily.db.models import Comment, FavoriteTrip, Like, Trip, User
from traveleasily.events.types import (
    COMMENT_ADDED,
    COMMENT_DELETED,
    LIKE_ADDED,
    LIKE_REMOVED,
    TRIP_ADDED,
    TRIP_DELETED,
    TRIP_UPDATED,
)
from traveleasily.realtime.socket import broadcast
from traveleasily.schemas.trip import (
    CommentCreate,
    CommentRead,
    LikeDetail,
    TripCreate,
    TripOwner,
    TripPage,
    TripRead,
    TripUpdate,
)

logger = structlog.get_logger()


class TripNotFoundError(Exception):
    """Raised when a trip (or a comment on it) does not exist."""
    pass


class NotTripOwnerError(Exception):
    """Raised when a user modifies a trip or comment that isn't theirs."""
    pass


class InvalidSearchError(Exception):
    """Raised when a search has no usable filters or a malformed value."""
    pass


class OwnerNotFoundError(Exception):
    """Raised when the authenticated user no longer exists."""
    pass


# ═══════════════════════════════════════════════════════════
# Slugs
# ═══════════════════════════════════════════════════════════


def slugify(text: str) -> str:
    """Lowercase ASCII slug: "Costa Rica-Road Trip" → "costa-rica-road-trip"."""
    return python_slugify(text) or "trip"


# ═══════════════════════════════════════════════════════════
# Views
# ═══════════════════════════════════════════════════════════


def to_trip_read(
    trip: Trip,
    user_id: Optional[uuid.UUID],
    favorite_ids: Iterable[uuid.UUID],
    detailed: bool = False,
) -> TripRead:
    """Build the caller-relative view of a trip.

    Expects owner, likes and comments (with comment.user) to be loaded.
    The owner's id is only revealed to the owner in the detailed view.
    """
    owner = TripOwner(
        user_name=trip.owner.user_name if trip.owner else trip.user_name,
        img_url=trip.owner.img_url if trip.owner else trip.img_url,
    )
    if detailed and user_id is not None and trip.owner_id == user_id:
        owner.id = trip.owner_id

    return TripRead(
        id=trip.id,
        slug=trip.slug,
        type_traveler=trip.type_traveler,
        country=trip.country,
        type_trip=trip.type_trip,
        trip_description=trip.trip_description or [],
        trip_photos=trip.trip_photos or [],
        num_of_days=trip.num_of_days,
        num_of_comments=trip.num_of_comments,
        num_of_likes=trip.num_of_likes,
        owner=owner,
        comments=[to_comment_read(c, detailed) for c in trip.comments],
        is_liked_by_current_user=(
            user_id is not None and any(like.user_id == user_id for like in trip.likes)
        ),
        is_favorited_by_current_user=(
            user_id is not None and trip.id in set(favorite_ids)
        ),
    )


def to_comment_read(comment: Comment, detailed: bool = True) -> CommentRead:
    view = CommentRead(
        id=comment.id,
        owner=comment.owner,
        comment=comment.comment,
        date=comment.date,
    )
    if detailed:
        view.owner_id = comment.user_id
        view.img_url = comment.user.img_url if comment.user else ""
    return view


# ═══════════════════════════════════════════════════════════
# Search
# ═══════════════════════════════════════════════════════════

# Query parameter → filterable expression. Anything else is ignored.
SEARCH_FIELDS = {
    "id": Trip.id,
    "owner": Trip.owner_id,
    "user_name": Trip.user_name,
    "img_url": Trip.img_url,
    "type_traveler": Trip.type_traveler,
    "country": Trip.country,
    "type_trip": Trip.type_trip,
    "num_of_comments": Trip.num_of_comments,
    "num_of_likes": Trip.num_of_likes,
    "num_of_days": func.json_array_length(Trip.trip_description),
}

_UUID_FIELDS = {"id", "owner"}
_INT_FIELDS = {"num_of_comments", "num_of_likes", "num_of_days"}


def build_search_conditions(params: dict[str, str]) -> list:
    """Translate allow-listed query parameters into WHERE conditions."""
    conditions = []
    for key, raw in params.items():
        column = SEARCH_FIELDS.get(key)
        if column is None:
            continue
        if key in _UUID_FIELDS:
            try:
                value = uuid.UUID(raw)
            except ValueError:
                raise InvalidSearchError(f"'{key}' must be a UUID")
        elif key in _INT_FIELDS:
            try:
                value = int(raw)
            except ValueError:
                raise InvalidSearchError(f"'{key}' must be an integer")
        else:
            value = raw
        conditions.append(column == value)

    if not conditions:
        raise InvalidSearchError("No valid query parameters provided")
    return conditions


# ═══════════════════════════════════════════════════════════
# Service
# ═══════════════════════════════════════════════════════════


async def refresh_counters(db: AsyncSession, trip_ids: Iterable[uuid.UUID]) -> None:
    """Recompute num_of_likes / num_of_comments from the child tables."""
    ids = list(set(trip_ids))
    if not ids:
        return
    await db.execute(
        update(Trip)
        .where(Trip.id.in_(ids))
        .values(
            num_of_likes=select(func.count(Like.id))
            .where(Like.trip_id == Trip.id)
            .scalar_subquery(),
            num_of_comments=select(func.count(Comment.id))
            .where(Comment.trip_id == Trip.id)
            .scalar_subquery(),
        )
        .execution_options(synchronize_session=False)
    )


class TripService:
    """Business logic for trips and their likes and comments."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ─── Loading helpers ─────────────────────────────────

    @staticmethod
    def _with_relations(query):
        return query.options(
            selectinload(Trip.owner),
            selectinload(Trip.likes),
            selectinload(Trip.comments).selectinload(Comment.user),
        ).execution_options(populate_existing=True)

    async def _load(self, trip_id: uuid.UUID) -> Trip:
        result = await self.db.execute(
            self._with_relations(select(Trip).where(Trip.id == trip_id))
        )
        trip = result.scalars().first()
        if not trip:
            raise TripNotFoundError(f"Trip {trip_id} not found")
        return trip

    async def _load_many(self, query) -> list[Trip]:
        result = await self.db.execute(self._with_relations(query))
        return list(result.scalars().unique().all())

    async def favorite_ids(self, user_id: Optional[uuid.UUID]) -> list[uuid.UUID]:
        """The user's favorite trip ids, oldest first (empty for anonymous)."""
        if user_id is None:
            return []
        result = await self.db.execute(
            select(FavoriteTrip.trip_id)
            .where(FavoriteTrip.user_id == user_id)
            .order_by(FavoriteTrip.id)
        )
        return list(result.scalars().all())

    async def _views(
        self, trips: list[Trip], user_id: Optional[uuid.UUID], detailed: bool = False
    ) -> list[TripRead]:
        favorites = await self.favorite_ids(user_id)
        return [to_trip_read(t, user_id, favorites, detailed) for t in trips]

    async def _view(self, trip: Trip, user_id: Optional[uuid.UUID]) -> TripRead:
        favorites = await self.favorite_ids(user_id)
        return to_trip_read(trip, user_id, favorites, detailed=True)

    async def generate_unique_slug(
        self, country: str, type_trip: str, exclude_id: Optional[uuid.UUID] = None
    ) -> str:
        """Probe base, base-1, base-2, ... until a slug is free."""
        base = slugify(f"{country}-{type_trip}")
        slug, counter = base, 1
        while True:
            query = select(Trip.id).where(Trip.slug == slug)
            if exclude_id is not None:
                query = query.where(Trip.id != exclude_id)
            if (await self.db.execute(query)).first() is None:
                return slug
            slug = f"{base}-{counter}"
            counter += 1

    # ─── Read ────────────────────────────────────────────

    async def list_trips(
        self, user_id: Optional[uuid.UUID], page: int = 1, limit: int = 10
    ) -> TripPage:
        total = await self.db.scalar(select(func.count(Trip.id))) or 0
        trips = await self._load_many(
            select(Trip)
            .order_by(Trip.created_at.desc(), Trip.id)
            .limit(limit)
            .offset((page - 1) * limit)
        )
        return TripPage(
            trips=await self._views(trips, user_id),
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit) if total else 0,
        )

    async def get_trip(
        self, trip_id: uuid.UUID, user_id: Optional[uuid.UUID]
    ) -> TripRead:
        return await self._view(await self._load(trip_id), user_id)

    async def get_trip_by_slug(
        self, slug: str, user_id: Optional[uuid.UUID]
    ) -> TripRead:
        trips = await self._load_many(select(Trip).where(Trip.slug == slug))
        if not trips:
            raise TripNotFoundError(f"Trip '{slug}' not found")
        return await self._view(trips[0], user_id)

    async def list_by_owner(
        self, owner_id: uuid.UUID, user_id: Optional[uuid.UUID]
    ) -> list[TripRead]:
        trips = await self._load_many(
            select(Trip).where(Trip.owner_id == owner_id).order_by(Trip.created_at.desc())
        )
        return await self._views(trips, user_id)

    async def list_favorites(
        self, favorites_of: uuid.UUID, user_id: Optional[uuid.UUID]
    ) -> list[TripRead]:
        """Trips on `favorites_of`'s list, in the order they were added."""
        ids = await self.favorite_ids(favorites_of)
        if not ids:
            return []
        trips = await self._load_many(select(Trip).where(Trip.id.in_(ids)))
        position = {trip_id: i for i, trip_id in enumerate(ids)}
        trips.sort(key=lambda t: position[t.id])
        return await self._views(trips, user_id)

    async def search(
        self, params: dict[str, str], user_id: Optional[uuid.UUID]
    ) -> list[TripRead]:
        """Filter trips by allow-listed fields. Raises InvalidSearchError."""
        conditions = build_search_conditions(params)
        trips = await self._load_many(
            select(Trip).where(*conditions).order_by(Trip.created_at.desc())
        )
        return await self._views(trips, user_id)

    async def list_like_details(self, trip_id: uuid.UUID) -> list[LikeDetail]:
        await self._ensure_exists(trip_id)
        result = await self.db.execute(
            select(Like, User)
            .join(User, User.id == Like.user_id)
            .where(Like.trip_id == trip_id)
            .order_by(Like.created_at)
        )
        return [
            LikeDetail(
                id=like.id,
                user_id=user.id,
                user_name=user.user_name,
                img_url=user.img_url,
            )
            for like, user in result.all()
        ]

    async def _ensure_exists(self, trip_id: uuid.UUID) -> None:
        found = await self.db.execute(select(Trip.id).where(Trip.id == trip_id))
        if found.first() is None:
            raise TripNotFoundError(f"Trip {trip_id} not found")

    # ─── Create / update / delete ────────────────────────

    async def create_trip(self, user_id: uuid.UUID, body: TripCreate) -> TripRead:
        owner = await self.db.get(User, user_id)
        if not owner:
            raise OwnerNotFoundError(f"User {user_id} not found")

        trip = Trip(
            owner_id=owner.id,
            user_name=owner.user_name,
            img_url=owner.img_url,
            type_traveler=body.type_traveler,
            country=body.country,
            type_trip=body.type_trip,
            trip_description=list(body.trip_description),
            trip_photos=list(body.trip_photos),
            slug=await self.generate_unique_slug(body.country, body.type_trip),
            num_of_comments=0,
            num_of_likes=0,
        )
        self.db.add(trip)
        await self.db.commit()
        logger.info("trips.created", trip_id=str(trip.id), slug=trip.slug)

        view = await self._view(await self._load(trip.id), user_id)
        await broadcast(TRIP_ADDED, view)
        return view

    async def update_trip(
        self, trip_id: uuid.UUID, user_id: uuid.UUID, body: TripUpdate
    ) -> TripRead:
        trip = await self._load(trip_id)
        if trip.owner_id != user_id:
            raise NotTripOwnerError("You are not authorized to update this trip")

        slug_changed = (trip.country, trip.type_trip) != (body.country, body.type_trip)
        trip.type_traveler = body.type_traveler
        trip.country = body.country
        trip.type_trip = body.type_trip
        trip.trip_description = list(body.trip_description)
        trip.trip_photos = list(body.trip_photos)
        if slug_changed:
            trip.slug = await self.generate_unique_slug(
                body.country, body.type_trip, exclude_id=trip.id
            )
        await self.db.commit()
        logger.info("trips.updated", trip_id=str(trip_id), slug=trip.slug)

        view = await self._view(await self._load(trip_id), user_id)
        await broadcast(TRIP_UPDATED, view)
        return view

    async def delete_trip(self, trip_id: uuid.UUID, user_id: uuid.UUID) -> None:
        """Delete a trip, its likes and comments, and every favorite entry."""
        trip = await self.db.get(Trip, trip_id)
        if not trip:
            raise TripNotFoundError(f"Trip {trip_id} not found")
        if trip.owner_id != user_id:
            raise NotTripOwnerError("You are not authorized to delete this trip")

        try:
            await self.db.execute(delete(FavoriteTrip).where(FavoriteTrip.trip_id == trip_id))
            await self.db.execute(delete(Like).where(Like.trip_id == trip_id))
            await self.db.execute(delete(Comment).where(Comment.trip_id == trip_id))
            await self.db.execute(delete(Trip).where(Trip.id == trip_id))
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            logger.exception("trips.delete_failed", trip_id=str(trip_id))
            raise

        logger.info("trips.deleted", trip_id=str(trip_id))
        await broadcast(TRIP_DELETED, {"trip_id": trip_id})

    # ─── Comments ────────────────────────────────────────

    async def add_comment(
        self, trip_id: uuid.UUID, user_id: uuid.UUID, body: CommentCreate
    ) -> list[CommentRead]:
        await self._ensure_exists(trip_id)
        author = await self.db.get(User, user_id)
        if not author:
            raise OwnerNotFoundError(f"User {user_id} not found")

        comment = Comment(
            trip_id=trip_id,
            user_id=user_id,
            owner=body.owner or author.user_name,
            comment=body.comment,
            date=body.date or datetime.datetime.now(datetime.timezone.utc).date(),
        )
        self.db.add(comment)
        await self.db.flush()
        await refresh_counters(self.db, [trip_id])
        await self.db.commit()
        logger.info("comments.added", trip_id=str(trip_id), comment_id=str(comment.id))

        trip = await self._load(trip_id)
        new_comment = next(c for c in trip.comments if c.id == comment.id)
        await broadcast(
            COMMENT_ADDED,
            {"trip_id": trip_id, "new_comment": to_comment_read(new_comment)},
        )
        return [to_comment_read(c) for c in trip.comments]

    async def delete_comment(
        self, trip_id: uuid.UUID, comment_id: uuid.UUID, user_id: uuid.UUID
    ) -> list[CommentRead]:
        """Delete a comment. Allowed for its author and the trip owner."""
        trip = await self.db.get(Trip, trip_id)
        if not trip:
            raise TripNotFoundError(f"Trip {trip_id} not found")
        comment = await self.db.get(Comment, comment_id)
        if not comment or comment.trip_id != trip_id:
            raise TripNotFoundError(f"Comment {comment_id} not found")
        if user_id not in (comment.user_id, trip.owner_id):
            raise NotTripOwnerError("You are not authorized to delete this comment")

        await self.db.execute(delete(Comment).where(Comment.id == comment_id))
        await refresh_counters(self.db, [trip_id])
        await self.db.commit()
        logger.info("comments.deleted", trip_id=str(trip_id), comment_id=str(comment_id))

        await broadcast(COMMENT_DELETED, {"trip_id": trip_id, "comment_id": comment_id})
        trip = await self._load(trip_id)
        return [to_comment_read(c) for c in trip.comments]

    # ─── Likes ───────────────────────────────────────────

    async def toggle_like(self, trip_id: uuid.UUID, user_id: uuid.UUID) -> TripRead:
        """Like the trip if the user hasn't yet, otherwise remove the like."""
        await self._ensure_exists(trip_id)
        if not await self.db.get(User, user_id):
            raise OwnerNotFoundError(f"User {user_id} not found")

        existing = await self.db.execute(
            select(Like.id).where(Like.trip_id == trip_id, Like.user_id == user_id)
        )
        like_id = existing.scalar()
        if like_id is None:
            self.db.add(Like(trip_id=trip_id, user_id=user_id))
            action = LIKE_ADDED
        else:
            await self.db.execute(delete(Like).where(Like.id == like_id))
            action = LIKE_REMOVED
        await self.db.flush()
        await refresh_counters(self.db, [trip_id])
        await self.db.commit()
        logger.info("likes.toggled", trip_id=str(trip_id), action=action)

        await broadcast(action, {"trip_id": trip_id, "user_id": user_id})
        return await self._view(await self._load(trip_id), user_id)


async def trips_touched_by(db: AsyncSession, user_id: uuid.UUID) -> set[uuid.UUID]:
    """Ids of trips the user liked or commented on (their counters depend on them)."""
    liked = select(Like.trip_id).where(Like.user_id == user_id)
    commented = select(Comment.trip_id).where(Comment.user_id == user_id)
    result = await db.execute(
        select(Trip.id).where(
            or_(Trip.id.in_(liked), Trip.id.in_(commented)),
            Trip.owner_id != user_id,
        )
    )
    return set(result.scalars().all())
