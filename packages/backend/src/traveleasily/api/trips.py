"""Trip, comment and like API routes.

Routes translate HTTP to TripService calls and map domain errors to
status codes: 404 for missing trips/comments, 403 for acting on
someone else's trip, 400 for unusable search filters.

Listing and detail routes accept anonymous callers; a valid token only
personalises the is_liked/is_favorited flags. Crawlers (see ssr.py)
get HTML instead of JSON from the list and detail routes.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request
from fastapi.responses import HTMLResponse
from sqlalchemy.ext.asyncio import AsyncSession

from traveleasily.auth.dependencies import (
    CurrentIdentity,
    get_current_user,
    get_current_user_optional,
)
from traveleasily.db.engine import get_db
from traveleasily.schemas.trip import (
    CommentCreate,
    CommentRead,
    LikeDetail,
    TripCreate,
    TripPage,
    TripRead,
    TripSearchResult,
    TripUpdate,
)
from traveleasily.services.trip_service import (
    InvalidSearchError,
    NotTripOwnerError,
    OwnerNotFoundError,
    TripNotFoundError,
    TripService,
)
from traveleasily.ssr import is_bot_request, render_trip_html, render_trips_html

router = APIRouter(prefix="/trips")


def _svc(db: AsyncSession = Depends(get_db)) -> TripService:
    return TripService(db)


def _uid(identity: Optional[CurrentIdentity]) -> Optional[uuid.UUID]:
    return identity.user_id if identity else None


# ═══════════════════════════════════════════════════════════
# Reads
# ═══════════════════════════════════════════════════════════


@router.get("", response_model=TripPage)
async def list_trips(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user_agent: Optional[str] = Header(None),
    identity: Optional[CurrentIdentity] = Depends(get_current_user_optional),
    svc: TripService = Depends(_svc),
):
    """Paginated list of all trips, newest first."""
    result = await svc.list_trips(_uid(identity), page=page, limit=limit)
    if is_bot_request(user_agent):
        return HTMLResponse(render_trips_html(result.trips))
    return result


@router.get("/owner/{owner_id}", response_model=list[TripRead])
async def list_trips_by_owner(
    owner_id: uuid.UUID,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: TripService = Depends(_svc),
):
    return await svc.list_by_owner(owner_id, identity.user_id)


@router.get("/favorites/{user_id}", response_model=list[TripRead])
async def list_favorite_trips(
    user_id: uuid.UUID,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: TripService = Depends(_svc),
):
    """Trips on the user's favorites list, in the order they were added."""
    return await svc.list_favorites(user_id, identity.user_id)


@router.get("/full/{trip_id}", response_model=TripRead)
async def get_full_trip(
    trip_id: uuid.UUID,
    user_agent: Optional[str] = Header(None),
    identity: Optional[CurrentIdentity] = Depends(get_current_user_optional),
    svc: TripService = Depends(_svc),
):
    """Detailed trip view with comments."""
    try:
        trip = await svc.get_trip(trip_id, _uid(identity))
    except TripNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    if is_bot_request(user_agent):
        return HTMLResponse(render_trip_html(trip))
    return trip


@router.get("/slug/{slug}", response_model=TripRead)
async def get_trip_by_slug(
    slug: str,
    identity: Optional[CurrentIdentity] = Depends(get_current_user_optional),
    svc: TripService = Depends(_svc),
):
    try:
        return await svc.get_trip_by_slug(slug, _uid(identity))
    except TripNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/search/parameters", response_model=TripSearchResult)
async def search_trips(
    request: Request,
    identity: Optional[CurrentIdentity] = Depends(get_current_user_optional),
    svc: TripService = Depends(_svc),
):
    """Filter trips by query parameters, e.g. ?country=Japan&num_of_days=5.

    Only allow-listed fields are used; others are ignored.
    """
    try:
        trips = await svc.search(dict(request.query_params), _uid(identity))
    except InvalidSearchError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not trips:
        raise HTTPException(status_code=404, detail="No trips match the given parameters")
    return TripSearchResult(data=trips)


@router.get("/{trip_id}/likes/details", response_model=list[LikeDetail])
async def get_like_details(
    trip_id: uuid.UUID,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: TripService = Depends(_svc),
):
    """Who liked the trip, with names and avatars."""
    try:
        return await svc.list_like_details(trip_id)
    except TripNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


# ═══════════════════════════════════════════════════════════
# Writes
# ═══════════════════════════════════════════════════════════


@router.post("", response_model=TripRead, status_code=201)
async def create_trip(
    body: TripCreate,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: TripService = Depends(_svc),
):
    """Create a trip owned by the caller. The slug is generated."""
    try:
        return await svc.create_trip(identity.user_id, body)
    except OwnerNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.put("/{trip_id}", response_model=TripRead)
async def update_trip(
    trip_id: uuid.UUID,
    body: TripUpdate,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: TripService = Depends(_svc),
):
    try:
        return await svc.update_trip(trip_id, identity.user_id, body)
    except TripNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except NotTripOwnerError as e:
        raise HTTPException(status_code=403, detail=str(e))


@router.delete("/{trip_id}")
async def delete_trip(
    trip_id: uuid.UUID,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: TripService = Depends(_svc),
):
    try:
        await svc.delete_trip(trip_id, identity.user_id)
    except TripNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except NotTripOwnerError as e:
        raise HTTPException(status_code=403, detail=str(e))
    return {"message": "Trip deleted successfully"}


# ─── Comments ───────────────────────────────────────────

@router.post("/{trip_id}/comments", response_model=list[CommentRead])
async def add_comment(
    trip_id: uuid.UUID,
    body: CommentCreate,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: TripService = Depends(_svc),
):
    """Add a comment; returns all of the trip's comments."""
    try:
        return await svc.add_comment(trip_id, identity.user_id, body)
    except (TripNotFoundError, OwnerNotFoundError) as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/{trip_id}/comments/{comment_id}", response_model=list[CommentRead])
async def delete_comment(
    trip_id: uuid.UUID,
    comment_id: uuid.UUID,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: TripService = Depends(_svc),
):
    """Delete a comment (its author or the trip owner); returns the rest."""
    try:
        return await svc.delete_comment(trip_id, comment_id, identity.user_id)
    except TripNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except NotTripOwnerError as e:
        raise HTTPException(status_code=403, detail=str(e))


# ─── Likes ──────────────────────────────────────────────

@router.post("/{trip_id}/likes", response_model=TripRead)
async def toggle_like(
    trip_id: uuid.UUID,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: TripService = Depends(_svc),
):
    """Like the trip, or remove the caller's like if already present."""
    try:
        return await svc.toggle_like(trip_id, identity.user_id)
    except (TripNotFoundError, OwnerNotFoundError) as e:
        raise HTTPException(status_code=404, detail=str(e))
