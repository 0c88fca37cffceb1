"""User and favorites API routes.

Profile reads are open to any signed-in user; updates and deletion are
restricted to the account owner. Favorites always act on the caller's
own list.
"""

import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from traveleasily.auth.dependencies import (
    CurrentIdentity,
    get_current_user,
    require_self,
)
from traveleasily.db.engine import get_db
from traveleasily.schemas.user import FavoritesResponse, UserRead, UserUpdate
from traveleasily.services.user_service import (
    AlreadyFavoriteError,
    EmailTakenError,
    FavoriteTripNotFoundError,
    UserNotFoundError,
    UserService,
)

router = APIRouter(prefix="/users")


def _svc(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(db)


# ─── Favorites ──────────────────────────────────────────
# Registered before /{user_id} routes so "favorites" is never parsed as an id.

@router.post("/favorites/{trip_id}", response_model=FavoritesResponse)
async def add_favorite(
    trip_id: uuid.UUID,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: UserService = Depends(_svc),
):
    try:
        favorites = await svc.add_favorite(identity.user_id, trip_id)
    except (UserNotFoundError, FavoriteTripNotFoundError) as e:
        raise HTTPException(status_code=404, detail=str(e))
    except AlreadyFavoriteError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return FavoritesResponse(message="Trip added to favorites", favorite_trips=favorites)


@router.delete("/favorites/{trip_id}", response_model=FavoritesResponse)
async def remove_favorite(
    trip_id: uuid.UUID,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: UserService = Depends(_svc),
):
    try:
        favorites = await svc.remove_favorite(identity.user_id, trip_id)
    except UserNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return FavoritesResponse(
        message="Trip removed from favorites", favorite_trips=favorites
    )


# ─── Users ──────────────────────────────────────────────

@router.get("/{user_id}", response_model=UserRead)
async def get_user(
    user_id: uuid.UUID,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: UserService = Depends(_svc),
):
    user = await svc.get_user(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.get("/{user_id}/favorites", response_model=list[uuid.UUID])
async def get_favorite_trip_ids(
    user_id: uuid.UUID,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: UserService = Depends(_svc),
):
    """Ids of the user's favorite trips, in the order they were added."""
    try:
        return await svc.favorite_trip_ids(user_id)
    except UserNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.put("/{user_id}", response_model=UserRead)
async def update_user(
    user_id: uuid.UUID,
    body: UserUpdate,
    identity: CurrentIdentity = Depends(require_self),
    svc: UserService = Depends(_svc),
):
    try:
        return await svc.update_user(user_id, body)
    except UserNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except EmailTakenError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.delete("/{user_id}")
async def delete_user(
    user_id: uuid.UUID,
    identity: CurrentIdentity = Depends(require_self),
    svc: UserService = Depends(_svc),
):
    """Delete the account along with its trips, likes, comments and favorites."""
    try:
        await svc.delete_user(user_id)
    except UserNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"message": "User deleted successfully"}
