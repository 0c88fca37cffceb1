"""Nearby places lookup, proxied through the Redis-cached PlacesService."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from traveleasily.realtime.pubsub import get_redis_optional
from traveleasily.services.places_service import PlacesService, PlacesUnavailableError

router = APIRouter()


def get_places_service() -> PlacesService:
    return PlacesService(redis=get_redis_optional())


@router.get("/places")
async def get_places(
    location: Optional[str] = Query(None, description="lat,lng"),
    radius: Optional[int] = Query(None, ge=1),
    type: Optional[str] = Query(None),
    svc: PlacesService = Depends(get_places_service),
):
    """Places near `location`. Radius is capped server-side."""
    if not location or radius is None or not type:
        raise HTTPException(
            status_code=400, detail="Missing required parameters: location, radius, type"
        )
    try:
        return await svc.fetch_places(location, radius, type)
    except PlacesUnavailableError as e:
        raise HTTPException(status_code=502, detail=str(e))
