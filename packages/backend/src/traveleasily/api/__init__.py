"""API route aggregation.

All routers registered here get mounted in main.py. Authentication is
declared per route, since trip listings and details are public and only
personalised when a token is present.
"""

from fastapi import APIRouter

from traveleasily.api.auth import router as auth_router
from traveleasily.api.health import router as health_router
from traveleasily.api.places import router as places_router
from traveleasily.api.trips import router as trips_router
from traveleasily.api.users import router as users_router

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])
api_router.include_router(users_router, tags=["users", "favorites"])
api_router.include_router(trips_router, tags=["trips", "comments", "likes"])
api_router.include_router(places_router, tags=["places"])
