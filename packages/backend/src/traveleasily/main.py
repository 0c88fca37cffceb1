"""FastAPI application factory.

create_app() returns the configured FastAPI instance; the lifespan owns
the Redis pool and the database engine. The Socket.IO server wraps the
FastAPI app, so `socket_app` is what uvicorn serves:

    uvicorn traveleasily.main:socket_app
"""

from contextlib import asynccontextmanager

import socketio
import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from traveleasily import __version__
from traveleasily.api import api_router
from traveleasily.config import settings
from traveleasily.realtime.socket import sio

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    logger.info(
        "traveleasily.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    from traveleasily.realtime.pubsub import close_redis, init_redis
    try:
        await init_redis()
        logger.info("traveleasily.redis_connected", url=settings.redis_url)
    except Exception as e:
        # No cache and no rate limiting, everything else works
        logger.warning("traveleasily.redis_unavailable", error=str(e))

    yield

    logger.info("traveleasily.shutdown")
    await close_redis()

    from traveleasily.db.engine import engine
    await engine.dispose()


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="Travel Easily",
        description="Share trips, like and comment on them, keep favorites",
        version=__version__,
        debug=settings.debug,
        lifespan=lifespan,
    )

    # ── Middleware stack ──────────────────────────────────────
    # Starlette runs middleware in reverse order of registration.
    # Request flow: CORS → RateLimit → Security → RequestId → handler

    from traveleasily.middleware.rate_limit import RateLimitMiddleware
    from traveleasily.middleware.request_id import RequestIdMiddleware
    from traveleasily.middleware.security import SecurityHeadersMiddleware

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        default_rpm=settings.rate_limit_rpm,
        auth_rpm=settings.rate_limit_auth_rpm,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)
    return app


app = create_app()

# Socket.IO handles /socket.io, everything else goes to FastAPI
socket_app = socketio.ASGIApp(sio, other_asgi_app=app)
