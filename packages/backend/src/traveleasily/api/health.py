"""Health check endpoint.

Reports whether the database and Redis are reachable. Redis being down
only degrades the service (no cache, no rate limiting).
"""

from fastapi import APIRouter
from sqlalchemy import text

from traveleasily import __version__
from traveleasily.db.engine import engine
from traveleasily.realtime.pubsub import get_redis_optional

router = APIRouter()


@router.get("/health")
async def health_check():
    """Check server health and dependency connectivity."""
    checks = {"server": "ok", "version": __version__}

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"error: {e}"

    redis = get_redis_optional()
    if redis is None:
        checks["redis"] = "unavailable"
    else:
        try:
            await redis.ping()
            checks["redis"] = "ok"
        except Exception as e:
            checks["redis"] = f"error: {e}"

    status = "healthy" if all(
        v == "ok" for k, v in checks.items() if k != "version"
    ) else "degraded"

    return {"status": status, **checks}
