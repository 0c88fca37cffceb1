"""Places service: nearby-places lookup with a Redis cache in front.

Cache-aside with a fixed TTL: look up `places_full:{location}:{radius}:{type}`,
return the cached JSON on a hit, otherwise call the upstream search API
and store its full response. There is no invalidation; entries simply
expire. A missing or failing Redis never fails the request.
"""

import json
from typing import Any, Optional

import httpx
import redis.asyncio as aioredis
import structlog

from traveleasily.config import settings

logger = structlog.get_logger()


class PlacesUnavailableError(Exception):
    """Raised when the upstream places API cannot be reached or errors."""
    pass


def cache_key(location: str, radius: int, place_type: str) -> str:
    return f"places_full:{location}:{radius}:{place_type}"


class PlacesService:
    """Nearby-places search with Redis caching."""

    def __init__(
        self,
        redis: Optional[aioredis.Redis] = None,
        http: Optional[httpx.AsyncClient] = None,
    ):
        self.redis = redis
        self.http = http

    async def fetch_places(
        self, location: str, radius: int, place_type: str
    ) -> dict[str, Any]:
        radius = min(radius, settings.places_max_radius)
        key = cache_key(location, radius, place_type)

        cached = await self._cache_get(key)
        if cached is not None:
            logger.info("places.cache_hit", key=key)
            return cached

        logger.info("places.cache_miss", key=key)
        data = await self._fetch_upstream(location, radius, place_type)
        await self._cache_set(key, data)
        return data

    # ─── Upstream ────────────────────────────────────────

    async def _fetch_upstream(
        self, location: str, radius: int, place_type: str
    ) -> dict[str, Any]:
        params = {
            "location": location,
            "radius": radius,
            "type": place_type,
            "key": settings.places_api_key,
        }
        client = self.http or httpx.AsyncClient(timeout=10.0)
        try:
            resp = await client.get(settings.places_api_url, params=params)
            resp.raise_for_status()
            return resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("places.upstream_failed", error=str(e))
            raise PlacesUnavailableError(
                "Unable to retrieve place information at the moment."
            ) from e
        finally:
            if self.http is None:
                await client.aclose()

    # ─── Cache ───────────────────────────────────────────

    async def _cache_get(self, key: str) -> Optional[dict[str, Any]]:
        if self.redis is None:
            return None
        try:
            raw = await self.redis.get(key)
        except Exception as e:
            logger.warning("places.cache_unavailable", error=str(e))
            return None
        return json.loads(raw) if raw else None

    async def _cache_set(self, key: str, data: dict[str, Any]) -> None:
        if self.redis is None:
            return
        try:
            await self.redis.set(key, json.dumps(data), ex=settings.places_cache_ttl_seconds)
        except Exception as e:
            logger.warning("places.cache_unavailable", error=str(e))
