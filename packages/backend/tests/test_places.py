"""Places lookup tests: cache-aside behaviour and the HTTP route.

The upstream API is replaced with httpx.MockTransport and Redis with an
AsyncMock, so no network or Redis is needed.
"""

import json
from unittest.mock import AsyncMock

import httpx
import pytest

from traveleasily.api.places import get_places_service
from traveleasily.main import app
from traveleasily.services.places_service import (
    PlacesService,
    PlacesUnavailableError,
    cache_key,
)

UPSTREAM = {"results": [{"name": "Cafe Sol"}], "status": "OK"}


def _http(status: int = 200, payload=None, calls: list | None = None) -> httpx.AsyncClient:
    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        return httpx.Response(status, json=payload if payload is not None else UPSTREAM)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _redis(cached=None) -> AsyncMock:
    redis = AsyncMock()
    redis.get.return_value = json.dumps(cached) if cached is not None else None
    return redis


# ═══════════════════════════════════════════════════════════
# Service
# ═══════════════════════════════════════════════════════════


def test_cache_key_format():
    assert cache_key("48.85,2.35", 500, "museum") == "places_full:48.85,2.35:500:museum"


@pytest.mark.asyncio
async def test_cache_miss_fetches_and_stores():
    calls = []
    redis = _redis()
    svc = PlacesService(redis=redis, http=_http(calls=calls))

    data = await svc.fetch_places("48.85,2.35", 500, "museum")

    assert data == UPSTREAM
    assert len(calls) == 1
    assert calls[0].url.params["type"] == "museum"
    redis.set.assert_awaited_once_with(
        "places_full:48.85,2.35:500:museum", json.dumps(UPSTREAM), ex=3600
    )


@pytest.mark.asyncio
async def test_cache_hit_skips_upstream():
    calls = []
    cached = {"results": [], "status": "ZERO_RESULTS"}
    svc = PlacesService(redis=_redis(cached), http=_http(calls=calls))

    assert await svc.fetch_places("1,1", 100, "cafe") == cached
    assert calls == []


@pytest.mark.asyncio
async def test_radius_is_clamped():
    calls = []
    redis = _redis()
    svc = PlacesService(redis=redis, http=_http(calls=calls))

    await svc.fetch_places("1,1", 50_000, "park")

    assert calls[0].url.params["radius"] == "2000"
    redis.get.assert_awaited_once_with("places_full:1,1:2000:park")


@pytest.mark.asyncio
async def test_redis_failure_falls_back_to_upstream():
    redis = AsyncMock()
    redis.get.side_effect = ConnectionError("redis down")
    redis.set.side_effect = ConnectionError("redis down")
    svc = PlacesService(redis=redis, http=_http())

    assert await svc.fetch_places("1,1", 100, "cafe") == UPSTREAM


@pytest.mark.asyncio
async def test_works_without_redis():
    svc = PlacesService(redis=None, http=_http())
    assert await svc.fetch_places("1,1", 100, "cafe") == UPSTREAM


@pytest.mark.asyncio
async def test_upstream_error_raises():
    redis = _redis()
    svc = PlacesService(redis=redis, http=_http(status=500, payload={"error": "boom"}))

    with pytest.raises(PlacesUnavailableError):
        await svc.fetch_places("1,1", 100, "cafe")
    redis.set.assert_not_awaited()


# ═══════════════════════════════════════════════════════════
# Route
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_places_missing_params(client):
    r = await client.get("/api/v1/places", params={"location": "1,1"})
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_places_route(client):
    app.dependency_overrides[get_places_service] = lambda: PlacesService(http=_http())
    r = await client.get(
        "/api/v1/places", params={"location": "1,1", "radius": 300, "type": "cafe"}
    )
    assert r.status_code == 200
    assert r.json() == UPSTREAM


@pytest.mark.asyncio
async def test_places_upstream_down(client):
    app.dependency_overrides[get_places_service] = lambda: PlacesService(
        http=_http(status=503, payload={})
    )
    r = await client.get(
        "/api/v1/places", params={"location": "1,1", "radius": 300, "type": "cafe"}
    )
    assert r.status_code == 502
