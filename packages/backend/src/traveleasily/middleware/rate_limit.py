"""Per-IP rate limiting with fixed one-minute windows in Redis.

Counter keys look like "traveleasily:rl:{ip}:{bucket}:{minute}". Login
and registration share a stricter "auth" bucket. When Redis was never
initialised (tests, local runs without Redis) or errors mid-request,
requests pass through unlimited.
"""

import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from traveleasily.realtime.pubsub import get_redis_optional

logger = structlog.get_logger()

AUTH_PATHS = ("/api/v1/auth/login", "/api/v1/auth/register")
EXEMPT_PATHS = ("/api/v1/health",)
KEY_PREFIX = "traveleasily:rl"


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, default_rpm: int = 100, auth_rpm: int = 10):
        super().__init__(app)
        self.default_rpm = default_rpm
        self.auth_rpm = auth_rpm

    async def dispatch(self, request: Request, call_next) -> Response:
        redis = get_redis_optional()
        path = request.url.path
        if redis is None or path.startswith(EXEMPT_PATHS):
            return await call_next(request)

        is_auth = path.startswith(AUTH_PATHS)
        rpm = self.auth_rpm if is_auth else self.default_rpm
        client_ip = request.client.host if request.client else "unknown"
        window = int(time.time() // 60)
        key = f"{KEY_PREFIX}:{client_ip}:{'auth' if is_auth else 'api'}:{window}"

        try:
            count = await redis.incr(key)
            if count == 1:
                await redis.expire(key, 120)
        except Exception as e:
            logger.warning("rate_limit.redis_error", error=str(e))
            return await call_next(request)

        if count > rpm:
            logger.info("rate_limit.exceeded", client_ip=client_ip, bucket_rpm=rpm)
            return JSONResponse(
                status_code=429,
                content={"detail": "Too many requests, please try again later."},
                headers={"Retry-After": "60"},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(rpm)
        response.headers["X-RateLimit-Remaining"] = str(max(0, rpm - count))
        return response
