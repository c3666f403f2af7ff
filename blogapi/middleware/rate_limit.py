import logging

from redis.asyncio import Redis
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from blogapi.web.deps import client_ip

logger = logging.getLogger(__name__)

LIMITED_PATHS = frozenset({
    "/auth/login",
    "/auth/registration",
    "/auth/registration-confirmation",
    "/auth/registration-email-resending",
    "/auth/password-recovery",
    "/auth/new-password",
})


class RateLimiter:
    """Fixed-window request counter kept in Redis."""

    def __init__(self, redis: Redis, max_requests: int, window_seconds: int):
        self.redis = redis
        self.max_requests = max_requests
        self.window_seconds = window_seconds

    async def hit(self, key: str) -> bool:
        """Count one request for ``key``; False once the window is exhausted."""
        count_key = f"ratelimit:{key}"
        try:
            cnt = await self.redis.incr(count_key)
            if cnt == 1:
                await self.redis.expire(count_key, self.window_seconds)
        except RedisError as exc:
            # If Redis unavailable, fail-open (no throttle)
            logger.warning("Rate limiter unavailable: %s", exc)
            return True
        return cnt <= self.max_requests


class RateLimitMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        limiter = getattr(request.app.state, "rate_limiter", None)
        if limiter is not None and request.method == "POST" and request.url.path in LIMITED_PATHS:
            ip = client_ip(request)
            if not await limiter.hit(f"{ip}:{request.url.path}"):
                logger.info("Rate limit exceeded for %s on %s", ip, request.url.path)
                return JSONResponse({"detail": "Too Many Requests"}, status_code=429)
        return await call_next(request)
