"""Rate limiting middleware for the public status channel."""

import logging
import time
from typing import Optional

import redis
from fastapi import Request, status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from sentinel_api.settings import get_settings

logger = logging.getLogger(__name__)

PUBLIC_PREFIX = "/v1/public/"

# Refill, spend and store in one server-side step so concurrent requests
# cannot spend the same token. Returns {allowed, whole tokens left}.
TOKEN_BUCKET_SCRIPT = """
local limit = tonumber(ARGV[1])
local now = tonumber(ARGV[2])
local ttl = tonumber(ARGV[3])
local tokens = tonumber(redis.call('GET', KEYS[1])) or limit
local last_refill = tonumber(redis.call('GET', KEYS[2])) or now
tokens = math.min(limit, tokens + math.max(0, now - last_refill) / 60.0 * limit)
local allowed = 0
if tokens >= 1 then
    tokens = tokens - 1
    allowed = 1
end
redis.call('SET', KEYS[1], tostring(tokens), 'EX', ttl)
redis.call('SET', KEYS[2], tostring(now), 'EX', ttl)
return {allowed, math.floor(tokens)}
"""

_redis_client: Optional[redis.Redis] = None


def get_redis_client() -> redis.Redis:
    """Get or create the shared Redis client."""
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(get_settings().redis_url, decode_responses=True)
    return _redis_client


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Token bucket rate limiting per client IP on unauthenticated routes.

    Fails open when Redis is unreachable.
    """

    async def dispatch(self, request: Request, call_next):
        """Apply rate limiting."""
        settings = get_settings()
        if not settings.rate_limit_enabled or not request.url.path.startswith(PUBLIC_PREFIX):
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        key = f"rate_limit:public:{client_ip}"
        limit = settings.rate_limit_requests_per_minute
        now = time.time()

        try:
            take_token = get_redis_client().register_script(TOKEN_BUCKET_SCRIPT)
            allowed, remaining = take_token(
                keys=[key, f"{key}:last_refill"],
                args=[limit, now, settings.rate_limit_ttl_seconds],
            )
        except redis.RedisError as e:
            logger.warning(f"Rate limiter unavailable, allowing request: {e}")
            return await call_next(request)

        if not int(allowed):
            logger.info("Public rate limit exceeded", extra={"client_ip": client_ip})
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={
                    "error_code": "RATE_LIMITED",
                    "message": "Rate limit exceeded. Please try again later.",
                },
                headers={"Retry-After": "60"},
            )

        response = await call_next(request)

        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(int(remaining))
        response.headers["X-RateLimit-Reset"] = str(int(now + 60))

        return response
