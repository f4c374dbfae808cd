"""Rate limiting middleware: fixed one-minute window per caller in Redis.

This throttles raw HTTP traffic only. The per-user daily ORDER quota is a
ledger rule enforced inside the order transaction (src.pm_risk.rules.daily_quota).

Rules:
  1. Redis INCR + EXPIRE for fixed-window counting
  2. Key pattern: "ratelimit:{caller}:{minute}", caller is the X-User-Id
     header when present, else the client IP (X-Forwarded-For aware)
  3. Over the limit: 429 with RateLimitError (9001) body and Retry-After
  4. Redis unreachable: the request is let through and a warning logged
"""

import logging
import time
from collections.abc import Awaitable, Callable

import redis.asyncio as aioredis
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from src.pm_common.errors import RateLimitError
from src.pm_common.redis_client import get_redis
from src.pm_common.response import error_response

logger = logging.getLogger(__name__)

_WINDOW_SECONDS = 60
_EXEMPT_PATHS = frozenset({"/health", "/docs", "/openapi.json"})


def caller_key(request: Request) -> str:
    user_id = request.headers.get("X-User-Id")
    if user_id and user_id.strip():
        return f"user:{user_id.strip()}"
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return f"ip:{forwarded.split(',')[0].strip()}"
    host = request.client.host if request.client else "unknown"
    return f"ip:{host}"


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: ASGIApp,
        limit_per_minute: int,
        redis_factory: Callable[[], Awaitable[aioredis.Redis]] = get_redis,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(app)
        self._limit = limit_per_minute
        self._redis_factory = redis_factory
        self._clock = clock

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if self._limit <= 0 or request.url.path in _EXEMPT_PATHS:
            return await call_next(request)

        now = self._clock()
        window = int(now // _WINDOW_SECONDS)
        key = f"ratelimit:{caller_key(request)}:{window}"
        try:
            redis = await self._redis_factory()
            count = await redis.incr(key)
            if count == 1:
                await redis.expire(key, _WINDOW_SECONDS)
        except RedisError as e:
            logger.warning("Rate limiter unavailable, request not throttled: %s", e)
            return await call_next(request)

        if count > self._limit:
            retry_after = _WINDOW_SECONDS - int(now % _WINDOW_SECONDS)
            err = RateLimitError()
            body = error_response(err.code, err.message)
            body.request_id = getattr(request.state, "request_id", body.request_id)
            logger.info("Throttled %s on %s (%d in window)", key, request.url.path, count)
            return JSONResponse(
                status_code=err.http_status,
                content=body.model_dump(),
                headers={"Retry-After": str(retry_after)},
            )
        return await call_next(request)
