import json
from time import time
from typing import Dict, Iterable, Optional, Tuple
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
import logging
import redis.asyncio as aioredis

from config import settings

logger = logging.getLogger(__name__)


class RateLimiterMiddleware(BaseHTTPMiddleware):
    """
    Distributed rate limiter using Redis (with fallback to in-memory).
    Uses Token Bucket Algorithm, keyed by client IP.
    Paths in exempt_paths (the Stripe webhook) are never limited.
    """

    def __init__(
        self,
        app,
        requests_per_minute: Optional[int] = None,
        exempt_paths: Iterable[str] = (),
        redis_url: Optional[str] = None,
    ):
        super().__init__(app)
        self.capacity = requests_per_minute or settings.rate_limit_per_minute
        self.refill_time_window = 60.0
        self.exempt_paths = frozenset(exempt_paths)
        # Fallback: in-memory storage (ip -> (tokens, last_refill_ts))
        self._buckets: Dict[str, Tuple[float, float]] = {}

        redis_url = redis_url if redis_url is not None else settings.redis_url
        self._redis = None
        if redis_url:
            self._redis = aioredis.from_url(redis_url, decode_responses=True)
            logger.info("Redis configured for rate limiting")
        else:
            logger.info("REDIS_URL not set. Using in-memory rate limiting.")

    def _get_client_ip(self, request: Request) -> str:
        xff = request.headers.get("x-forwarded-for")
        if xff:
            # Take first IP in the list
            return xff.split(",")[0].strip()
        client = request.client
        return client.host if client else "unknown"

    def _get_redis_key(self, ip: str) -> str:
        """Generate Redis key for rate limiting"""
        return f"rate_limit:{ip}"

    def _refill(self, tokens: float, last_refill: float, now: float) -> float:
        elapsed = max(0.0, now - last_refill)
        refill = (elapsed / self.refill_time_window) * self.capacity
        return min(self.capacity, tokens + refill)

    async def _check_rate_limit_redis(self, ip: str) -> Optional[bool]:
        """
        Check rate limit using Redis.
        Returns True if allowed, False if limited, None if Redis is unusable.
        """
        try:
            key = self._get_redis_key(ip)
            now = time()

            bucket_data = await self._redis.get(key)
            if bucket_data:
                data = json.loads(bucket_data)
                tokens = float(data.get("tokens", 0))
                last_refill = float(data.get("last_refill", now))
            else:
                # New bucket, start with full capacity
                tokens = float(self.capacity)
                last_refill = now

            tokens = self._refill(tokens, last_refill, now)
            if tokens < 1.0:
                return False

            tokens -= 1.0
            bucket_data = json.dumps({"tokens": tokens, "last_refill": now})
            await self._redis.setex(key, int(self.refill_time_window) + 10, bucket_data)
            return True

        except Exception as e:
            logger.warning(f"Redis rate limit check failed: {e}. Falling back to in-memory.")
            return None

    def _check_rate_limit_memory(self, ip: str) -> bool:
        now = time()
        tokens, last_refill = self._buckets.get(ip, (self.capacity, now))
        tokens = self._refill(tokens, last_refill, now)

        if tokens < 1.0:
            return False

        self._buckets[ip] = (tokens - 1.0, now)
        return True

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path in self.exempt_paths:
            return await call_next(request)

        ip = self._get_client_ip(request)

        allowed = None
        if self._redis is not None:
            allowed = await self._check_rate_limit_redis(ip)
        if allowed is None:
            allowed = self._check_rate_limit_memory(ip)

        if not allowed:
            return JSONResponse(
                status_code=429,
                content={
                    "ok": False,
                    "data": {},
                    "error": "rate_limited",
                    "message": "Rate limit exceeded. Try again shortly."
                },
            )

        return await call_next(request)
