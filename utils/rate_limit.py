import json
from time import time
from typing import Dict, Iterable, Optional, Tuple
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
import logging

import redis.asyncio as redis

logger = logging.getLogger(__name__)

# Provider callbacks and probes must never be throttled
DEFAULT_EXEMPT_PATHS = ("/health", "/webhook")


def build_redis_client(redis_url: Optional[str]) -> Optional[redis.Redis]:
    """Create a lazily-connecting Redis client, or None when REDIS_URL is unset."""
    if not redis_url:
        logger.info("ℹ️ REDIS_URL not set. Using in-memory rate limiting.")
        return None
    return redis.from_url(redis_url, decode_responses=True)


class RateLimiterMiddleware(BaseHTTPMiddleware):
    """
    Distributed rate limiter using Redis (with fallback to in-memory).
    Uses Token Bucket Algorithm.
    A limit of 0 disables throttling.
    """

    def __init__(
        self,
        app,
        requests_per_minute: int = 120,
        redis_client: Optional[redis.Redis] = None,
        exempt_paths: Iterable[str] = DEFAULT_EXEMPT_PATHS,
    ):
        super().__init__(app)
        self.capacity = requests_per_minute
        self.refill_time_window = 60.0
        self.exempt_paths = set(exempt_paths)
        # Fallback: in-memory storage (ip -> (tokens, last_refill_ts))
        self._buckets: Dict[str, Tuple[float, float]] = {}
        self._redis = redis_client

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

    def _take_token(self, tokens: float, last_refill: float, now: float) -> Tuple[bool, float]:
        # Refill based on elapsed time
        elapsed = max(0.0, now - last_refill)
        refill = (elapsed / self.refill_time_window) * self.capacity
        tokens = min(self.capacity, tokens + refill)
        if tokens < 1.0:
            return False, tokens
        return True, tokens - 1.0

    async def _check_rate_limit_redis(self, ip: str) -> Optional[bool]:
        """
        Check rate limit using Redis.
        Returns True if allowed, False if rate limited, None if Redis failed.
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

            allowed, tokens = self._take_token(tokens, last_refill, now)
            if not allowed:
                return False

            # Store updated state with TTL (expire after refill window)
            bucket_data = json.dumps({"tokens": tokens, "last_refill": now})
            await self._redis.setex(key, int(self.refill_time_window) + 10, bucket_data)
            return True

        except Exception as e:
            logger.warning(f"Redis rate limit check failed: {e}. Falling back to in-memory.")
            return None

    async def _check_rate_limit_memory(self, ip: str) -> bool:
        """
        Check rate limit using in-memory storage (fallback).
        Returns True if request is allowed, False if rate limited.
        """
        now = time()
        tokens, last_refill = self._buckets.get(ip, (self.capacity, now))
        allowed, tokens = self._take_token(tokens, last_refill, now)
        if allowed:
            self._buckets[ip] = (tokens, now)
        return allowed

    async def dispatch(self, request: Request, call_next) -> Response:
        if self.capacity <= 0 or request.url.path in self.exempt_paths:
            return await call_next(request)

        ip = self._get_client_ip(request)

        allowed = None
        if self._redis is not None:
            allowed = await self._check_rate_limit_redis(ip)
        if allowed is None:
            allowed = await self._check_rate_limit_memory(ip)

        if not allowed:
            return JSONResponse(
                status_code=429,
                content={"error": "Rate limit exceeded. Try again shortly."},
            )

        return await call_next(request)
