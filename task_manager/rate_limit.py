"""Rate limiting for the credential endpoints (registration and login).

Uses a sliding window per client IP. State lives in Redis when ``redis_url``
is configured, otherwise in process memory. In-memory counters are
per-process, so a multi-worker deployment multiplies the effective limit by
the number of workers unless Redis is configured.

Redis is reached through redis.asyncio so a round-trip never blocks the event
loop. A threading.Lock guards the in-memory state; the critical section is a
few dict operations and never spans an await.
"""

import time
from collections import defaultdict
from dataclasses import dataclass, field
from threading import Lock

import redis.asyncio as aioredis
from fastapi import Request

from task_manager.config import settings
from task_manager.logger import get_logger
from task_manager.utils import raise_too_many_requests

logger = get_logger(__name__)


@dataclass
class RateLimitConfig:
    """Rate limit configuration."""

    max_requests: int = 5  # Maximum requests in window
    window_seconds: int = 60  # Time window in seconds
    block_seconds: int = 300  # Block duration after exceeding limit


@dataclass
class RateLimitState:
    """State for a single key (in-memory backend)."""

    requests: list[float] = field(default_factory=list)
    blocked_until: float = 0.0


class RateLimiter:
    """Sliding-window rate limiter with Redis support and in-memory fallback."""

    def __init__(self, config: RateLimitConfig | None = None, *, namespace: str = "rl") -> None:
        self.config = config or RateLimitConfig()
        self.namespace = namespace
        self._local_state: dict[str, RateLimitState] = defaultdict(RateLimitState)
        self._lock = Lock()
        self._redis: aioredis.Redis | None = None

        if settings.redis_url:
            # Connects lazily; a dead server degrades to local state per request
            self._redis = aioredis.from_url(settings.redis_url, decode_responses=True)

    async def is_allowed(self, key: str) -> tuple[bool, int]:
        """Record a request for ``key``; return (allowed, retry_after_seconds)."""
        if self._redis:
            return await self._is_allowed_redis(key)
        return self._is_allowed_local(key)

    async def _is_allowed_redis(self, key: str) -> tuple[bool, int]:
        """Redis sorted set holding request timestamps inside the window."""
        now = time.time()
        rl_key = f"{self.namespace}:{key}"
        block_key = f"{self.namespace}_block:{key}"

        try:
            blocked_until = await self._redis.get(block_key)
            if blocked_until:
                remaining = int(float(blocked_until) - now)
                if remaining > 0:
                    return False, remaining

            async with self._redis.pipeline() as pipe:
                pipe.zadd(rl_key, {str(now): now})
                pipe.zremrangebyscore(rl_key, 0, now - self.config.window_seconds)
                pipe.zcard(rl_key)
                pipe.expire(rl_key, self.config.window_seconds * 2)
                results = await pipe.execute()

            if results[2] > self.config.max_requests:
                await self._redis.setex(block_key, self.config.block_seconds, str(now + self.config.block_seconds))
                return False, self.config.block_seconds

            return True, 0
        except aioredis.RedisError as exc:
            logger.warning("Redis error during rate limiting, falling back to local", error=str(exc))
            return self._is_allowed_local(key)

    def _is_allowed_local(self, key: str) -> tuple[bool, int]:
        now = time.time()
        with self._lock:
            state = self._local_state[key]
            if state.blocked_until > now:
                return False, int(state.blocked_until - now)

            window_start = now - self.config.window_seconds
            state.requests = [ts for ts in state.requests if ts >= window_start]

            if len(state.requests) >= self.config.max_requests:
                state.blocked_until = now + self.config.block_seconds
                return False, self.config.block_seconds

            state.requests.append(now)
            return True, 0

    async def reset(self, key: str) -> None:
        """Forget the history of ``key`` (called after a successful attempt)."""
        if self._redis:
            try:
                await self._redis.delete(f"{self.namespace}:{key}", f"{self.namespace}_block:{key}")
            except aioredis.RedisError as exc:
                logger.warning("Redis error during reset, ignoring", error=str(exc))

        with self._lock:
            self._local_state.pop(key, None)

    def clear(self) -> None:
        """Drop all in-memory state."""
        with self._lock:
            self._local_state.clear()

    async def close(self) -> None:
        if self._redis:
            await self._redis.aclose()


def client_ip(request: Request) -> str:
    """Client address; X-Forwarded-For is only honoured behind a trusted proxy."""
    if settings.trust_proxy:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def enforce(request: Request, limiter: RateLimiter, message: str) -> str:
    """Count this request against ``limiter``; raise 429 when over the limit."""
    key = client_ip(request)
    allowed, retry_after = await limiter.is_allowed(key)
    if not allowed:
        logger.warning("Rate limit exceeded", client_ip=key, namespace=limiter.namespace)
        raise_too_many_requests(message, retry_after=retry_after)
    return key


login_rate_limiter = RateLimiter(
    RateLimitConfig(
        max_requests=5,  # 5 attempts
        window_seconds=60,  # per minute
        block_seconds=300,  # 5 minute block
    ),
    namespace="rl_login",
)

register_rate_limiter = RateLimiter(
    RateLimitConfig(
        max_requests=10,  # 10 attempts
        window_seconds=3600,  # per hour
        block_seconds=3600,  # 1 hour block
    ),
    namespace="rl_register",
)
