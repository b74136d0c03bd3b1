"""Per-user rate limiter backed by Redis.

Fixed 60-second window per user. The counter increment and the expiry are
set by one Lua script so a key can never be incremented without getting a
TTL, and the TTL is only set on the first increment of a window.
"""

from dataclasses import dataclass

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from src.lib.constants import (
    RATE_LIMIT_KEY_PREFIX,
    RATE_LIMIT_PER_MINUTE,
    RATE_LIMIT_WINDOW_SECONDS,
)
from src.lib.logging import get_logger, short_user_id

logger = get_logger(__name__)

# KEYS[1] = counter key, ARGV[1] = window in seconds; returns {count, pttl}
RATE_LIMIT_SCRIPT = """
local count = redis.call('INCR', KEYS[1])
if count == 1 then
    redis.call('EXPIRE', KEYS[1], ARGV[1])
end
local pttl = redis.call('PTTL', KEYS[1])
return {count, pttl}
"""


class RateLimiterError(Exception):
    """The rate-limit store could not be reached or returned garbage."""

    pass


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a rate limit check."""

    allowed: bool
    remaining: int
    reset_in_seconds: float


class RateLimiter:
    """Fixed-window request counter per user.

    The limiter does not decide what happens when Redis is down: store errors
    are raised as RateLimiterError and the caller picks fail-open or closed.
    """

    def __init__(
        self,
        redis_client: aioredis.Redis,
        requests_per_minute: int = RATE_LIMIT_PER_MINUTE,
        window_seconds: int = RATE_LIMIT_WINDOW_SECONDS,
    ):
        """Initialize rate limiter.

        Args:
            redis_client: Async Redis client
            requests_per_minute: Requests allowed per window
            window_seconds: Window length in seconds
        """
        if requests_per_minute < 1:
            raise ValueError("requests_per_minute must be at least 1")

        self.redis = redis_client
        self.limit = requests_per_minute
        self.window_seconds = window_seconds
        self._script = redis_client.register_script(RATE_LIMIT_SCRIPT)

        logger.info(
            "rate_limiter_initialized",
            limit=self.limit,
            window_seconds=self.window_seconds,
        )

    @classmethod
    def from_url(
        cls, redis_url: str, requests_per_minute: int = RATE_LIMIT_PER_MINUTE
    ) -> "RateLimiter":
        """Create a rate limiter connected to a Redis URL."""
        client = aioredis.from_url(redis_url, decode_responses=True)
        return cls(client, requests_per_minute=requests_per_minute)

    @staticmethod
    def key_for(user_id: str) -> str:
        return f"{RATE_LIMIT_KEY_PREFIX}{user_id}"

    async def check_and_consume(self, user_id: str) -> RateLimitResult:
        """Count a request for user_id and report whether it is allowed.

        The Nth request of a window is allowed, the N+1th is denied.

        Args:
            user_id: User identifier

        Returns:
            RateLimitResult with remaining quota and live window TTL

        Raises:
            RateLimiterError: If Redis fails or returns an unexpected result
        """
        key = self.key_for(user_id)

        try:
            result = await self._script(keys=[key], args=[self.window_seconds])
        except RedisError as e:
            raise RateLimiterError(f"failed to execute rate limit script: {e}") from e

        if not isinstance(result, (list, tuple)) or len(result) != 2:
            raise RateLimiterError(f"unexpected rate limit script result: {result!r}")

        try:
            count = int(result[0])
            ttl_ms = int(result[1])
        except (TypeError, ValueError) as e:
            raise RateLimiterError(f"unexpected rate limit script result: {result!r}") from e

        # -1/-2 means no TTL on the key; report a full window.
        # Milliseconds so the last second of a window never reports 0.
        if ttl_ms < 0:
            reset_in = float(self.window_seconds)
        else:
            reset_in = max(ttl_ms, 1) / 1000

        allowed = count <= self.limit
        remaining = max(0, self.limit - count)

        if not allowed:
            logger.warning(
                "rate_limit_exceeded",
                user_id=short_user_id(user_id),
                requests=count,
                limit=self.limit,
                reset_in_seconds=reset_in,
            )
        else:
            logger.debug("rate_limit_allowed", user_id=short_user_id(user_id), remaining=remaining)

        return RateLimitResult(allowed=allowed, remaining=remaining, reset_in_seconds=reset_in)

    async def reset(self, user_id: str) -> None:
        """Clear the counter for a user (administrative overrides or testing).

        Raises:
            RateLimiterError: If Redis fails
        """
        try:
            await self.redis.delete(self.key_for(user_id))
        except RedisError as e:
            raise RateLimiterError(f"failed to reset rate limit: {e}") from e

        logger.info("rate_limit_reset", user_id=short_user_id(user_id))

    async def get_count(self, user_id: str) -> int:
        """Return the current request count without consuming quota.

        Raises:
            RateLimiterError: If Redis fails
        """
        try:
            value = await self.redis.get(self.key_for(user_id))
        except RedisError as e:
            raise RateLimiterError(f"failed to get rate limit count: {e}") from e

        if value is None:
            return 0
        return int(value)

    async def aclose(self) -> None:
        await self.redis.aclose()
