"""Unit tests for the Redis-backed fixed-window rate limiter."""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from src.services.rate_limiter import (
    RATE_LIMIT_SCRIPT,
    RateLimiter,
    RateLimiterError,
)


@pytest.fixture
def limiter(fake_redis):
    return RateLimiter(fake_redis, requests_per_minute=5)


class TestCheckAndConsume:
    @pytest.mark.asyncio
    async def test_first_n_requests_allowed(self, limiter):
        results = [await limiter.check_and_consume("user-1") for _ in range(5)]

        assert all(r.allowed for r in results)
        assert [r.remaining for r in results] == [4, 3, 2, 1, 0]

    @pytest.mark.asyncio
    async def test_sixth_request_denied(self, limiter):
        for _ in range(5):
            await limiter.check_and_consume("user-1")

        result = await limiter.check_and_consume("user-1")

        assert result.allowed is False
        assert result.remaining == 0
        assert 0 < result.reset_in_seconds <= 60

    @pytest.mark.asyncio
    async def test_users_are_independent(self, limiter):
        for _ in range(6):
            await limiter.check_and_consume("user-1")

        result = await limiter.check_and_consume("user-2")

        assert result.allowed is True
        assert result.remaining == 4

    @pytest.mark.asyncio
    async def test_window_expiry_resets_quota(self, limiter, fake_redis):
        for _ in range(6):
            await limiter.check_and_consume("user-1")

        fake_redis.advance(61)
        result = await limiter.check_and_consume("user-1")

        assert result.allowed is True
        assert result.remaining == 4

    @pytest.mark.asyncio
    async def test_expiry_set_only_on_first_increment(self, limiter, fake_redis):
        await limiter.check_and_consume("user-1")
        first_deadline = fake_redis.expires_at["rate_limit:user-1"]

        fake_redis.advance(30)
        result = await limiter.check_and_consume("user-1")

        # Later increments in the window must not extend it
        assert fake_redis.expires_at["rate_limit:user-1"] == first_deadline
        assert result.reset_in_seconds == 30

    @pytest.mark.asyncio
    async def test_last_millisecond_of_window_never_reports_zero(self, limiter, fake_redis):
        for _ in range(5):
            await limiter.check_and_consume("user-1")

        fake_redis.advance(59.9995)
        result = await limiter.check_and_consume("user-1")

        assert result.allowed is False
        assert 0 < result.reset_in_seconds <= 0.001

    @pytest.mark.asyncio
    async def test_sub_second_ttl_kept(self):
        redis_client = Mock()
        redis_client.register_script = Mock(return_value=AsyncMock(return_value=[6, 250]))
        limiter = RateLimiter(redis_client, requests_per_minute=5)

        result = await limiter.check_and_consume("user-1")

        assert result.reset_in_seconds == 0.25

    @pytest.mark.asyncio
    async def test_concurrent_requests_exactly_limit_allowed(self, limiter):
        results = await asyncio.gather(*(limiter.check_and_consume("user-1") for _ in range(20)))

        assert sum(r.allowed for r in results) == 5
        assert sum(not r.allowed for r in results) == 15

    @pytest.mark.asyncio
    async def test_missing_ttl_reports_full_window(self):
        redis_client = Mock()
        redis_client.register_script = Mock(return_value=AsyncMock(return_value=[1, -1]))
        limiter = RateLimiter(redis_client, requests_per_minute=5)

        result = await limiter.check_and_consume("user-1")

        assert result.allowed is True
        assert result.reset_in_seconds == 60

    @pytest.mark.asyncio
    async def test_redis_error_raised_as_limiter_error(self):
        redis_client = Mock()
        redis_client.register_script = Mock(
            return_value=AsyncMock(side_effect=RedisConnectionError("connection refused"))
        )
        limiter = RateLimiter(redis_client)

        with pytest.raises(RateLimiterError, match="connection refused"):
            await limiter.check_and_consume("user-1")

    @pytest.mark.asyncio
    async def test_malformed_script_result(self):
        redis_client = Mock()
        redis_client.register_script = Mock(return_value=AsyncMock(return_value="OK"))
        limiter = RateLimiter(redis_client)

        with pytest.raises(RateLimiterError):
            await limiter.check_and_consume("user-1")


class TestAdministration:
    @pytest.mark.asyncio
    async def test_get_count_does_not_consume(self, limiter):
        await limiter.check_and_consume("user-1")
        await limiter.check_and_consume("user-1")

        assert await limiter.get_count("user-1") == 2
        assert await limiter.get_count("user-1") == 2
        assert await limiter.get_count("nobody") == 0

    @pytest.mark.asyncio
    async def test_reset_clears_quota(self, limiter):
        for _ in range(6):
            await limiter.check_and_consume("user-1")

        await limiter.reset("user-1")
        result = await limiter.check_and_consume("user-1")

        assert result.allowed is True
        assert result.remaining == 4

    @pytest.mark.asyncio
    async def test_aclose_closes_client(self, limiter, fake_redis):
        await limiter.aclose()

        assert fake_redis.closed is True


def test_key_format():
    assert RateLimiter.key_for("12345") == "rate_limit:12345"


def test_script_registered_once(fake_redis):
    RateLimiter(fake_redis)

    assert fake_redis.scripts == [RATE_LIMIT_SCRIPT]


def test_invalid_limit_rejected(fake_redis):
    with pytest.raises(ValueError):
        RateLimiter(fake_redis, requests_per_minute=0)
