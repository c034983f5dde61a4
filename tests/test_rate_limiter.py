"""Tests for the fixed-window rate limiter."""
import asyncio

import pytest

from productive_mcp.rate_limiter import RATE_LIMIT_REQUESTS, RATE_LIMIT_WINDOW_MS, RateLimiter


class TestQuota:
    """Test that the quota is enforced per window."""

    def test_defaults(self, limiter):
        """The default quota is 100 requests per 10 seconds."""
        assert RATE_LIMIT_REQUESTS == 100
        assert RATE_LIMIT_WINDOW_MS == 10_000
        assert limiter.max_requests == 100
        assert limiter.window_seconds == 10.0

    @pytest.mark.asyncio
    async def test_first_hundred_requests_do_not_wait(self, limiter, clock):
        """A burst up to the quota passes without sleeping."""
        for _ in range(100):
            await limiter.acquire()

        assert clock.sleeps == []
        assert limiter.window.count == 100

    @pytest.mark.asyncio
    async def test_request_over_quota_waits_until_window_end(self, limiter, clock):
        """The 101st request in a window is held until the window rolls over."""
        start = clock()
        for _ in range(100):
            await limiter.acquire()
        clock.advance(4.0)

        await limiter.acquire()

        assert clock.sleeps == [pytest.approx(6.0)]
        assert clock() == pytest.approx(start + 10.0)
        # Fresh window holds only the request that waited
        assert limiter.window.count == 1
        assert limiter.window.window_start == pytest.approx(start + 10.0)

    @pytest.mark.asyncio
    async def test_wait_logs_warning(self, limiter, clock, caplog):
        """Sleeping at the gate logs the rounded-up wait."""
        for _ in range(100):
            await limiter.acquire()
        clock.advance(0.5)

        with caplog.at_level("WARNING", logger="productive-mcp.rate_limiter"):
            await limiter.acquire()

        assert "Rate limit reached. Waiting 10 seconds..." in caplog.text

    @pytest.mark.asyncio
    async def test_custom_quota(self, clock):
        """Quota and window are constructor parameters."""
        limiter = RateLimiter(max_requests=2, window_seconds=1.0, clock=clock, sleep=clock.sleep)
        await limiter.acquire()
        await limiter.acquire()
        await limiter.acquire()

        assert clock.sleeps == [pytest.approx(1.0)]
        assert limiter.window.count == 1


class TestWindowRollover:
    """Test the lazy window reset."""

    @pytest.mark.asyncio
    async def test_elapsed_window_resets_without_waiting(self, limiter, clock):
        """After a full window has passed the count starts again at zero."""
        for _ in range(100):
            await limiter.acquire()
        clock.advance(10.0)

        await limiter.wait_for_rate_limit()

        assert clock.sleeps == []
        assert limiter.window.count == 0
        assert limiter.window.window_start == clock()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("count", [0, 1, 57, 100])
    async def test_rollover_ignores_prior_count(self, limiter, clock, count):
        for _ in range(count):
            limiter.record_request()
        clock.advance(12.5)

        await limiter.wait_for_rate_limit()

        assert clock.sleeps == []
        assert limiter.window.count == 0

    @pytest.mark.asyncio
    async def test_under_quota_does_not_reset(self, limiter, clock):
        """Inside a window with spare quota nothing changes."""
        start = limiter.window.window_start
        await limiter.acquire()
        clock.advance(3.0)

        await limiter.wait_for_rate_limit()

        assert limiter.window.count == 1
        assert limiter.window.window_start == start

    def test_record_request_increments(self, limiter):
        """record_request charges exactly one request."""
        limiter.record_request()
        limiter.record_request()
        assert limiter.window.count == 2


class TestStatus:
    """Test get_status reporting."""

    def test_fresh_limiter(self, limiter):
        """A new limiter reports an empty window."""
        assert limiter.get_status() == {"count": 0, "limit": 100, "window_ms": 10000, "remaining": 100}

    def test_counts_requests(self, limiter):
        """Recorded requests reduce the remaining quota."""
        for _ in range(30):
            limiter.record_request()

        status = limiter.get_status()
        assert status["count"] == 30
        assert status["remaining"] == 70

    def test_elapsed_window_reported_empty_without_mutation(self, limiter, clock):
        """An expired window reads as empty but is not reset by the read."""
        for _ in range(50):
            limiter.record_request()
        start = limiter.window.window_start
        clock.advance(11.0)

        assert limiter.get_status() == {"count": 0, "limit": 100, "window_ms": 10000, "remaining": 100}
        assert limiter.window.count == 50
        assert limiter.window.window_start == start

    def test_repeated_reads_agree(self, limiter, clock):
        """Reading the status many times gives the same answer as reading it once."""
        for _ in range(7):
            limiter.record_request()
        clock.advance(2.0)

        first = limiter.get_status()
        for _ in range(10):
            assert limiter.get_status() == first
        assert limiter.window.count == 7

    def test_remaining_never_negative(self, limiter):
        """Over-recording does not produce a negative remaining count."""
        for _ in range(105):
            limiter.record_request()
        assert limiter.get_status()["remaining"] == 0


class TestConcurrency:
    """Test that concurrent callers share one quota."""

    @pytest.mark.asyncio
    async def test_concurrent_callers_serialise_at_the_gate(self, clock):
        """Only the quota's worth of tasks pass per window; the rest wait once."""
        limiter = RateLimiter(max_requests=3, window_seconds=10.0, clock=clock, sleep=clock.sleep)

        await asyncio.gather(*(limiter.acquire() for _ in range(5)))

        # Three pass, the fourth sleeps out the window, the fifth fits the new one
        assert len(clock.sleeps) == 1
        assert limiter.window.count == 2
