"""Tests for bandwidth throttling."""

import pytest

from mediapull.services.transfer._throttle import RateLimiter


async def chunks(count, size):
    for i in range(count):
        yield bytes([i % 256]) * size


class TestRateLimiterInit:
    """Tests for RateLimiter construction."""

    def test_disabled_without_rate(self):
        assert not RateLimiter(None).enabled
        assert not RateLimiter(0).enabled

    def test_negative_rate(self):
        with pytest.raises(ValueError):
            RateLimiter(-1)


class TestRateLimiterDelay:
    """Tests for delay computation."""

    def test_no_delay_when_disabled(self, fake_clock):
        limiter = RateLimiter(None, clock=fake_clock)
        assert limiter.delay_for(10_000) == 0.0

    def test_delay_when_ahead_of_rate(self, fake_clock):
        limiter = RateLimiter(1000, clock=fake_clock)
        assert limiter.delay_for(500) == pytest.approx(0.5)

    def test_no_delay_when_behind_rate(self, fake_clock):
        limiter = RateLimiter(1000, clock=fake_clock)
        fake_clock.advance(0.5)
        assert limiter.delay_for(400) == 0.0

    def test_window_accumulates(self, fake_clock):
        limiter = RateLimiter(1000, clock=fake_clock)
        fake_clock.advance(0.9)
        assert limiter.delay_for(800) == 0.0
        # 800 + 400 bytes after 0.9s at 1000 B/s
        assert limiter.delay_for(400) == pytest.approx(0.3)

    def test_stale_window_restarts(self, fake_clock):
        limiter = RateLimiter(1000, clock=fake_clock)
        fake_clock.advance(5.0)
        # Five idle seconds give no allowance; the chunk needs its own second
        assert limiter.delay_for(1000) == pytest.approx(1.0)


class TestRateLimiterWrap:
    """Tests for wrapping a chunk stream."""

    @pytest.mark.asyncio
    async def test_passthrough_unthrottled(self, fake_clock):
        limiter = RateLimiter(None, clock=fake_clock, sleep=fake_clock.sleep)
        out = [c async for c in limiter.wrap(chunks(5, 100))]
        assert len(out) == 5
        assert fake_clock.sleeps == []

    @pytest.mark.asyncio
    async def test_content_and_order_preserved(self, fake_clock):
        limiter = RateLimiter(256, clock=fake_clock, sleep=fake_clock.sleep)
        out = [c async for c in limiter.wrap(chunks(4, 64))]
        assert out == [bytes([i]) * 64 for i in range(4)]

    @pytest.mark.asyncio
    async def test_emission_time_lower_bound(self, fake_clock):
        """S bytes at R bytes/s take at least S/R minus one chunk's worth."""
        rate = 1000
        count, size = 50, 100
        limiter = RateLimiter(rate, clock=fake_clock, sleep=fake_clock.sleep)
        started = fake_clock()

        total = 0
        async for chunk in limiter.wrap(chunks(count, size)):
            total += len(chunk)

        elapsed = fake_clock() - started
        assert total == count * size
        assert elapsed >= total / rate - size / rate
        assert limiter.delays_count > 0
        assert limiter.delayed_seconds == pytest.approx(sum(fake_clock.sleeps))

    @pytest.mark.asyncio
    async def test_average_rate_not_exceeded(self, fake_clock):
        rate = 64 * 1024
        limiter = RateLimiter(rate, clock=fake_clock, sleep=fake_clock.sleep)
        started = fake_clock()
        total = 0
        async for chunk in limiter.wrap(chunks(32, 16 * 1024)):
            total += len(chunk)
            fake_clock.advance(0.01)  # consumer work
        assert total / (fake_clock() - started) <= rate * 1.01

    @pytest.mark.asyncio
    async def test_idle_source_does_not_burst(self, fake_clock):
        """A source that stalls and then floods is still held to the rate."""
        rate, count, size = 1000, 8, 1000

        async def stalled_then_fast():
            await fake_clock.sleep(10.0)
            for i in range(count):
                yield bytes([i]) * size

        limiter = RateLimiter(rate, clock=fake_clock, sleep=fake_clock.sleep)
        started = fake_clock()
        total = 0
        async for chunk in limiter.wrap(stalled_then_fast()):
            total += len(chunk)

        assert total == count * size
        assert fake_clock() - started >= 10.0 + (total - size) / rate
        assert limiter.delays_count == count
