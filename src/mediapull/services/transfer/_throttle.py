"""
Bandwidth throttling for chunk streams.
"""

from __future__ import annotations

import asyncio
import time
from typing import AsyncIterator, Awaitable, Callable

from mediapull.logging import get_logger

logger = get_logger(__name__)

# Accounting window length; unused allowance does not carry past it
WINDOW_SECONDS = 1.0


class RateLimiter:
    """
    Throttle an async chunk stream to a sustained bytes-per-second rate.

    Content and order pass through unchanged. Bursts can exceed the rate by
    at most one chunk; the long-run average stays at or below it.

    Example:
        >>> limiter = RateLimiter(1024 * 1024)
        >>> async for chunk in limiter.wrap(stream):
        ...     sink.write(chunk)
    """

    def __init__(
        self,
        bytes_per_second: int | None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if bytes_per_second is not None and bytes_per_second < 0:
            raise ValueError("bytes_per_second cannot be negative")
        self.bytes_per_second = bytes_per_second or None
        self._clock = clock
        self._sleep = sleep
        self._window_start = clock()
        self._bytes_in_window = 0
        self.delays_count = 0
        self.delayed_seconds = 0.0

    @property
    def enabled(self) -> bool:
        return self.bytes_per_second is not None

    def reset(self) -> None:
        """Start a fresh accounting window."""
        self._window_start = self._clock()
        self._bytes_in_window = 0

    def delay_for(self, chunk_size: int) -> float:
        """
        Seconds to wait before emitting a chunk of the given size.

        The chunk is always accounted into the current window. A window that
        has been open for WINDOW_SECONDS or more is restarted first, so idle
        time never turns into burst allowance.
        """
        if not self.enabled:
            return 0.0

        elapsed = self._clock() - self._window_start
        if elapsed >= WINDOW_SECONDS:
            self.reset()
            elapsed = 0.0
        pending = self._bytes_in_window + chunk_size
        allowed = self.bytes_per_second * elapsed

        self._bytes_in_window = pending
        if pending > allowed:
            return pending / self.bytes_per_second - elapsed
        return 0.0

    async def throttle(self, chunk_size: int) -> None:
        """Suspend until a chunk of this size may be emitted."""
        delay = self.delay_for(chunk_size)
        if delay <= 0:
            return
        self.delays_count += 1
        self.delayed_seconds += delay
        await self._sleep(delay)
        self.reset()

    async def wrap(self, stream: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
        """Yield chunks from stream, throttled. No limit means passthrough."""
        if not self.enabled:
            async for chunk in stream:
                yield chunk
            return

        logger.debug(f"Throttling to {self.bytes_per_second:,} B/s")
        self.reset()
        async for chunk in stream:
            await self.throttle(len(chunk))
            yield chunk
