"""
Progress tracking: sliding-window speed, ETA and formatting.
"""

from __future__ import annotations

import math
import time
from collections import deque
from typing import Callable, Protocol

from rich.console import Console
from rich.progress import BarColumn, Progress, TaskID, TextColumn

from mediapull.services.transfer._config import (
    PROGRESS_BAR_WIDTH,
    SAMPLE_INTERVAL,
    SPEED_SAMPLE_SIZE,
)
from mediapull.services.transfer._models import ProgressSnapshot, SpeedSample

SPEED_UNITS = ("B/s", "KB/s", "MB/s", "GB/s")


def format_speed(bytes_per_second: float) -> str:
    """
    Format a rate with the largest fitting binary unit.

    Example:
        >>> format_speed(1536)
        '1.50 KB/s'
        >>> format_speed(500)
        '500.00 B/s'
    """
    value = float(bytes_per_second)
    unit = 0
    while value > 1024 and unit < len(SPEED_UNITS) - 1:
        value /= 1024
        unit += 1
    return f"{value:.2f} {SPEED_UNITS[unit]}"


def format_eta(seconds: float | None) -> str:
    """
    Format a duration as ``Xd Xh Xm Xs``, dropping leading zero units.

    Example:
        >>> format_eta(125)
        '2m 5s'
        >>> format_eta(90065)
        '1d 1h 1m 5s'
    """
    if seconds is None:
        return "unknown"

    total = max(0, math.ceil(seconds))
    days, rest = divmod(total, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, secs = divmod(rest, 60)

    if days:
        return f"{days}d {hours}h {minutes}m {secs}s"
    if hours:
        return f"{hours}h {minutes}m {secs}s"
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


class ProgressMeter:
    """
    Sliding-window throughput estimator.

    Cumulative byte counts are sampled at most once per interval; speed is
    the mean of the last SPEED_SAMPLE_SIZE per-interval throughputs.
    """

    def __init__(
        self,
        total: int,
        initial: int = 0,
        sample_size: int = SPEED_SAMPLE_SIZE,
        interval: float = SAMPLE_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.total = total
        self.transferred = initial
        self._interval = interval
        self._clock = clock
        self._samples: deque[SpeedSample] = deque(maxlen=sample_size)
        self._last_time = clock()
        self._last_transferred = initial

    @property
    def samples(self) -> list[SpeedSample]:
        return list(self._samples)

    @property
    def speed(self) -> float:
        """Mean of buffered samples in bytes/s (0 before the first sample)."""
        if not self._samples:
            return 0.0
        return sum(s.speed for s in self._samples) / len(self._samples)

    @property
    def eta_seconds(self) -> int | None:
        """Seconds until done, or None while speed is unknown."""
        speed = self.speed
        if speed <= 0:
            return None
        return math.ceil(max(0, self.total - self.transferred) / speed)

    def update(self, transferred: int) -> bool:
        """
        Record the cumulative byte count.

        Returns:
            True if a new sample was taken.
        """
        self.transferred = transferred
        now = self._clock()
        elapsed = now - self._last_time
        if elapsed < self._interval:
            return False

        self._samples.append(
            SpeedSample(
                timestamp=now,
                bytes_since_last=transferred - self._last_transferred,
                interval=elapsed,
            )
        )
        self._last_time = now
        self._last_transferred = transferred
        return True

    def snapshot(self) -> ProgressSnapshot:
        return ProgressSnapshot(
            transferred=self.transferred,
            total=self.total,
            speed=self.speed,
            eta_seconds=self.eta_seconds,
        )


class ProgressReporter(Protocol):
    """Receives progress from a running transfer."""

    def start(self, total: int, initial: int) -> None: ...

    def update(self, snapshot: ProgressSnapshot) -> None: ...

    def finish(self) -> None: ...


class NullReporter:
    """Reporter that discards everything."""

    def start(self, total: int, initial: int) -> None:
        pass

    def update(self, snapshot: ProgressSnapshot) -> None:
        pass

    def finish(self) -> None:
        pass


class CallbackReporter:
    """Adapts a ``callback(transferred, total)`` function to a reporter."""

    def __init__(self, callback: Callable[[int, int], None]) -> None:
        self._callback = callback

    def start(self, total: int, initial: int) -> None:
        self._callback(initial, total)

    def update(self, snapshot: ProgressSnapshot) -> None:
        self._callback(snapshot.transferred, snapshot.total)

    def finish(self) -> None:
        pass


def _percent(snapshot: ProgressSnapshot) -> str:
    return f"{snapshot.percent:.1f}%"


class RichProgressReporter:
    """Live progress line: bar, percent, speed and ETA."""

    def __init__(self, console: Console | None = None, description: str = "Downloading") -> None:
        self._progress = Progress(
            TextColumn("{task.description}"),
            BarColumn(bar_width=PROGRESS_BAR_WIDTH),
            TextColumn("{task.fields[percent]}"),
            TextColumn("{task.fields[eta]}"),
            TextColumn("{task.fields[speed]}"),
            console=console,
            transient=False,
        )
        self._description = description
        self._task: TaskID | None = None

    def start(self, total: int, initial: int) -> None:
        self._progress.start()
        self._task = self._progress.add_task(
            self._description,
            total=total,
            completed=initial,
            percent=_percent(ProgressSnapshot(transferred=initial, total=total)),
            speed=format_speed(0),
            eta=format_eta(None),
        )

    def update(self, snapshot: ProgressSnapshot) -> None:
        if self._task is None:
            return
        self._progress.update(
            self._task,
            completed=snapshot.transferred,
            percent=_percent(snapshot),
            speed=format_speed(snapshot.speed),
            eta=format_eta(snapshot.eta_seconds),
        )

    def finish(self) -> None:
        if self._task is not None:
            self._progress.stop()
            self._task = None
