"""
Models for transfer service.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class TransferStatus(str, Enum):
    """Lifecycle state of a single transfer."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    SKIPPED = "skipped"
    FAILED = "failed"


class TransferRequest(BaseModel):
    """What to fetch and where to put it."""

    model_config = ConfigDict(frozen=True)

    remote_ref: str
    local_path: Path
    rate_limit: int | None = Field(default=None, gt=0)  # bytes per second


class TransferSession(BaseModel):
    """
    Mutable state of one running transfer.

    Owned by the pipeline driving the transfer; transferred_bytes only
    moves forward and never leaves [start_offset, remote_size].
    """

    remote_size: int = 0
    start_offset: int = 0
    transferred_bytes: int = 0
    status: TransferStatus = TransferStatus.PENDING

    def plan(self, remote_size: int, start_offset: int) -> None:
        """Record size and offset once both are known."""
        if self.status is not TransferStatus.PENDING:
            raise RuntimeError(f"Cannot plan a transfer in state {self.status.value}")
        self.remote_size = remote_size
        self.start_offset = start_offset
        self.transferred_bytes = start_offset

    def begin(self) -> None:
        if self.status is not TransferStatus.PENDING:
            raise RuntimeError(f"Cannot start a transfer in state {self.status.value}")
        self.status = TransferStatus.IN_PROGRESS

    def advance(self, nbytes: int) -> int:
        """Account for a received chunk and return the new total."""
        if self.status is not TransferStatus.IN_PROGRESS:
            raise RuntimeError(f"Cannot receive data in state {self.status.value}")
        if nbytes < 0:
            raise ValueError("Chunk size cannot be negative")
        total = self.transferred_bytes + nbytes
        if total > self.remote_size:
            raise ValueError(
                f"Received {total:,} bytes, more than remote size {self.remote_size:,}"
            )
        self.transferred_bytes = total
        return total

    def skip(self) -> None:
        if self.status is not TransferStatus.PENDING:
            raise RuntimeError(f"Cannot skip a transfer in state {self.status.value}")
        self.status = TransferStatus.SKIPPED

    def complete(self) -> None:
        if self.status is not TransferStatus.IN_PROGRESS:
            raise RuntimeError(f"Cannot complete a transfer in state {self.status.value}")
        self.status = TransferStatus.COMPLETED

    def fail(self) -> None:
        if self.status in (TransferStatus.COMPLETED, TransferStatus.SKIPPED):
            raise RuntimeError(f"Cannot fail a transfer in state {self.status.value}")
        self.status = TransferStatus.FAILED

    @property
    def received_bytes(self) -> int:
        """Bytes fetched in this run (excluding the resumed prefix)."""
        return self.transferred_bytes - self.start_offset

    @property
    def remaining_bytes(self) -> int:
        return self.remote_size - self.transferred_bytes


@dataclass(frozen=True)
class SpeedSample:
    """Bytes received over one sampling interval."""

    timestamp: float
    bytes_since_last: int
    interval: float

    @property
    def speed(self) -> float:
        if self.interval <= 0:
            return 0.0
        return self.bytes_since_last / self.interval


class ProgressSnapshot(BaseModel):
    """Point-in-time progress pushed to reporters."""

    transferred: int
    total: int
    speed: float = 0.0
    eta_seconds: int | None = None

    @property
    def percent(self) -> float:
        if self.total <= 0:
            return 100.0
        return min(100.0, self.transferred * 100.0 / self.total)


class TransferStats(BaseModel):
    """Statistics from a transfer operation."""

    bytes_transferred: int = 0
    chunks_count: int = 0
    backpressure_pauses: int = 0
    throttle_delays: int = 0


class TransferResult(BaseModel):
    """Result of a transfer operation."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    status: TransferStatus
    bytes_transferred: int = 0
    elapsed_time: float = 0.0
    message: str = ""
    local_path: Path | None = None
    remote_size: int = 0
    start_offset: int = 0
    error: str | None = None
    stats: TransferStats = Field(default_factory=TransferStats)

    @property
    def success(self) -> bool:
        """Completed and skipped transfers both count as success."""
        return self.status in (TransferStatus.COMPLETED, TransferStatus.SKIPPED)

    @property
    def speed(self) -> float:
        """Average speed of this run in bytes/s."""
        if self.elapsed_time <= 0:
            return 0.0
        return self.bytes_transferred / self.elapsed_time

    def __repr__(self) -> str:
        size_mb = self.bytes_transferred / 1024 / 1024
        if self.success:
            return (
                f"TransferResult({self.status.value}, {size_mb:.1f}MB, "
                f"{self.elapsed_time:.1f}s)"
            )
        return f"TransferResult(failed: {self.error})"

    def __str__(self) -> str:
        if self.status is TransferStatus.COMPLETED:
            size_mb = self.bytes_transferred / 1024 / 1024
            seconds = math.ceil(self.elapsed_time) if self.elapsed_time > 0 else 0
            return f"{self.message} ({size_mb:.1f} MB in {seconds}s)"
        if self.status is TransferStatus.FAILED:
            return f"Failed: {self.message}"
        return self.message
