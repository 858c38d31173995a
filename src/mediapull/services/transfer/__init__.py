"""
Transfer service for mediapull.

Moves one large remote file to local storage:
- Resume from the length of an existing partial file
- Optional bandwidth throttling
- Backpressure between the remote stream and the local writer
- Sliding-window speed and ETA reporting
"""

from mediapull.services.transfer._aio import AsyncTransferService
from mediapull.services.transfer._models import (
    ProgressSnapshot,
    SpeedSample,
    TransferRequest,
    TransferResult,
    TransferSession,
    TransferStats,
    TransferStatus,
)
from mediapull.services.transfer._pipeline import TransferPipeline
from mediapull.services.transfer._progress import (
    CallbackReporter,
    NullReporter,
    ProgressMeter,
    ProgressReporter,
    RichProgressReporter,
    format_eta,
    format_speed,
)
from mediapull.services.transfer._resume import ResumePlan, ResumePlanner
from mediapull.services.transfer._sync import TransferService
from mediapull.services.transfer._throttle import RateLimiter

__all__ = [
    "AsyncTransferService",
    "TransferService",
    "TransferPipeline",
    "TransferRequest",
    "TransferResult",
    "TransferSession",
    "TransferStats",
    "TransferStatus",
    "SpeedSample",
    "ProgressSnapshot",
    "ProgressMeter",
    "ProgressReporter",
    "RichProgressReporter",
    "CallbackReporter",
    "NullReporter",
    "ResumePlan",
    "ResumePlanner",
    "RateLimiter",
    "format_eta",
    "format_speed",
]
