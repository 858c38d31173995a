"""
Synchronous transfer service.

Wrapper around AsyncTransferService using asyncio.run().
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Callable

from mediapull.config import TransferSettings
from mediapull.services.transfer._aio import AsyncTransferService
from mediapull.services.transfer._models import TransferRequest, TransferResult
from mediapull.services.transfer._progress import ProgressReporter


class TransferService:
    """
    Synchronous transfer service.

    Thin wrapper around AsyncTransferService for scripts that have no
    event loop of their own.

    Example:
        >>> service = TransferService(load_settings())
        >>> result = service.fetch("/data/media/tv/Show/S01E01.mkv", "show")
        >>> print(result)
    """

    def __init__(self, settings: TransferSettings) -> None:
        self._async_service = AsyncTransferService(settings)

    @property
    def settings(self) -> TransferSettings:
        return self._async_service.settings

    def resolve(
        self,
        locator: str,
        media_type: str | None = "movie",
        local_path: Path | None = None,
    ) -> tuple[str, Path]:
        """Turn a remote locator into (remote ref, local path)."""
        return self._async_service.resolve(locator, media_type, local_path)

    def fetch(
        self,
        locator: str,
        media_type: str | None = "movie",
        local_path: Path | None = None,
        rate_limit: int | None = None,
        reporter: ProgressReporter | None = None,
        on_progress: Callable[[int, int], None] | None = None,
    ) -> TransferResult:
        """
        Fetch one remote file, resuming a partial local copy if present.

        Args:
            locator: Server file path (sftp) or download key (http).
            media_type: Coarse tag used for library directories.
            local_path: Explicit destination.
            rate_limit: Bytes/s cap (default: configured speed limit).
            reporter: Live progress display.
            on_progress: Callback(transferred, total) for progress.

        Returns:
            TransferResult with completed, skipped or failed status.
        """
        return asyncio.run(
            self._async_service.fetch(
                locator,
                media_type=media_type,
                local_path=local_path,
                rate_limit=rate_limit,
                reporter=reporter,
                on_progress=on_progress,
            )
        )

    def transfer(
        self,
        request: TransferRequest,
        reporter: ProgressReporter | None = None,
    ) -> TransferResult:
        """Run a prepared request."""
        return asyncio.run(self._async_service.transfer(request, reporter=reporter))
