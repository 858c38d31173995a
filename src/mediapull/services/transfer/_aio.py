"""
Asynchronous transfer service.

Selects the transport variant once from settings, templates paths from the
media-type tag and runs one pipeline per transfer. Independent transfers
may run concurrently; two transfers to the same local path may not.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Callable

from mediapull.config import TransferSettings
from mediapull.exceptions import ConfigurationError, TransferInProgressError
from mediapull.logging import get_logger
from mediapull.services.transfer._config import WRITE_BUFFER_CHUNKS
from mediapull.services.transfer._models import TransferRequest, TransferResult
from mediapull.services.transfer._paths import resolve_http_paths, resolve_sftp_paths
from mediapull.services.transfer._pipeline import TransferPipeline
from mediapull.services.transfer._progress import CallbackReporter, ProgressReporter
from mediapull.transport.base import BaseTransport
from mediapull.transport.http import HttpTransport
from mediapull.transport.sftp import SftpTransport

logger = get_logger(__name__)


class AsyncTransferService:
    """
    Asynchronous transfer service.

    Example:
        >>> service = AsyncTransferService(load_settings())
        >>> result = await service.fetch("/data/media/movies/Heat/Heat.mkv", "movie")
        >>> print(result)
    """

    def __init__(self, settings: TransferSettings) -> None:
        self._settings = settings
        self._active: set[Path] = set()

    @property
    def settings(self) -> TransferSettings:
        return self._settings

    @property
    def mode(self) -> str:
        return self._settings.mode

    @property
    def active_transfers(self) -> frozenset[Path]:
        """Local paths currently being written."""
        return frozenset(self._active)

    def create_transport(self) -> BaseTransport:
        """
        Build a fresh transport for the configured mode.

        Raises:
            ConfigurationError: Mode-specific settings are missing.
        """
        s = self._settings
        if s.mode == "sftp":
            missing = [
                name
                for name, value in (
                    ("MEDIAPULL_REMOTE_HOST", s.remote_host),
                    ("MEDIAPULL_REMOTE_USER", s.remote_user),
                    ("MEDIAPULL_PRIVATE_KEY_PATH", s.private_key_path),
                )
                if not value
            ]
            if missing:
                raise ConfigurationError([f"{name} is not set" for name in missing])
            return SftpTransport(
                host=s.remote_host,
                username=s.remote_user,
                private_key_path=s.private_key_path,
                port=s.remote_port,
                chunk_size=s.chunk_size,
                connect_timeout=s.connect_timeout,
                keepalive_interval=s.keepalive_interval,
                read_timeout=s.read_timeout,
            )

        if not s.server_url:
            raise ConfigurationError(["MEDIAPULL_SERVER_URL is not set"])
        return HttpTransport(
            base_url=s.server_url,
            token=s.token,
            chunk_size=s.chunk_size,
            connect_timeout=s.connect_timeout,
            read_timeout=s.read_timeout,
        )

    def resolve(
        self,
        locator: str,
        media_type: str | None = "movie",
        local_path: Path | None = None,
    ) -> tuple[str, Path]:
        """
        Turn a remote locator into (remote ref, local path) for this mode.

        Args:
            locator: Server file path (sftp) or download key (http).
            media_type: Coarse tag used for library directories.
            local_path: Explicit destination, overriding templating.
        """
        s = self._settings
        if s.local_root is None and local_path is None:
            raise ConfigurationError(["MEDIAPULL_LOCAL_ROOT is not set"])

        if s.mode == "sftp":
            if not s.remote_root:
                raise ConfigurationError(["MEDIAPULL_REMOTE_ROOT is not set"])
            remote_ref, templated = resolve_sftp_paths(
                locator, media_type, s.remote_root, s.local_root or Path(".")
            )
        else:
            remote_ref, templated = resolve_http_paths(
                locator, media_type, s.local_root or Path(".")
            )
        return remote_ref, local_path or templated

    async def fetch(
        self,
        locator: str,
        media_type: str | None = "movie",
        local_path: Path | None = None,
        rate_limit: int | None = None,
        reporter: ProgressReporter | None = None,
        on_progress: Callable[[int, int], None] | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> TransferResult:
        """
        Fetch one remote file, resuming a partial local copy if present.

        Args:
            locator: Server file path (sftp) or download key (http).
            media_type: Coarse tag used for library directories.
            local_path: Explicit destination (default: templated under local root).
            rate_limit: Bytes/s cap (default: configured speed limit).
            reporter: Live progress display.
            on_progress: Callback(transferred, total), used if no reporter.
            cancel_event: Set to abort; raises TransferCancelledError.

        Returns:
            TransferResult with completed, skipped or failed status.
        """
        remote_ref, destination = self.resolve(locator, media_type, local_path)

        logger.info(f"Remote path: {remote_ref}")
        logger.info(f"Local path: {destination}")

        request = TransferRequest(
            remote_ref=remote_ref,
            local_path=destination,
            rate_limit=rate_limit if rate_limit is not None else self._settings.rate_limit,
        )
        if reporter is None and on_progress is not None:
            reporter = CallbackReporter(on_progress)
        return await self.transfer(request, reporter=reporter, cancel_event=cancel_event)

    async def transfer(
        self,
        request: TransferRequest,
        reporter: ProgressReporter | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> TransferResult:
        """
        Run a prepared request.

        Raises:
            TransferInProgressError: Another transfer targets the same path.
            TransferCancelledError: cancel_event was set.
        """
        key = request.local_path.resolve()
        if key in self._active:
            raise TransferInProgressError(request.local_path)

        self._active.add(key)
        try:
            pipeline = TransferPipeline(
                self.create_transport(),
                reporter=reporter,
                max_buffered_chunks=self._settings.max_buffered_chunks,
                high_water_mark=WRITE_BUFFER_CHUNKS * self._settings.chunk_size,
            )
            return await pipeline.run(request, cancel_event=cancel_event)
        finally:
            self._active.discard(key)

    def __repr__(self) -> str:
        return f"<AsyncTransferService mode={self.mode!r} active={len(self._active)}>"
