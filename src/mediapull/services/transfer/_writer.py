"""
Local file writer with backpressure.

Chunks are queued and written by a background task in a worker thread.
write() reports saturation the way a stream sink does: it accepts the chunk
but returns False once the queue holds too many bytes or chunks, and the
producer should then await drain() before pulling more data.
"""

from __future__ import annotations

import asyncio
import os
from collections import deque
from contextlib import suppress
from pathlib import Path
from typing import BinaryIO

from mediapull.exceptions import FilesystemError, StreamError
from mediapull.logging import get_logger
from mediapull.services.transfer._config import MAX_BUFFERED_CHUNKS, WRITE_HIGH_WATER_MARK

logger = get_logger(__name__)


def _close_opened_file(future: asyncio.Future[BinaryIO]) -> None:
    if future.cancelled() or future.exception() is not None:
        return
    future.result().close()


class FileWriter:
    """Appends chunks to a local file starting at a known offset."""

    def __init__(
        self,
        path: Path,
        offset: int = 0,
        high_water_mark: int = WRITE_HIGH_WATER_MARK,
        max_chunks: int = MAX_BUFFERED_CHUNKS,
    ) -> None:
        self.path = path
        self.offset = offset
        self.high_water_mark = high_water_mark
        self.max_chunks = max_chunks
        self.bytes_written = 0
        self.closed = False
        self._fh: BinaryIO | None = None
        self._queue: deque[bytes] = deque()
        self._has_data = asyncio.Event()
        self._drained = asyncio.Event()
        self._drained.set()
        self._error: BaseException | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def queued_bytes(self) -> int:
        return sum(len(chunk) for chunk in self._queue)

    @property
    def queued_chunks(self) -> int:
        return len(self._queue)

    @property
    def full(self) -> bool:
        return self.queued_chunks >= self.max_chunks or self.queued_bytes >= self.high_water_mark

    @property
    def position(self) -> int:
        """Byte offset up to which the file has been written."""
        return self.offset + self.bytes_written

    async def open(self) -> None:
        """
        Create parent directories and open the file at offset.

        Raises:
            FilesystemError: Directory or file cannot be created/opened.
            StreamError: File length no longer matches offset.
        """
        try:
            await asyncio.to_thread(self.path.parent.mkdir, parents=True, exist_ok=True)
        except OSError as e:
            raise FilesystemError(self.path.parent, "create directory", cause=e) from e

        mode = "ab" if self.offset else "wb"
        opening = asyncio.ensure_future(asyncio.to_thread(open, self.path, mode))
        try:
            self._fh = await asyncio.shield(opening)
        except asyncio.CancelledError:
            # The worker thread still finishes the open; close what it returns.
            opening.add_done_callback(_close_opened_file)
            raise
        except OSError as e:
            raise FilesystemError(self.path, "open", cause=e) from e

        position = self._fh.tell()
        if position != self.offset:
            await asyncio.to_thread(self._fh.close)
            self._fh = None
            raise StreamError(
                f"Local file {self.path} is {position:,} bytes, expected {self.offset:,}"
            )

        self._task = asyncio.create_task(self._run(), name=f"writer:{self.path.name}")

    def write(self, chunk: bytes) -> bool:
        """
        Queue a chunk for writing.

        Returns:
            False when the writer is saturated; await drain() before the
            next write.

        Raises:
            StreamError: A previous write failed.
        """
        self._raise_if_failed()
        if self._fh is None or self.closed:
            raise StreamError(f"Writer for {self.path} is not open")
        self._queue.append(chunk)
        self._drained.clear()
        self._has_data.set()
        return not self.full

    async def drain(self) -> None:
        """Wait until every queued chunk has reached the file."""
        await self._drained.wait()
        self._raise_if_failed()

    async def close(self) -> None:
        """Write what is queued, flush to disk and close."""
        if self.closed:
            return
        await self.drain()
        await self._stop_worker()
        self.closed = True
        fh, self._fh = self._fh, None
        if fh is None:
            return
        try:
            await asyncio.to_thread(self._flush_and_close, fh)
        except OSError as e:
            raise StreamError(f"Cannot flush {self.path}: {e}", cause=e) from e

    async def abort(self) -> None:
        """
        Drop queued chunks and close, keeping whatever is already written.

        Never raises; used on failure and cancellation paths.
        """
        if self.closed:
            return
        self.closed = True
        self._queue.clear()
        if self._task is not None and not self._task.done():
            # Let an in-flight write land before closing the handle.
            with suppress(Exception):
                await self._drained.wait()
        await self._stop_worker()
        fh, self._fh = self._fh, None
        if fh is not None:
            try:
                await asyncio.to_thread(self._flush_and_close, fh)
            except OSError as e:
                logger.warning(f"Error closing partial file {self.path}: {e}")
        logger.debug(f"Partial file kept: {self.path} ({self.position:,} bytes)")

    @staticmethod
    def _flush_and_close(fh: BinaryIO) -> None:
        try:
            fh.flush()
            os.fsync(fh.fileno())
        finally:
            fh.close()

    async def _run(self) -> None:
        while True:
            await self._has_data.wait()
            while self._queue:
                chunk = self._queue.popleft()
                try:
                    await asyncio.to_thread(self._fh.write, chunk)
                except OSError as e:
                    self._error = StreamError(f"Write to {self.path} failed: {e}", cause=e)
                    self._queue.clear()
                    self._drained.set()
                    return
                self.bytes_written += len(chunk)
            self._has_data.clear()
            self._drained.set()

    async def _stop_worker(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        if not task.done():
            task.cancel()
        with suppress(asyncio.CancelledError):
            await task

    def _raise_if_failed(self) -> None:
        if self._error is not None:
            raise self._error
