"""
Transfer pipeline.

Drives one transfer through pending -> {skipped | in_progress} ->
{completed | failed}: stat the remote object, plan the resume offset, open
the stream, throttle it, write it under backpressure and report progress.
"""

from __future__ import annotations

import asyncio
import time
from contextlib import suppress
from typing import Awaitable, Callable

from mediapull.exceptions import (
    MediaPullError,
    StreamError,
    TransferCancelledError,
)
from mediapull.logging import get_logger
from mediapull.services.transfer._config import MAX_BUFFERED_CHUNKS, WRITE_HIGH_WATER_MARK
from mediapull.services.transfer._models import (
    TransferRequest,
    TransferResult,
    TransferSession,
    TransferStats,
    TransferStatus,
)
from mediapull.services.transfer._progress import NullReporter, ProgressMeter, ProgressReporter
from mediapull.services.transfer._resume import ResumePlan, ResumePlanner
from mediapull.services.transfer._throttle import RateLimiter
from mediapull.services.transfer._writer import FileWriter
from mediapull.transport.base import BaseTransport, RemoteStream

logger = get_logger(__name__)

MSG_COMPLETE = "Transfer complete"
MSG_ALREADY_COMPLETE = "File already completely downloaded"
MSG_LOCAL_LARGER = "Local file is larger than remote; left untouched"


class TransferPipeline:
    """
    One-shot transfer of a single remote object to a local file.

    The pipeline owns its transport for the duration of run() and closes it
    on every exit path. Failures are returned as a failed TransferResult;
    the partial local file is always kept so a later run can resume it.

    Example:
        >>> pipeline = TransferPipeline(SftpTransport(...), reporter=RichProgressReporter())
        >>> result = await pipeline.run(TransferRequest(remote_ref=..., local_path=...))
        >>> print(result)
    """

    def __init__(
        self,
        transport: BaseTransport,
        planner: ResumePlanner | None = None,
        reporter: ProgressReporter | None = None,
        max_buffered_chunks: int = MAX_BUFFERED_CHUNKS,
        high_water_mark: int = WRITE_HIGH_WATER_MARK,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._transport = transport
        self._planner = planner or ResumePlanner()
        self._reporter = reporter or NullReporter()
        self._max_buffered_chunks = max_buffered_chunks
        self._high_water_mark = high_water_mark
        self._clock = clock
        self._sleep = sleep
        self.session = TransferSession()
        self.stats = TransferStats()

    async def run(
        self,
        request: TransferRequest,
        cancel_event: asyncio.Event | None = None,
    ) -> TransferResult:
        """
        Execute the transfer.

        Args:
            request: What to fetch and where to write it.
            cancel_event: Setting it aborts the transfer promptly.

        Returns:
            TransferResult with completed, skipped or failed status.

        Raises:
            TransferCancelledError: cancel_event was set.
            asyncio.CancelledError: The calling task was cancelled.
        """
        if cancel_event is None:
            return await self._execute(request)

        work = asyncio.ensure_future(self._execute(request))
        cancelled = asyncio.ensure_future(cancel_event.wait())
        try:
            await asyncio.wait({work, cancelled}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            work.cancel()
            cancelled.cancel()
            with suppress(asyncio.CancelledError):
                await work
            raise

        if work.done():
            cancelled.cancel()
            return work.result()

        work.cancel()
        with suppress(asyncio.CancelledError):
            await work
        logger.warning(f"Transfer to {request.local_path} cancelled")
        raise TransferCancelledError(request.local_path)

    async def _execute(self, request: TransferRequest) -> TransferResult:
        session = self.session
        started = self._clock()
        stream: RemoteStream | None = None
        writer: FileWriter | None = None
        reporting = False

        try:
            await self._transport.connect()
            remote_size = await self._transport.stat(request.remote_ref)
            plan = self._planner.plan(request.local_path, remote_size)

            if plan.skip:
                session.plan(remote_size, remote_size)
                session.skip()
                await self._touch_empty(request, plan)
                message = MSG_LOCAL_LARGER if plan.oversized else MSG_ALREADY_COMPLETE
                return self._result(request, started, message)

            session.plan(remote_size, plan.offset)
            writer = FileWriter(
                request.local_path,
                offset=plan.offset,
                high_water_mark=self._high_water_mark,
                max_chunks=self._max_buffered_chunks,
            )
            await writer.open()

            stream = await self._transport.open(request.remote_ref, plan.offset)
            if stream.size != remote_size:
                raise StreamError(
                    f"Remote size changed from {remote_size:,} to {stream.size:,} bytes"
                )
            session.begin()

            logger.info(
                f"Transfer {request.remote_ref} -> {request.local_path} "
                f"(size {remote_size:,}, resume at {plan.offset:,})"
            )

            meter = ProgressMeter(remote_size, initial=plan.offset, clock=self._clock)
            self._reporter.start(remote_size, plan.offset)
            reporting = True

            limiter = RateLimiter(request.rate_limit, clock=self._clock, sleep=self._sleep)
            await self._pump(limiter.wrap(stream), writer, meter)

            if session.transferred_bytes != remote_size:
                raise StreamError(
                    f"Stream ended at {session.transferred_bytes:,} of {remote_size:,} bytes"
                )

            await writer.close()
            session.complete()
            self.stats.throttle_delays = limiter.delays_count
            self._reporter.update(meter.snapshot())
            return self._result(request, started, MSG_COMPLETE)

        except MediaPullError as e:
            return await self._failure(request, started, e, writer)
        except Exception as e:
            logger.exception(f"Unexpected error during transfer to {request.local_path}")
            return await self._failure(request, started, e, writer)

        finally:
            if reporting:
                self._reporter.finish()
            if stream is not None:
                with suppress(Exception):
                    await stream.aclose()
            if writer is not None:
                await writer.abort()
            await self._transport.close()

    async def _pump(self, chunks, writer: FileWriter, meter: ProgressMeter) -> None:
        """Move chunks from the stream into the writer, pausing while it is full."""
        session = self.session
        async for chunk in chunks:
            try:
                transferred = session.advance(len(chunk))
            except ValueError as e:
                raise StreamError(str(e)) from e

            self.stats.chunks_count += 1
            self.stats.bytes_transferred += len(chunk)
            if meter.update(transferred):
                self._reporter.update(meter.snapshot())

            if not writer.write(chunk):
                self.stats.backpressure_pauses += 1
                logger.debug(
                    f"Writer saturated ({writer.queued_chunks} chunks, "
                    f"{writer.queued_bytes:,} bytes); pausing stream"
                )
                await writer.drain()

    async def _touch_empty(self, request: TransferRequest, plan: ResumePlan) -> None:
        """An empty remote file still yields an (empty) local file."""
        if plan.remote_size or request.local_path.exists():
            return
        writer = FileWriter(request.local_path)
        await writer.open()
        await writer.close()

    async def _failure(
        self,
        request: TransferRequest,
        started: float,
        error: Exception,
        writer: FileWriter | None,
    ) -> TransferResult:
        if self.session.status not in (TransferStatus.COMPLETED, TransferStatus.SKIPPED):
            self.session.fail()

        # Chunks already received are valid; flush them so a retry resumes after them.
        position = self.session.start_offset
        if writer is not None:
            try:
                await writer.close()
            except MediaPullError as e:
                logger.warning(f"Could not flush partial file {request.local_path}: {e}")
            position = writer.position

        kept = f" (partial file kept at {position:,} bytes)" if position > 0 else ""
        # The caller reports the outcome; this is detail only
        logger.info(f"Transfer to {request.local_path} failed: {error}{kept}")
        return self._result(request, started, f"{error}{kept}", error=type(error).__name__)

    def _result(
        self,
        request: TransferRequest,
        started: float,
        message: str,
        error: str | None = None,
    ) -> TransferResult:
        session = self.session
        return TransferResult(
            status=session.status,
            bytes_transferred=session.received_bytes,
            elapsed_time=self._clock() - started,
            message=message,
            local_path=request.local_path,
            remote_size=session.remote_size,
            start_offset=session.start_offset,
            error=error,
            stats=self.stats,
        )

