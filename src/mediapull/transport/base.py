"""
Base transport for remote byte streams.

A transport authenticates to one remote endpoint, reports object sizes and
opens read streams at an offset. Transports are async context managers and
close their connection on every exit path.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, AsyncIterator

from mediapull.exceptions import ConnectionTimeoutError
from mediapull.logging import get_logger

logger = get_logger(__name__)

# Chunk size for remote reads
DEFAULT_CHUNK_SIZE = 64 * 1024  # 64KB

# Connection timeouts
READY_TIMEOUT = 20.0  # seconds
KEEPALIVE_INTERVAL = 10.0  # seconds


class TransportState(str, Enum):
    """Connection lifecycle."""

    IDLE = "idle"
    CONNECTING = "connecting"
    READY = "ready"
    SHUTDOWN = "shutdown"


class RemoteStream(ABC):
    """
    Sequential byte stream from a remote object, starting at ``offset``.

    Iterating yields non-empty chunks until end of data. Pulling is the only
    way data moves: a consumer that stops iterating pauses the stream.
    """

    def __init__(self, remote_ref: str, size: int, offset: int) -> None:
        self.remote_ref = remote_ref
        self.size = size
        self.offset = offset
        self.closed = False

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self

    async def __anext__(self) -> bytes:
        if self.closed:
            raise StopAsyncIteration
        chunk = await self.read()
        if not chunk:
            raise StopAsyncIteration
        return chunk

    @abstractmethod
    async def read(self) -> bytes:
        """Next chunk, or b"" at end of data."""

    @abstractmethod
    async def aclose(self) -> None:
        """Release the underlying handle. Idempotent."""

    def __repr__(self) -> str:
        return (
            f"<{type(self).__name__} {self.remote_ref!r} "
            f"offset={self.offset} size={self.size}>"
        )


class BaseTransport(ABC):
    """Authenticated connection to a remote source."""

    def __init__(self, chunk_size: int, connect_timeout: float) -> None:
        self._chunk_size = chunk_size
        self._connect_timeout = connect_timeout
        self._state = TransportState.IDLE

    @property
    @abstractmethod
    def mode(self) -> str:
        """Transport variant name."""

    @property
    @abstractmethod
    def endpoint(self) -> str:
        """Host or URL this transport talks to."""

    @property
    def state(self) -> TransportState:
        return self._state

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    async def connect(self) -> None:
        """Open the connection. No-op when already connected."""
        if self._state is TransportState.READY:
            return
        if self._state is TransportState.SHUTDOWN:
            raise RuntimeError(f"{type(self).__name__} is closed")
        self._state = TransportState.CONNECTING
        try:
            await asyncio.wait_for(self._connect(), timeout=self._connect_timeout)
        except asyncio.TimeoutError as e:
            self._state = TransportState.IDLE
            await self._close()
            raise ConnectionTimeoutError(self._connect_timeout, host=self.endpoint) from e
        except BaseException:
            self._state = TransportState.IDLE
            await self._close()
            raise
        self._state = TransportState.READY
        logger.debug(f"{self.mode} transport ready: {self.endpoint}")

    async def close(self) -> None:
        """Close the connection. Idempotent."""
        if self._state is TransportState.SHUTDOWN:
            return
        self._state = TransportState.SHUTDOWN
        try:
            await self._close()
        except Exception as e:
            logger.debug(f"Error while closing {self.mode} transport: {e}")

    @abstractmethod
    async def stat(self, remote_ref: str) -> int:
        """
        Size of the remote object in bytes.

        Raises:
            RemoteNotFoundError: Object does not exist.
            ConnectionError: Endpoint unreachable or misbehaving.
        """

    @abstractmethod
    async def open(self, remote_ref: str, offset: int = 0) -> RemoteStream:
        """
        Open a read stream positioned at offset.

        Raises:
            RemoteNotFoundError: Object does not exist.
            RangeUnsupportedError: Server cannot start at offset.
            ConnectionError: Endpoint unreachable or misbehaving.
        """

    @abstractmethod
    async def _connect(self) -> None: ...

    @abstractmethod
    async def _close(self) -> None: ...

    def _require_ready(self) -> None:
        if self._state is not TransportState.READY:
            raise RuntimeError(f"{type(self).__name__} is not connected ({self._state.value})")

    async def __aenter__(self) -> BaseTransport:
        await self.connect()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.endpoint!r} state={self._state.value}>"
