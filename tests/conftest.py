"""
Pytest configuration and fixtures for mediapull tests.
"""

from __future__ import annotations

import asyncio
import logging
import random
from pathlib import Path

import pytest

from mediapull.config import TransferSettings
from mediapull.exceptions import RemoteNotFoundError, StreamError
from mediapull.transport.base import BaseTransport, RemoteStream


class FakeClock:
    """Simulated monotonic clock; only sleep() moves it forward."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


class FakeStream(RemoteStream):
    """In-memory remote stream that records every pull."""

    def __init__(
        self,
        data: bytes,
        remote_ref: str,
        size: int,
        offset: int,
        chunk_size: int,
        events: list[str],
        fail_after: int | None = None,
        truncate_to: int | None = None,
    ) -> None:
        super().__init__(remote_ref, size, offset)
        self._data = data
        self._pos = offset
        self._end = truncate_to if truncate_to is not None else len(data)
        self._chunk_size = chunk_size
        self._events = events
        self._fail_after = fail_after
        self.pulls = 0

    async def read(self) -> bytes:
        if self._fail_after is not None and self.pulls >= self._fail_after:
            raise StreamError("connection reset by peer")
        chunk = self._data[self._pos : min(self._pos + self._chunk_size, self._end)]
        self._pos += len(chunk)
        if chunk:
            self.pulls += 1
            self._events.append("pull")
        return chunk

    async def aclose(self) -> None:
        self.closed = True


class FakeTransport(BaseTransport):
    """Transport serving in-memory files."""

    def __init__(
        self,
        files: dict[str, bytes] | None = None,
        chunk_size: int = 1024,
        fail_after: int | None = None,
        truncate_to: int | None = None,
    ) -> None:
        super().__init__(chunk_size=chunk_size, connect_timeout=5.0)
        self.files = files or {}
        self.fail_after = fail_after
        self.truncate_to = truncate_to
        self.events: list[str] = []
        self.opened: list[tuple[str, int]] = []
        self.streams: list[FakeStream] = []
        self.connected = False
        self.closed = False

    @property
    def mode(self) -> str:
        return "fake"

    @property
    def endpoint(self) -> str:
        return "fake://media"

    async def _connect(self) -> None:
        self.connected = True

    async def _close(self) -> None:
        self.closed = True

    async def stat(self, remote_ref: str) -> int:
        self._require_ready()
        if remote_ref not in self.files:
            raise RemoteNotFoundError(remote_ref)
        return len(self.files[remote_ref])

    async def open(self, remote_ref: str, offset: int = 0) -> FakeStream:
        size = await self.stat(remote_ref)
        self.opened.append((remote_ref, offset))
        stream = FakeStream(
            self.files[remote_ref],
            remote_ref,
            size,
            offset,
            self._chunk_size,
            self.events,
            fail_after=self.fail_after,
            truncate_to=self.truncate_to,
        )
        self.streams.append(stream)
        return stream


def payload(size: int) -> bytes:
    """Deterministic pseudo-random test data."""
    return random.Random(size).randbytes(size)


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo setup_logging() so caplog sees mediapull records."""
    yield
    logger = logging.getLogger("mediapull")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture
def fake_clock() -> FakeClock:
    """Provide a simulated clock."""
    return FakeClock()


@pytest.fixture
def fake_transport_cls() -> type[FakeTransport]:
    """Provide the fake transport class for custom construction."""
    return FakeTransport


@pytest.fixture
def make_payload():
    """Provide the deterministic payload generator."""
    return payload


@pytest.fixture
def local_root(tmp_path: Path) -> Path:
    """Provide an existing local library root."""
    root = tmp_path / "library"
    root.mkdir()
    return root


@pytest.fixture
def key_file(tmp_path: Path) -> Path:
    """Provide a placeholder private key file."""
    key = tmp_path / "id_ed25519"
    key.write_text("not a real key")
    return key


@pytest.fixture
def sftp_settings(local_root: Path, key_file: Path) -> TransferSettings:
    """Provide complete SFTP settings."""
    return TransferSettings(
        _env_file=None,
        mode="sftp",
        remote_host="media.lan",
        remote_user="plex",
        remote_root="/srv/media",
        private_key_path=key_file,
        local_root=local_root,
    )


@pytest.fixture
def http_settings(local_root: Path) -> TransferSettings:
    """Provide complete HTTP settings."""
    return TransferSettings(
        _env_file=None,
        mode="http",
        server_url="https://media.lan:32400",
        server_token="secret-token",
        local_root=local_root,
    )
