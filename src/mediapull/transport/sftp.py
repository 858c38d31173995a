"""
SFTP transport over SSH (paramiko).

paramiko is blocking, so every call that touches the network runs in a
worker thread via asyncio.to_thread; the event loop only ever awaits.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

import paramiko

from mediapull.exceptions import (
    AuthenticationError,
    ConnectionError,
    ConnectionTimeoutError,
    RemoteNotFoundError,
    StreamError,
)
from mediapull.logging import get_logger
from mediapull.transport.base import (
    DEFAULT_CHUNK_SIZE,
    KEEPALIVE_INTERVAL,
    READY_TIMEOUT,
    BaseTransport,
    RemoteStream,
)

logger = get_logger(__name__)


class SftpStream(RemoteStream):
    """Reads a remote file sequentially through an SFTP file handle."""

    def __init__(
        self,
        handle: Any,
        remote_ref: str,
        size: int,
        offset: int,
        chunk_size: int,
    ) -> None:
        super().__init__(remote_ref, size, offset)
        self._handle = handle
        self._chunk_size = chunk_size

    async def read(self) -> bytes:
        try:
            return await asyncio.to_thread(self._handle.read, self._chunk_size)
        except (OSError, paramiko.SSHException, EOFError) as e:
            raise StreamError(f"SFTP read failed for {self.remote_ref}: {e}", cause=e) from e

    async def aclose(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            await asyncio.to_thread(self._handle.close)
        except (OSError, paramiko.SSHException, EOFError) as e:
            logger.debug(f"Error closing {self.remote_ref}: {e}")


class SftpTransport(BaseTransport):
    """
    Key-authenticated SSH connection with an SFTP subchannel.

    Example:
        >>> async with SftpTransport("media.lan", "plex", Path("~/.ssh/id_ed25519")) as t:
        ...     size = await t.stat("/srv/media/movies/Film.mkv")
        ...     stream = await t.open("/srv/media/movies/Film.mkv", offset=1024)
    """

    def __init__(
        self,
        host: str,
        username: str,
        private_key_path: Path,
        port: int = 22,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        connect_timeout: float = READY_TIMEOUT,
        keepalive_interval: float = KEEPALIVE_INTERVAL,
        read_timeout: float | None = None,
    ) -> None:
        super().__init__(chunk_size=chunk_size, connect_timeout=connect_timeout)
        self._host = host
        self._port = port
        self._username = username
        self._private_key_path = Path(private_key_path).expanduser()
        self._keepalive_interval = keepalive_interval
        self._read_timeout = read_timeout
        self._client: paramiko.SSHClient | None = None
        self._sftp: paramiko.SFTPClient | None = None

    @property
    def mode(self) -> str:
        return "sftp"

    @property
    def endpoint(self) -> str:
        return f"{self._username}@{self._host}:{self._port}"

    async def _connect(self) -> None:
        await asyncio.to_thread(self._connect_blocking)

    def _connect_blocking(self) -> None:
        client = paramiko.SSHClient()
        client.load_system_host_keys()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        self._client = client

        try:
            client.connect(
                hostname=self._host,
                port=self._port,
                username=self._username,
                key_filename=str(self._private_key_path),
                timeout=self._connect_timeout,
                banner_timeout=self._connect_timeout,
                auth_timeout=self._connect_timeout,
                allow_agent=False,
                look_for_keys=False,
            )
        except paramiko.AuthenticationException as e:
            raise AuthenticationError(
                f"SSH authentication failed for {self.endpoint}: {e}",
                host=self._host,
                cause=e,
            ) from e
        except TimeoutError as e:
            raise ConnectionTimeoutError(self._connect_timeout, host=self._host) from e
        except (OSError, paramiko.SSHException) as e:
            raise ConnectionError(
                f"SSH connection to {self.endpoint} failed: {e}",
                host=self._host,
                cause=e,
            ) from e

        transport = client.get_transport()
        if transport is not None:
            transport.set_keepalive(max(1, int(self._keepalive_interval)))

        try:
            self._sftp = client.open_sftp()
        except (OSError, paramiko.SSHException) as e:
            raise ConnectionError(
                f"SFTP session failed on {self.endpoint}: {e}",
                host=self._host,
                cause=e,
            ) from e

        if self._read_timeout:
            self._sftp.get_channel().settimeout(self._read_timeout)
        logger.debug(f"SFTP session open on {self.endpoint}")

    async def _close(self) -> None:
        sftp, client = self._sftp, self._client
        self._sftp = None
        self._client = None
        if sftp is not None:
            await asyncio.to_thread(sftp.close)
        if client is not None:
            await asyncio.to_thread(client.close)

    async def stat(self, remote_ref: str) -> int:
        self._require_ready()
        try:
            attrs = await asyncio.to_thread(self._sftp.stat, remote_ref)
        except FileNotFoundError as e:
            raise RemoteNotFoundError(remote_ref, cause=e) from e
        except (OSError, paramiko.SSHException) as e:
            raise ConnectionError(
                f"Remote file not accessible: {remote_ref} ({e})",
                host=self._host,
                cause=e,
            ) from e

        size = attrs.st_size or 0
        logger.debug(f"Remote stat {remote_ref}: {size:,} bytes, mode={attrs.st_mode}")
        return size

    async def open(self, remote_ref: str, offset: int = 0) -> SftpStream:
        self._require_ready()
        size = await self.stat(remote_ref)
        try:
            handle = await asyncio.to_thread(self._open_blocking, remote_ref, offset)
        except FileNotFoundError as e:
            raise RemoteNotFoundError(remote_ref, cause=e) from e
        except (OSError, paramiko.SSHException) as e:
            raise ConnectionError(
                f"Cannot open {remote_ref} on {self.endpoint}: {e}",
                host=self._host,
                cause=e,
            ) from e
        return SftpStream(handle, remote_ref, size, offset, self._chunk_size)

    def _open_blocking(self, remote_ref: str, offset: int) -> Any:
        handle = self._sftp.open(remote_ref, "rb", bufsize=self._chunk_size)
        if offset:
            handle.seek(offset)
        return handle
