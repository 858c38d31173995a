"""
HTTP(S) transport using range requests (httpx).

A ranged request must be answered with 206 Partial Content starting at the
requested offset; a 200 reply to a ranged request means the server sent the
whole object and resuming from it would corrupt the local file.
"""

from __future__ import annotations

import re
from urllib.parse import urljoin

import httpx

from mediapull.exceptions import (
    ConnectionError,
    ConnectionTimeoutError,
    RangeUnsupportedError,
    RemoteNotFoundError,
    StreamError,
)
from mediapull.logging import get_logger
from mediapull.transport.base import (
    DEFAULT_CHUNK_SIZE,
    READY_TIMEOUT,
    BaseTransport,
    RemoteStream,
)

logger = get_logger(__name__)

TOKEN_HEADER = "X-Plex-Token"

# Byte offsets and lengths refer to the stored object, never to a compressed body
IDENTITY_ENCODING = {"Accept-Encoding": "identity"}

_CONTENT_RANGE = re.compile(r"^\s*bytes\s+(\d+)-(\d+)/(\d+|\*)\s*$", re.IGNORECASE)


def parse_content_range(value: str | None) -> tuple[int, int, int | None] | None:
    """
    Parse a ``Content-Range: bytes start-end/total`` header.

    Returns:
        (start, end, total) with total None for ``*``, or None if absent or
        malformed.
    """
    if not value:
        return None
    match = _CONTENT_RANGE.match(value)
    if not match:
        return None
    start, end, total = match.groups()
    return int(start), int(end), None if total == "*" else int(total)


class HttpStream(RemoteStream):
    """Body of a streamed HTTP response."""

    def __init__(
        self,
        response: httpx.Response,
        remote_ref: str,
        size: int,
        offset: int,
        chunk_size: int,
    ) -> None:
        super().__init__(remote_ref, size, offset)
        self._response = response
        self._chunks = response.aiter_bytes(chunk_size)

    async def read(self) -> bytes:
        try:
            return await self._chunks.__anext__()
        except StopAsyncIteration:
            return b""
        except (httpx.HTTPError, httpx.StreamError) as e:
            raise StreamError(f"HTTP read failed for {self.remote_ref}: {e}", cause=e) from e

    async def aclose(self) -> None:
        if self.closed:
            return
        self.closed = True
        await self._response.aclose()


class HttpTransport(BaseTransport):
    """
    Fetches objects from an HTTP origin with resumable range requests.

    Remote refs are server-relative keys (``/library/parts/1/2/file.mkv``)
    or absolute URLs.

    Example:
        >>> async with HttpTransport("https://media.lan:32400", token="xyz") as t:
        ...     stream = await t.open("/library/parts/1/2/file.mkv", offset=4096)
    """

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        connect_timeout: float = READY_TIMEOUT,
        read_timeout: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(chunk_size=chunk_size, connect_timeout=connect_timeout)
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._read_timeout = read_timeout
        self._client = client
        self._owns_client = client is None

    @property
    def mode(self) -> str:
        return "http"

    @property
    def endpoint(self) -> str:
        return self._base_url

    def url_for(self, remote_ref: str) -> str:
        """Absolute URL for a server-relative key."""
        if remote_ref.startswith(("http://", "https://")):
            return remote_ref
        return urljoin(self._base_url + "/", remote_ref.lstrip("/"))

    async def _connect(self) -> None:
        if self._client is None:
            headers = {TOKEN_HEADER: self._token} if self._token else {}
            self._client = httpx.AsyncClient(
                headers=headers,
                follow_redirects=True,
                timeout=httpx.Timeout(self._read_timeout, connect=self._connect_timeout),
            )

    async def _close(self) -> None:
        client = self._client
        self._client = None
        if client is not None and self._owns_client:
            await client.aclose()

    def _headers(self) -> dict[str, str]:
        headers = dict(IDENTITY_ENCODING)
        # Caller-supplied clients don't carry our token header.
        if self._token and not self._owns_client:
            headers[TOKEN_HEADER] = self._token
        return headers

    def _raise_for_status(self, response: httpx.Response, remote_ref: str) -> None:
        if response.status_code == 404:
            raise RemoteNotFoundError(remote_ref)
        if response.status_code in (401, 403):
            raise ConnectionError(
                f"Access denied to {remote_ref} (HTTP {response.status_code})",
                host=self._base_url,
            )
        if response.status_code >= 400:
            raise ConnectionError(
                f"HTTP {response.status_code} for {remote_ref}",
                host=self._base_url,
            )

    async def _send(self, request: httpx.Request, stream: bool = False) -> httpx.Response:
        try:
            return await self._client.send(request, stream=stream)
        except httpx.TimeoutException as e:
            raise ConnectionTimeoutError(self._read_timeout, host=self._base_url) from e
        except httpx.TransportError as e:
            raise ConnectionError(
                f"Request to {request.url} failed: {e}",
                host=self._base_url,
                cause=e,
            ) from e

    async def stat(self, remote_ref: str) -> int:
        self._require_ready()
        url = self.url_for(remote_ref)

        response = await self._send(self._client.build_request("HEAD", url, headers=self._headers()))
        self._raise_for_status(response, remote_ref)
        length = response.headers.get("content-length")
        if length is not None and length.isdigit():
            return int(length)

        # No Content-Length on HEAD: ask for one byte and read the total.
        headers = {**self._headers(), "Range": "bytes=0-0"}
        response = await self._send(self._client.build_request("GET", url, headers=headers), stream=True)
        try:
            self._raise_for_status(response, remote_ref)
            parsed = parse_content_range(response.headers.get("content-range"))
            if response.status_code == 206 and parsed and parsed[2] is not None:
                return parsed[2]
        finally:
            await response.aclose()
        raise ConnectionError(f"Server did not report a size for {remote_ref}", host=self._base_url)

    async def open(self, remote_ref: str, offset: int = 0) -> HttpStream:
        self._require_ready()
        size = await self.stat(remote_ref)
        url = self.url_for(remote_ref)

        headers = self._headers()
        if offset > 0:
            headers["Range"] = f"bytes={offset}-"

        response = await self._send(self._client.build_request("GET", url, headers=headers), stream=True)
        try:
            self._check_response(response, remote_ref, offset)
        except BaseException:
            await response.aclose()
            raise

        logger.debug(f"GET {url} -> {response.status_code} (offset {offset:,})")
        return HttpStream(response, remote_ref, size, offset, self._chunk_size)

    def _check_response(self, response: httpx.Response, remote_ref: str, offset: int) -> None:
        if response.status_code == 416:
            raise RangeUnsupportedError(offset, 416, "range not satisfiable")
        self._raise_for_status(response, remote_ref)

        encoding = response.headers.get("content-encoding", "identity").strip().lower()
        if encoding != "identity":
            raise StreamError(f"Server sent {remote_ref} with Content-Encoding {encoding}")

        if offset == 0:
            if response.status_code != 200:
                raise ConnectionError(
                    f"Expected 200 for full download of {remote_ref}, got {response.status_code}",
                    host=self._base_url,
                )
            return

        if response.status_code != 206:
            raise RangeUnsupportedError(offset, response.status_code, "expected 206 Partial Content")
        parsed = parse_content_range(response.headers.get("content-range"))
        if parsed is not None and parsed[0] != offset:
            raise RangeUnsupportedError(
                offset,
                206,
                f"Content-Range starts at {parsed[0]}",
            )
