"""
HTTP context for media-server API calls.

One explicitly constructed object owns the HTTP client, the server token
and the retry policy, and is passed to whatever performs catalog queries.
The transfer engine never goes through it.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_incrementing,
)

from mediapull.config import TransferSettings
from mediapull.exceptions import ConnectionError, RemoteNotFoundError
from mediapull.logging import get_logger
from mediapull.transport.http import TOKEN_HEADER

logger = get_logger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """Fixed attempts with linear backoff (backoff, 2*backoff, ...)."""

    attempts: int = 3
    backoff: float = 1.0

    @staticmethod
    def should_retry(error: BaseException) -> bool:
        """Retry network-class failures and 5xx responses only."""
        if isinstance(error, httpx.TransportError):
            return True
        if isinstance(error, httpx.HTTPStatusError):
            return error.response.status_code >= 500
        return False


class ApiContext:
    """
    Media-server HTTP context.

    Example:
        >>> async with ApiContext("https://media.lan:32400", token="xyz") as ctx:
        ...     data = await ctx.get_json("/library/sections")
    """

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = 30.0,
        retry: RetryPolicy | None = None,
        client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._retry = retry or RetryPolicy()
        self._sleep = sleep
        headers = {"Accept": "application/json"}
        if token:
            headers[TOKEN_HEADER] = token
        if client is None:
            self._client = httpx.AsyncClient(base_url=self._base_url, headers=headers, timeout=timeout)
        else:
            self._client = client
            self._client.headers.update(headers)
        self._owns_client = client is None

    @classmethod
    def from_settings(cls, settings: TransferSettings) -> ApiContext:
        settings.validate_for_catalog()
        return cls(
            base_url=settings.server_url,
            token=settings.token,
            timeout=settings.read_timeout,
            retry=RetryPolicy(attempts=settings.retry_attempts, backoff=settings.retry_backoff),
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def retry(self) -> RetryPolicy:
        return self._retry

    def _url(self, path: str) -> str:
        return f"{self._base_url}/{path.lstrip('/')}"

    async def get_json(self, path: str, **params: Any) -> Any:
        """
        GET a JSON document, retrying per the retry policy.

        Raises:
            RemoteNotFoundError: HTTP 404.
            ConnectionError: Network failure or error status after retries.
        """
        url = self._url(path)

        def log_retry(state: RetryCallState) -> None:
            error = state.outcome.exception() if state.outcome else None
            logger.warning(f"Retry attempt {state.attempt_number} for request to {url}")
            logger.warning(f"Reason: {error}")

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._retry.attempts),
                wait=wait_incrementing(start=self._retry.backoff, increment=self._retry.backoff),
                retry=retry_if_exception(self._retry.should_retry),
                before_sleep=log_retry,
                sleep=self._sleep,
                reraise=True,
            ):
                with attempt:
                    response = await self._client.get(url, params=params or None)
                    response.raise_for_status()
                    return response.json()
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                raise RemoteNotFoundError(path, cause=e) from e
            raise ConnectionError(
                f"HTTP {e.response.status_code} for {path}",
                host=self._base_url,
                cause=e,
            ) from e
        except httpx.TransportError as e:
            raise ConnectionError(f"Request to {url} failed: {e}", host=self._base_url, cause=e) from e
        except ValueError as e:
            raise ConnectionError(f"Invalid JSON from {url}", host=self._base_url, cause=e) from e

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> ApiContext:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"<ApiContext base_url={self._base_url!r} attempts={self._retry.attempts}>"
