"""
Exceptions for mediapull.

All errors derive from MediaPullError. The original cause is kept on the
exception but suppressed from the displayed chain, so terminal output stays
one readable line per failure.
"""

from __future__ import annotations

from pathlib import Path


class MediaPullError(Exception):
    """Base error for all mediapull failures."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.message = message
        self._original_cause = cause
        if cause is not None:
            self.__cause__ = cause
            self.__suppress_context__ = True

    def __str__(self) -> str:
        return self.message


# =============================================================================
# Configuration
# =============================================================================


class ConfigurationError(MediaPullError):
    """Settings are missing or invalid."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__("Configuration validation failed:\n" + "\n".join(self.errors))


# =============================================================================
# Connection
# =============================================================================


class ConnectionError(MediaPullError):
    """Could not reach or talk to the remote endpoint. Fatal per attempt."""

    def __init__(
        self,
        message: str,
        host: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.host = host
        super().__init__(message, cause=cause)


class ConnectionTimeoutError(ConnectionError):
    """Connection did not become ready in time."""

    def __init__(self, timeout_seconds: float, host: str | None = None) -> None:
        self.timeout_seconds = timeout_seconds
        target = f" to {host}" if host else ""
        super().__init__(f"Connection{target} timed out after {timeout_seconds}s", host=host)


class AuthenticationError(ConnectionError):
    """Remote endpoint rejected our credentials."""


# =============================================================================
# Remote object
# =============================================================================


class RemoteNotFoundError(MediaPullError):
    """Remote object does not exist."""

    def __init__(self, remote_ref: str, cause: BaseException | None = None) -> None:
        self.remote_ref = remote_ref
        super().__init__(f"Remote file not found: {remote_ref}", cause=cause)


class RangeUnsupportedError(MediaPullError):
    """Server did not honour a partial-content request.

    Resuming from the wrong position would corrupt the local file, so this
    is never treated as success.
    """

    def __init__(
        self,
        offset: int,
        status_code: int | None = None,
        detail: str | None = None,
    ) -> None:
        self.offset = offset
        self.status_code = status_code
        message = f"Server ignored range request at offset {offset}"
        if status_code is not None:
            message += f" (HTTP {status_code})"
        if detail:
            message += f": {detail}"
        super().__init__(message)


# =============================================================================
# Local filesystem and streaming
# =============================================================================


class FilesystemError(MediaPullError):
    """Local directory or file could not be created, opened or inspected."""

    def __init__(
        self,
        path: str | Path,
        operation: str,
        cause: BaseException | None = None,
    ) -> None:
        self.path = str(path)
        self.operation = operation
        reason = f": {cause}" if cause is not None else ""
        super().__init__(f"Cannot {operation} {self.path}{reason}", cause=cause)


class StreamError(MediaPullError):
    """Transfer failed mid-stream. The partial local file is preserved."""


# =============================================================================
# Transfer lifecycle
# =============================================================================


class TransferCancelledError(MediaPullError):
    """Transfer was cancelled. The partial local file is preserved."""

    def __init__(self, local_path: str | Path | None = None) -> None:
        self.local_path = str(local_path) if local_path is not None else None
        target = f" for {self.local_path}" if self.local_path else ""
        super().__init__(f"Transfer cancelled{target}")


class TransferInProgressError(MediaPullError):
    """Another transfer is already writing to the same local path."""

    def __init__(self, local_path: str | Path) -> None:
        self.local_path = str(local_path)
        super().__init__(f"A transfer to {self.local_path} is already in progress")


__all__ = [
    "MediaPullError",
    "ConfigurationError",
    "ConnectionError",
    "ConnectionTimeoutError",
    "AuthenticationError",
    "RemoteNotFoundError",
    "RangeUnsupportedError",
    "FilesystemError",
    "StreamError",
    "TransferCancelledError",
    "TransferInProgressError",
]
