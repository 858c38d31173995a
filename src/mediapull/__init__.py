"""
mediapull: resumable, throttled downloads of large media files.

Quick start:
    >>> from mediapull import TransferService, load_settings
    >>> service = TransferService(load_settings())
    >>> result = service.fetch("/data/media/movies/Heat (1995)/Heat.mkv", "movie")
    >>> print(result)

Async:
    >>> from mediapull import AsyncTransferService, load_settings
    >>> service = AsyncTransferService(load_settings(speed_limit_mb=5))
    >>> result = await service.fetch("/library/parts/123/file.mkv", "show")
"""

from mediapull.api import ApiContext, CatalogClient, MediaItem, RetryPolicy
from mediapull.config import TransferSettings, load_settings
from mediapull.exceptions import (
    AuthenticationError,
    ConfigurationError,
    ConnectionError,
    ConnectionTimeoutError,
    FilesystemError,
    MediaPullError,
    RangeUnsupportedError,
    RemoteNotFoundError,
    StreamError,
    TransferCancelledError,
    TransferInProgressError,
)
from mediapull.services.transfer import (
    AsyncTransferService,
    TransferRequest,
    TransferResult,
    TransferService,
    TransferStatus,
)
from mediapull.transport import HttpTransport, SftpTransport

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Services
    "AsyncTransferService",
    "TransferService",
    "TransferRequest",
    "TransferResult",
    "TransferStatus",
    # Transports
    "SftpTransport",
    "HttpTransport",
    # Catalog
    "ApiContext",
    "RetryPolicy",
    "CatalogClient",
    "MediaItem",
    # Config
    "TransferSettings",
    "load_settings",
    # Exceptions
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
