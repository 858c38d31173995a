"""
Media-server API seam.

ApiContext carries the HTTP client and retry policy; CatalogClient resolves
one item to a remote locator.
"""

from mediapull.api.catalog import CatalogClient, MediaItem
from mediapull.api.context import ApiContext, RetryPolicy

__all__ = ["ApiContext", "RetryPolicy", "CatalogClient", "MediaItem"]
