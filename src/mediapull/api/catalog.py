"""
Catalog lookup: resolve one media item to a remote locator.

Browsing and selection are left to the caller; this only turns a rating
key into the file path / download key and media-type tag a transfer needs.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from mediapull.api.context import ApiContext
from mediapull.exceptions import RemoteNotFoundError

# Catalog item type -> media-type tag used for path templating
ITEM_MEDIA_TYPES = {
    "movie": "movie",
    "episode": "show",
    "track": "artist",
}


class MediaItem(BaseModel):
    """A single downloadable media item."""

    rating_key: str
    title: str
    media_type: str
    file_path: str | None = None
    part_key: str | None = None
    size: int | None = None

    def locator(self, mode: str) -> str:
        """
        Remote locator for a transport mode.

        Raises:
            RemoteNotFoundError: The item has no file for that mode.
        """
        value = self.file_path if mode == "sftp" else self.part_key
        if not value:
            raise RemoteNotFoundError(f"{self.title} (rating key {self.rating_key})")
        return value


def _first(items: Any) -> dict[str, Any]:
    if isinstance(items, list) and items:
        return items[0]
    return {}


class CatalogClient:
    """Read-only item lookup on top of an ApiContext."""

    def __init__(self, context: ApiContext) -> None:
        self._context = context

    async def get_item(self, rating_key: str) -> MediaItem:
        """
        Fetch one item's metadata.

        Raises:
            RemoteNotFoundError: Unknown rating key.
        """
        path = f"/library/metadata/{rating_key}"
        data = await self._context.get_json(path)
        item = _first((data or {}).get("MediaContainer", {}).get("Metadata"))
        if not item:
            raise RemoteNotFoundError(path)

        part = _first(_first(item.get("Media")).get("Part"))
        item_type = item.get("type", "")
        title = item.get("title", rating_key)
        if item_type == "episode" and item.get("grandparentTitle"):
            title = f"{item['grandparentTitle']} - {title}"

        return MediaItem(
            rating_key=str(item.get("ratingKey", rating_key)),
            title=title,
            media_type=ITEM_MEDIA_TYPES.get(item_type, item_type or "other"),
            file_path=part.get("file"),
            part_key=part.get("key"),
            size=part.get("size"),
        )
