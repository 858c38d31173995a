"""
Remote/local path templating from a locator and media-type tag.
"""

from __future__ import annotations

import posixpath
from pathlib import Path, PurePosixPath
from urllib.parse import unquote, urlparse

from mediapull.exceptions import FilesystemError
from mediapull.logging import get_logger
from mediapull.services.transfer._config import DEFAULT_LIBRARY_DIR, LIBRARY_DIRS

logger = get_logger(__name__)


def library_dir(media_type: str | None) -> str:
    """Directory name used for a media-type tag (movie -> movies)."""
    return LIBRARY_DIRS.get((media_type or "").lower(), DEFAULT_LIBRARY_DIR)


def relative_media_path(locator: str, media_type: str | None) -> str:
    """
    Part of a server file path below its library directory.

    Example:
        >>> relative_media_path("/data/media/movies/Heat (1995)/Heat.mkv", "movie")
        'Heat (1995)/Heat.mkv'
    """
    marker = f"/{library_dir(media_type)}/"
    if marker in locator:
        return locator.split(marker, 1)[1]
    name = PurePosixPath(locator).name
    logger.warning(f"'{marker}' not found in {locator}; using file name {name}")
    return name


def safe_join(root: Path, relative: str) -> Path:
    """
    Join relative under root, refusing anything that escapes it.

    Raises:
        FilesystemError: relative is absolute or climbs out of root.
    """
    parts = PurePosixPath(relative).parts
    if not parts or PurePosixPath(relative).is_absolute() or ".." in parts:
        raise FilesystemError(root / relative, "write outside of local root")
    return root.joinpath(*parts)


def resolve_sftp_paths(
    locator: str,
    media_type: str | None,
    remote_root: str,
    local_root: Path,
) -> tuple[str, Path]:
    """
    Map a server file path to (remote SFTP path, local path).

    Both sides keep the library layout: ``<root>/<library dir>/<relative>``.
    """
    libdir = library_dir(media_type)
    relative = relative_media_path(locator, media_type)
    remote_path = posixpath.join(remote_root, libdir, relative)
    local_path = safe_join(local_root, f"{libdir}/{relative}")
    return remote_path, local_path


def resolve_http_paths(
    download_key: str,
    media_type: str | None,
    local_root: Path,
    filename: str | None = None,
) -> tuple[str, Path]:
    """
    Map a server-relative download key to (key, local path).

    The file lands at ``<local_root>/<library dir>/<file name>``.
    """
    name = filename or unquote(PurePosixPath(urlparse(download_key).path).name)
    if not name:
        raise FilesystemError(local_root, f"derive a file name from {download_key}")
    local_path = safe_join(local_root, f"{library_dir(media_type)}/{name}")
    return download_key, local_path
