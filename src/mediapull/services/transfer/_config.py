"""
Configuration constants for the transfer service.
"""

from mediapull.transport.base import DEFAULT_CHUNK_SIZE, KEEPALIVE_INTERVAL, READY_TIMEOUT

# Max chunks queued for the local writer before the transport is paused
MAX_BUFFERED_CHUNKS = 32

# Writer high-water mark, in chunks of the transfer chunk size
WRITE_BUFFER_CHUNKS = 16
WRITE_HIGH_WATER_MARK = WRITE_BUFFER_CHUNKS * DEFAULT_CHUNK_SIZE  # 1MB

# Progress sampling
SPEED_SAMPLE_SIZE = 10
SAMPLE_INTERVAL = 1.0  # seconds

# Progress bar
PROGRESS_BAR_WIDTH = 50

# Media-type tag -> library directory
LIBRARY_DIRS = {
    "movie": "movies",
    "show": "tv",
    "artist": "music",
}
DEFAULT_LIBRARY_DIR = "other"

__all__ = [
    "DEFAULT_CHUNK_SIZE",
    "KEEPALIVE_INTERVAL",
    "READY_TIMEOUT",
    "MAX_BUFFERED_CHUNKS",
    "WRITE_BUFFER_CHUNKS",
    "WRITE_HIGH_WATER_MARK",
    "SPEED_SAMPLE_SIZE",
    "SAMPLE_INTERVAL",
    "PROGRESS_BAR_WIDTH",
    "LIBRARY_DIRS",
    "DEFAULT_LIBRARY_DIR",
]
