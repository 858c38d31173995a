"""Tests for transfer configuration constants."""

from mediapull.services.transfer._config import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_LIBRARY_DIR,
    KEEPALIVE_INTERVAL,
    LIBRARY_DIRS,
    MAX_BUFFERED_CHUNKS,
    PROGRESS_BAR_WIDTH,
    READY_TIMEOUT,
    SAMPLE_INTERVAL,
    SPEED_SAMPLE_SIZE,
    WRITE_BUFFER_CHUNKS,
    WRITE_HIGH_WATER_MARK,
)


class TestTransferConstants:
    """Tests for transfer configuration values."""

    def test_chunk_size(self):
        assert DEFAULT_CHUNK_SIZE == 64 * 1024

    def test_buffering(self):
        assert MAX_BUFFERED_CHUNKS == 32
        assert WRITE_BUFFER_CHUNKS == 16
        assert WRITE_HIGH_WATER_MARK == WRITE_BUFFER_CHUNKS * DEFAULT_CHUNK_SIZE == 1024 * 1024

    def test_timeouts(self):
        assert READY_TIMEOUT == 20.0
        assert KEEPALIVE_INTERVAL == 10.0

    def test_progress(self):
        assert SPEED_SAMPLE_SIZE == 10
        assert SAMPLE_INTERVAL == 1.0
        assert PROGRESS_BAR_WIDTH == 50

    def test_library_dirs(self):
        assert LIBRARY_DIRS == {"movie": "movies", "show": "tv", "artist": "music"}
        assert DEFAULT_LIBRARY_DIR == "other"
