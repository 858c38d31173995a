"""Tests for resume offset detection."""

import logging
from unittest.mock import patch

import pytest

from mediapull.exceptions import FilesystemError
from mediapull.services.transfer._resume import ResumePlan, ResumePlanner


class TestResumePlan:
    """Tests for ResumePlan decisions."""

    def test_fresh(self):
        plan = ResumePlan(offset=0, remote_size=100)
        assert not plan.skip
        assert not plan.oversized

    def test_partial(self):
        assert not ResumePlan(offset=40, remote_size=100).skip

    def test_complete(self):
        plan = ResumePlan(offset=100, remote_size=100)
        assert plan.skip
        assert not plan.oversized

    def test_oversized(self):
        plan = ResumePlan(offset=120, remote_size=100)
        assert plan.skip
        assert plan.oversized

    def test_empty_remote(self):
        assert ResumePlan(offset=0, remote_size=0).skip


class TestResumePlanner:
    """Tests for ResumePlanner."""

    def test_missing_file(self, tmp_path):
        assert ResumePlanner().local_size(tmp_path / "missing.mkv") == 0

    def test_existing_file(self, tmp_path):
        path = tmp_path / "partial.mkv"
        path.write_bytes(b"x" * 4000)
        plan = ResumePlanner().plan(path, 10_000)
        assert plan.offset == 4000
        assert not plan.skip

    def test_stat_failure(self, tmp_path):
        path = tmp_path / "locked.mkv"
        with patch("pathlib.Path.stat", side_effect=PermissionError("denied")):
            with pytest.raises(FilesystemError) as exc_info:
                ResumePlanner().local_size(path)
        assert exc_info.value.operation == "inspect"

    def test_oversized_logs_warning(self, tmp_path, caplog):
        path = tmp_path / "big.mkv"
        path.write_bytes(b"x" * 200)
        with caplog.at_level(logging.WARNING, logger="mediapull"):
            plan = ResumePlanner().plan(path, 100)
        assert plan.oversized
        assert "larger than remote" in caplog.text

    def test_resume_logs_offset(self, tmp_path, caplog):
        path = tmp_path / "partial.mkv"
        path.write_bytes(b"x" * 50)
        with caplog.at_level(logging.INFO, logger="mediapull"):
            ResumePlanner().plan(path, 100)
        assert "Resuming" in caplog.text
