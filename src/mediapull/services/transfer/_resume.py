"""
Resume offset detection.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from mediapull.exceptions import FilesystemError
from mediapull.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ResumePlan:
    """Where to start, and whether there is anything left to fetch."""

    offset: int
    remote_size: int

    @property
    def skip(self) -> bool:
        return self.offset >= self.remote_size

    @property
    def oversized(self) -> bool:
        """Local file is longer than the remote one."""
        return self.offset > self.remote_size


class ResumePlanner:
    """Pick the start offset from the partial local file."""

    def local_size(self, local_path: Path) -> int:
        """
        Size of the partial local file.

        Returns:
            0 if the file does not exist.

        Raises:
            FilesystemError: On any other stat failure.
        """
        try:
            return local_path.stat().st_size
        except FileNotFoundError:
            return 0
        except OSError as e:
            raise FilesystemError(local_path, "inspect", cause=e) from e

    def plan(self, local_path: Path, remote_size: int) -> ResumePlan:
        offset = self.local_size(local_path)
        plan = ResumePlan(offset=offset, remote_size=remote_size)

        if plan.oversized:
            logger.warning(
                f"Local file {local_path} is larger than remote "
                f"({offset:,} > {remote_size:,} bytes); leaving it untouched"
            )
        elif plan.skip:
            logger.info(f"{local_path} already complete ({remote_size:,} bytes)")
        elif offset:
            logger.info(f"Resuming {local_path} from byte {offset:,} of {remote_size:,}")
        return plan
