"""
Durable status records.

Each execution name ``N`` owns one ``N.status`` file in its results
directory. Writes replace the whole file atomically, so a concurrent reader
sees either the previous state or the new one.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from ..models.status import ExecutionStatus

logger = logging.getLogger(__name__)

STATUS_SUFFIX = ".status"


def status_path(results_dir: Union[str, Path], name: str) -> Path:
    """Location of the status file of execution ``name``."""
    return Path(results_dir) / f"{name}{STATUS_SUFFIX}"


class StatusRecorder:
    """
    Writes and reads the status file of one execution.

    A recorder is owned by a single session; two concurrent executions must
    use different names.
    """

    def __init__(self, results_dir: Union[str, Path], name: str):
        self.results_dir = Path(results_dir)
        self.name = name
        self.path = status_path(self.results_dir, name)

    def write(self, status: ExecutionStatus) -> None:
        """
        Replace the status file content with ``status``.

        Raises:
            OSError: If the file cannot be written
        """
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.name}.", suffix=".tmp", dir=self.results_dir
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as tmp_file:
                # mkstemp creates 0600 files; status files are meant to be shared.
                os.chmod(tmp_name, 0o644)
                tmp_file.write(status.to_text() + "\n")
                tmp_file.flush()
                os.fsync(tmp_file.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise
        logger.debug(f"Status of {self.name} is now {status}")

    def read(self) -> Optional[ExecutionStatus]:
        """
        Read the current status.

        Returns:
            The recorded status, or None if nothing was recorded yet

        Raises:
            ValueError: If the file holds something that is not a status
        """
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        return ExecutionStatus.parse(text)


def read_status(results_dir: Union[str, Path], name: str) -> Optional[ExecutionStatus]:
    """Read the recorded status of execution ``name`` (None if absent)."""
    return StatusRecorder(results_dir, name).read()
