"""
Status record model.

A status is kept as a tagged variant internally and only turned into its
textual form (``IN_PROGRESS``, ``SUCCESS``, ``ERROR <code>``, ``TIMED_OUT``)
when it is written to or read from a ``.status`` file.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .outcome import Completed, ExecutionOutcome, TimedOut

# Exit code recorded for executions that never produced one of their own
# (interrupted waits, launch failures).
UNKNOWN_EXIT_CODE = -1


class StatusKind(Enum):
    """Lifecycle states of an execution."""
    IN_PROGRESS = "IN_PROGRESS"
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"
    TIMED_OUT = "TIMED_OUT"


@dataclass(frozen=True)
class ExecutionStatus:
    """
    The lifecycle state of one execution.

    Attributes:
        kind: Which state the execution is in.
        exit_code: The exit code for ``ERROR`` states, None otherwise.
    """

    kind: StatusKind
    exit_code: Optional[int] = None

    def __post_init__(self):
        if self.kind is StatusKind.ERROR and self.exit_code is None:
            raise ValueError("ERROR status requires an exit code")
        if self.kind is not StatusKind.ERROR and self.exit_code is not None:
            raise ValueError(f"{self.kind.value} status does not carry an exit code")

    @classmethod
    def in_progress(cls) -> "ExecutionStatus":
        return cls(StatusKind.IN_PROGRESS)

    @classmethod
    def success(cls) -> "ExecutionStatus":
        return cls(StatusKind.SUCCESS)

    @classmethod
    def error(cls, exit_code: int) -> "ExecutionStatus":
        return cls(StatusKind.ERROR, exit_code)

    @classmethod
    def timed_out(cls) -> "ExecutionStatus":
        return cls(StatusKind.TIMED_OUT)

    @classmethod
    def from_outcome(cls, outcome: ExecutionOutcome) -> "ExecutionStatus":
        """
        Derive the terminal status of an execution from its outcome.

        ``Completed(0)`` is a success, ``Completed(n)`` an ``ERROR n`` and
        ``TimedOut`` a timeout. Every other outcome is treated conservatively
        as a failure with an unknown exit code.
        """
        if isinstance(outcome, Completed):
            if outcome.exit_code == 0:
                return cls.success()
            return cls.error(outcome.exit_code)
        if isinstance(outcome, TimedOut):
            return cls.timed_out()
        return cls.error(UNKNOWN_EXIT_CODE)

    @classmethod
    def parse(cls, text: str) -> "ExecutionStatus":
        """
        Parse the textual form written by ``to_text``.

        Raises:
            ValueError: If the text is not a recognised status
        """
        value = text.strip()
        if value == StatusKind.IN_PROGRESS.value:
            return cls.in_progress()
        if value == StatusKind.SUCCESS.value:
            return cls.success()
        if value == StatusKind.TIMED_OUT.value:
            return cls.timed_out()
        prefix = StatusKind.ERROR.value + " "
        if value.startswith(prefix):
            try:
                return cls.error(int(value[len(prefix):]))
            except ValueError:
                pass
        raise ValueError(f"Unrecognised status: {text!r}")

    def to_text(self) -> str:
        if self.kind is StatusKind.ERROR:
            return f"{self.kind.value} {self.exit_code}"
        return self.kind.value

    @property
    def is_terminal(self) -> bool:
        return self.kind is not StatusKind.IN_PROGRESS

    @property
    def is_success(self) -> bool:
        return self.kind is StatusKind.SUCCESS

    def __str__(self) -> str:
        return self.to_text()
