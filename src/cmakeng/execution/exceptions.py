"""
Failures raised to callers of a supervised execution.

Each failure carries the ``SessionResult`` of the execution that produced it,
so callers can still inspect the outcome, the recorded status and any
captured output.
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ..models.execution import SessionResult


class ExecutionFailure(Exception):
    """Base class for every user-visible execution failure."""

    def __init__(self, message: str, result: Optional["SessionResult"] = None):
        super().__init__(message)
        self.result = result


class LaunchFailure(ExecutionFailure):
    """The executable was missing, not executable, or could not be spawned."""


class NonZeroExitFailure(ExecutionFailure):
    """The process ran and returned a non-zero exit code."""

    @property
    def exit_code(self) -> Optional[int]:
        return self.result.exit_code if self.result else None


class TimeoutFailure(ExecutionFailure):
    """The process exceeded its configured duration and was terminated."""

    @property
    def timeout(self) -> Optional[float]:
        if self.result is None:
            return None
        return getattr(self.result.outcome, "timeout", None)


class WaitInterruptedFailure(ExecutionFailure):
    """The supervising flow was interrupted while waiting for the process."""
