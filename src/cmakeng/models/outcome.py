"""
Execution outcome variants.

Exactly one of these describes how a supervised execution ended. They are
plain frozen dataclasses so callers can dispatch with ``isinstance``.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ExecutionOutcome:
    """Base class of the four outcome variants."""

    @property
    def description(self) -> str:
        return self.__class__.__name__


@dataclass(frozen=True)
class Completed(ExecutionOutcome):
    """The process ran to completion and reported an exit code."""

    # Negative codes mean the process died from that signal number.
    exit_code: int

    @property
    def description(self) -> str:
        return f"completed with exit code {self.exit_code}"


@dataclass(frozen=True)
class TimedOut(ExecutionOutcome):
    """The process was still running when the configured duration elapsed."""

    timeout: Optional[float] = None

    @property
    def description(self) -> str:
        if self.timeout is None:
            return "timed out"
        return f"timed out after {self.timeout:g} seconds"


@dataclass(frozen=True)
class LaunchFailed(ExecutionOutcome):
    """The process could not be started (missing executable, spawn error, ...)."""

    cause: BaseException

    @property
    def description(self) -> str:
        return f"failed to launch: {self.cause}"


@dataclass(frozen=True)
class WaitInterrupted(ExecutionOutcome):
    """The supervising thread was interrupted while waiting for the process."""

    cause: Optional[BaseException] = None

    @property
    def description(self) -> str:
        if self.cause is None:
            return "interrupted while waiting"
        return f"interrupted while waiting: {self.cause}"
