"""
Execution data models.

This module contains the request describing one supervised execution of an
external process and the result handed back once its session has been torn
down.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Union

from .outcome import Completed, ExecutionOutcome, LaunchFailed, TimedOut, WaitInterrupted
from .status import ExecutionStatus


class OutputMode(Enum):
    """Where the lines of one process output stream go."""
    # Print each line as it arrives.
    CONSOLE = "console"
    # Keep lines in memory; printed after the run according to the output policy.
    BUFFER = "buffer"
    # Stream lines to <results_dir>/<name>.stdout or .stderr.
    FILE = "file"


@dataclass
class ExecutionRequest:
    """
    Everything needed to launch and supervise one external process.
    """

    # Path (or bare name looked up on PATH) of the program to run.
    executable: Union[str, Path]
    # Arguments passed after the executable, in this exact order.
    args: List[str] = field(default_factory=list)
    # Working directory of the process; None inherits ours.
    working_dir: Optional[Path] = None
    # Environment overrides merged onto the inherited environment. None
    # values are passed as the empty string.
    env: Dict[str, Optional[str]] = field(default_factory=dict)
    # Wall-clock limit in seconds; None waits forever.
    timeout: Optional[float] = None
    stdout_mode: OutputMode = OutputMode.CONSOLE
    stderr_mode: OutputMode = OutputMode.CONSOLE
    # Redirect stderr into stdout; stderr_mode is then ignored.
    merge_stderr: bool = False
    # Directory for .status/.stdout/.stderr files.
    results_dir: Optional[Path] = None
    # Name used for result files; defaults to the executable's base name.
    name: Optional[str] = None
    record_status: bool = False

    @property
    def execution_name(self) -> str:
        if self.name:
            return self.name
        return os.path.basename(str(self.executable))

    def command_line(self) -> List[str]:
        """The full argv: executable followed by the arguments."""
        return [str(self.executable), *self.args]

    def merged_environment(self, base: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        """
        Build the environment for the child process.

        Args:
            base: Environment to start from (defaults to ``os.environ``)

        Returns:
            A new dictionary with the overrides applied on top of ``base``
        """
        environment = dict(os.environ if base is None else base)
        for key, value in self.env.items():
            environment[key] = "" if value is None else value
        return environment

    @property
    def stdout_path(self) -> Optional[Path]:
        if self.results_dir is None:
            return None
        return Path(self.results_dir) / f"{self.execution_name}.stdout"

    @property
    def stderr_path(self) -> Optional[Path]:
        if self.results_dir is None:
            return None
        return Path(self.results_dir) / f"{self.execution_name}.stderr"

    @property
    def uses_file_output(self) -> bool:
        if self.stdout_mode is OutputMode.FILE:
            return True
        return not self.merge_stderr and self.stderr_mode is OutputMode.FILE

    @property
    def needs_results_dir(self) -> bool:
        return self.record_status or self.uses_file_output

    def describe(self) -> str:
        """Render the command line with every element single-quoted, for logs."""
        return " ".join(f"'{part}'" for part in self.command_line())


@dataclass
class SessionResult:
    """
    What a finished session reports back to its caller.
    """

    request: ExecutionRequest
    outcome: ExecutionOutcome
    # Terminal status; None when the process was never launched.
    status: Optional[ExecutionStatus] = None
    # Captured lines of BUFFER-mode streams; None for other modes.
    stdout_lines: Optional[List[str]] = None
    stderr_lines: Optional[List[str]] = None
    duration_seconds: float = 0.0
    pid: Optional[int] = None

    @property
    def succeeded(self) -> bool:
        return isinstance(self.outcome, Completed) and self.outcome.exit_code == 0

    @property
    def exit_code(self) -> Optional[int]:
        if isinstance(self.outcome, Completed):
            return self.outcome.exit_code
        return None

    def check_outcome(self, label: Optional[str] = None) -> "SessionResult":
        """
        Raise the matching ExecutionFailure unless the execution succeeded.

        Args:
            label: How to refer to the execution in the error message
                (defaults to the execution name)

        Returns:
            self, so calls can be chained

        Raises:
            LaunchFailure, NonZeroExitFailure, TimeoutFailure, WaitInterruptedFailure
        """
        from ..execution.exceptions import (
            LaunchFailure,
            NonZeroExitFailure,
            TimeoutFailure,
            WaitInterruptedFailure,
        )

        if self.succeeded:
            return self

        what = label or self.request.execution_name
        outcome = self.outcome
        if isinstance(outcome, LaunchFailed):
            raise LaunchFailure(f"Error executing {what}: {outcome.cause}", self)
        if isinstance(outcome, TimedOut):
            raise TimeoutFailure(f"{what} {outcome.description}!", self)
        if isinstance(outcome, WaitInterrupted):
            raise WaitInterruptedFailure(f"Interrupted while waiting for {what}", self)
        status = self.status or ExecutionStatus.from_outcome(outcome)
        raise NonZeroExitFailure(f"{what} returned {status.to_text()}", self)
