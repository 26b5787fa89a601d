"""
Supervised execution of one external process.

A ProcessSession launches a process, drains its output streams in worker
threads, waits for it with a bounded wait, and always finishes with the same
teardown sequence:

1. stop waiting (abandon the waiter)
2. decide the terminal status from the outcome
3. terminate the process tree if it is still running
4. join the drain workers so buffered output is not lost
5. record the terminal status

Only then is captured output surfaced and the result returned.
"""

import logging
import os
import shutil
import subprocess
import time
from pathlib import Path
from typing import Optional, TextIO

from ..models.execution import ExecutionRequest, OutputMode, SessionResult
from ..models.outcome import ExecutionOutcome, LaunchFailed, WaitInterrupted
from ..models.status import ExecutionStatus
from ..validation import (
    ErrorSeverity,
    ValidationError,
    ensure_directory,
    handle_error,
    handle_file_error,
    handle_subprocess_error,
)
from .drain import BufferSink, OutputSink, PipeDrainWorker, create_sink
from .process_manager import ProcessTerminator
from .shared_state import SessionState, TimeoutConstants
from .status_recorder import StatusRecorder
from .supervisor import TimedWaitSupervisor

logger = logging.getLogger(__name__)


class ProcessSession:
    """
    One supervised run of an external process, from launch to teardown.

    A session is single-use: ``run()`` may be called once. ``interrupt()``
    may be called from any thread (typically a signal handler) to end the
    wait early; the run then reports ``WaitInterrupted``.
    """

    def __init__(
        self,
        request: ExecutionRequest,
        console: Optional[TextIO] = None,
        terminator: Optional[ProcessTerminator] = None,
        recorder: Optional[StatusRecorder] = None
    ):
        """
        Initialize the session.

        Args:
            request: What to run and how to supervise it
            console: Stream used for console output (defaults to sys.stdout)
            terminator: Process terminator used for forced termination
            recorder: Status recorder; created from the request when status
                recording is enabled and none is given
        """
        self.request = request
        self.console = console
        self.terminator = terminator or ProcessTerminator()
        self.state = SessionState()

        if recorder is None and request.record_status:
            if request.results_dir is None:
                raise ValueError("Status recording requires a results directory")
            recorder = StatusRecorder(request.results_dir, request.execution_name)
        self.recorder = recorder
        self._in_progress_recorded = False

    @property
    def name(self) -> str:
        return self.request.execution_name

    def interrupt(self) -> None:
        """Request the session to stop waiting and tear the process down."""
        logger.info(f"Interrupt requested for {self.name}")
        self.state.interrupt_requested.set()

    def run(self) -> SessionResult:
        """
        Execute the request under supervision.

        Returns:
            The SessionResult; call ``check_outcome()`` on it to turn
            failures into exceptions
        """
        state = self.state
        if state.start_time is not None:
            raise RuntimeError(f"Session for {self.name} has already run")
        state.start_time = time.monotonic()

        try:
            executable = self._initialize()
            self._launch(executable)
        except (OSError, ValidationError, subprocess.SubprocessError) as e:
            return self._launch_failed(e)

        outcome: ExecutionOutcome = WaitInterrupted(None)
        try:
            self._start_workers()
            outcome = state.supervisor.await_outcome(
                self.request.timeout, state.interrupt_requested
            )
        finally:
            status = self._teardown(outcome)

        self._surface_output(status)
        state.end_time = time.monotonic()

        result = SessionResult(
            request=self.request,
            outcome=outcome,
            status=status,
            stdout_lines=state.stdout_buffer.release() if state.stdout_buffer else None,
            stderr_lines=state.stderr_buffer.release() if state.stderr_buffer else None,
            duration_seconds=state.end_time - state.start_time,
            pid=state.process.pid if state.process else None,
        )
        log = logger.info if result.succeeded else logger.error
        log(f"{self.name} {outcome.description} (status {status}) "
            f"after {result.duration_seconds:.2f}s")
        return result

    # --- Init ---

    def _initialize(self) -> str:
        """Resolve the executable, prepare the results directory, mark IN_PROGRESS."""
        request = self.request
        executable = self._resolve_executable()

        if request.needs_results_dir:
            if request.results_dir is None:
                raise ValidationError(
                    f"{self.name} writes result files but has no results directory",
                    field_name="results_dir"
                )
            ensure_directory(request.results_dir, field_name="results_dir")

        if self.recorder is not None:
            self.recorder.write(ExecutionStatus.in_progress())
            self._in_progress_recorded = True
        return executable

    def _resolve_executable(self) -> str:
        """
        Find the program to run.

        A value containing a path separator must name an existing executable
        file; a bare name is looked up on the PATH the child will see.

        Raises:
            FileNotFoundError: If the executable does not exist
            PermissionError: If it exists but cannot be executed
        """
        executable = str(self.request.executable)
        separators = [os.sep] + ([os.altsep] if os.altsep else [])
        if not any(sep in executable for sep in separators):
            search_path = self.request.merged_environment().get("PATH")
            found = shutil.which(executable, path=search_path)
            if found is None:
                raise FileNotFoundError(f"{executable} was not found on PATH")
            return found

        path = Path(executable).absolute()
        if not path.exists():
            raise FileNotFoundError(f"{path} does not exist")
        if path.is_dir() or not os.access(path, os.X_OK):
            raise PermissionError(f"{path} is not an executable file")
        return str(path)

    # --- Launch ---

    def _launch(self, executable: str) -> None:
        """Open the output sinks and start the process."""
        request = self.request
        state = self.state

        stdout_sink = self._make_sink("stdout", request.stdout_mode, request.stdout_path)
        stderr_sink: Optional[OutputSink] = None
        try:
            if not request.merge_stderr:
                stderr_sink = self._make_sink("stderr", request.stderr_mode, request.stderr_path)

            logger.info(f"Running {request.describe()}")
            process = subprocess.Popen(
                [executable, *request.args],
                cwd=request.working_dir,
                env=request.merged_environment(),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT if request.merge_stderr else subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                bufsize=1,
                # New process group, so teardown can kill everything it spawns
                start_new_session=True,
            )
        except BaseException:
            stdout_sink.close()
            if stderr_sink is not None:
                stderr_sink.close()
            raise

        logger.info(f"{self.name} started with PID {process.pid}")
        state.process = process
        state.supervisor = TimedWaitSupervisor(process, self.name)
        state.workers.append(PipeDrainWorker(process.stdout, stdout_sink, f"{self.name}-stdout"))
        if stderr_sink is not None:
            state.workers.append(PipeDrainWorker(process.stderr, stderr_sink, f"{self.name}-stderr"))

    def _make_sink(self, role: str, mode: OutputMode, path: Optional[Path]) -> OutputSink:
        sink = create_sink(mode, path=path, stream=self.console)
        if isinstance(sink, BufferSink):
            setattr(self.state, f"{role}_buffer", sink)
        return sink

    def _launch_failed(self, error: BaseException) -> SessionResult:
        handle_subprocess_error(
            error=error,
            command=self.request.describe(),
            severity=ErrorSeverity.ERROR,
            reraise=False,
            logger=logger
        )
        outcome = LaunchFailed(error)
        status = None
        if self._in_progress_recorded:
            # Never leave IN_PROGRESS behind once run() has returned.
            status = ExecutionStatus.from_outcome(outcome)
            self._record_terminal_status(status)

        self.state.end_time = time.monotonic()
        return SessionResult(
            request=self.request,
            outcome=outcome,
            status=status,
            duration_seconds=self.state.end_time - self.state.start_time,
        )

    # --- Running ---

    def _start_workers(self) -> None:
        for worker in self.state.workers:
            worker.start()
        self.state.supervisor.start()

    # --- Teardown ---

    def _teardown(self, outcome: ExecutionOutcome) -> ExecutionStatus:
        """Always-run cleanup; returns the terminal status."""
        state = self.state
        supervisor = state.supervisor

        supervisor.abandon()
        status = ExecutionStatus.from_outcome(outcome)

        if supervisor.is_process_running():
            state.forced_termination = True
            try:
                self.terminator.terminate(
                    state.process, self.name, wait_for_leader=supervisor.wait_for_exit
                )
            except Exception as e:
                handle_error(
                    error=e,
                    context=f"terminating {self.name}",
                    severity=ErrorSeverity.ERROR,
                    reraise=False,
                    logger=logger
                )

        self._join_workers()
        self._record_terminal_status(status)

        logger.debug(f"Teardown of {self.name} complete")
        return status

    def _record_terminal_status(self, status: ExecutionStatus) -> None:
        if self.recorder is None:
            return
        try:
            self.recorder.write(status)
        except Exception as e:
            handle_file_error(
                error=e,
                context=f"writing status {self.recorder.path}",
                severity=ErrorSeverity.ERROR,
                reraise=False,
                logger=logger
            )

    def _join_workers(self) -> None:
        """
        Join every drain worker.

        Each worker gets a bounded grace period. A worker still running after
        a normal exit means a background descendant holds its pipe open, so
        the process group is killed once and the worker gets another grace
        period. A worker that still has not finished is cancelled and, if it
        stays blocked on the pipe, left behind.
        """
        grace = TimeoutConstants.DRAIN_JOIN_TIMEOUT
        group_killed = self.state.forced_termination
        for worker in self.state.workers:
            try:
                if worker.join(grace):
                    continue
                if not group_killed:
                    logger.warning(
                        f"A descendant of {self.name} still holds the {worker.name} "
                        f"pipe open; killing process group {self.state.process.pid}"
                    )
                    self.terminator.kill_process_group(self.state.process.pid, self.name)
                    group_killed = True
                    if worker.join(grace):
                        continue
                logger.warning(f"Drain worker {worker.name} still running; cancelling it")
                worker.cancel()
                if not worker.join(grace):
                    logger.warning(f"Abandoning drain worker {worker.name}; some output may be lost")
            except Exception as e:
                handle_error(
                    error=e,
                    context=f"joining drain worker {worker.name}",
                    severity=ErrorSeverity.WARNING,
                    reraise=False,
                    logger=logger
                )

    def _surface_output(self, status: ExecutionStatus) -> None:
        """
        Print buffered output.

        stderr is always printed: warnings on a zero exit code still matter.
        stdout is printed only when the execution did not succeed.
        """
        if self.state.stdout_buffer is not None and not status.is_success:
            self.state.stdout_buffer.print_to(self.console)
        if self.state.stderr_buffer is not None:
            self.state.stderr_buffer.print_to(self.console)
