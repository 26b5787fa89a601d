"""
Timed wait supervisor.

``Popen.wait()`` blocks until the process exits. To bound that wait, the
supervisor runs the unbounded wait in a dedicated waiter thread that records
the exit code, and the caller waits on the waiter for at most the configured
duration. When the duration runs out first, the waiter is abandoned: its
blocking call cannot be aborted, so whatever it reports later is discarded.
"""

import logging
import subprocess
import threading
import time
from typing import Optional

from ..models.outcome import Completed, ExecutionOutcome, TimedOut, WaitInterrupted
from .shared_state import TimeoutConstants

logger = logging.getLogger(__name__)


class TimedWaitSupervisor:
    """
    Waits for a process to terminate or for a deadline, whichever comes first.

    Tie-break: when the deadline is reached, the supervisor looks once more,
    without blocking, at whether the waiter has already recorded an exit
    code. If it has, the outcome is ``Completed``; otherwise ``TimedOut``.
    Either way exactly one outcome is returned.
    """

    def __init__(self, process: subprocess.Popen, name: str):
        """
        Initialize the supervisor.

        Args:
            process: The launched process to wait for
            name: Execution name used in thread names and log messages
        """
        self.process = process
        self.name = name

        self.finished = threading.Event()
        self.exit_code: Optional[int] = None
        self.wait_error: Optional[BaseException] = None
        self.thread: Optional[threading.Thread] = None

        self._abandoned = False
        self._lock = threading.Lock()

    def start(self) -> None:
        """Start the waiter thread."""
        if self.thread is not None:
            raise RuntimeError(f"Supervisor for {self.name} already started")

        self.thread = threading.Thread(
            target=self._wait_for_process,
            name=f"Waiter-{self.name}",
            daemon=True
        )
        self.thread.start()

    def _wait_for_process(self) -> None:
        """Waiter thread body: the unbounded wait."""
        try:
            exit_code = self.process.wait()
            with self._lock:
                self.exit_code = exit_code
                abandoned = self._abandoned
            if abandoned:
                logger.debug(
                    f"Discarding exit code {exit_code} of {self.name}: "
                    f"supervisor already moved on"
                )
        except Exception as e:
            with self._lock:
                self.wait_error = e
            logger.debug(f"Waiter for {self.name} failed: {e}")
        finally:
            self.finished.set()

    def await_outcome(
        self,
        timeout: Optional[float] = None,
        interrupt_event: Optional[threading.Event] = None
    ) -> ExecutionOutcome:
        """
        Block until the process exits, the timeout elapses, or an interrupt.

        Args:
            timeout: Maximum seconds to wait; None waits without bound
            interrupt_event: Checked between wait slices; when set, the wait
                ends with ``WaitInterrupted``

        Returns:
            ``Completed``, ``TimedOut`` or ``WaitInterrupted``
        """
        if self.thread is None:
            raise RuntimeError(f"Supervisor for {self.name} was not started")

        deadline = None if timeout is None else time.monotonic() + timeout
        try:
            while True:
                slice_seconds = TimeoutConstants.WAIT_POLL_INTERVAL
                if deadline is not None:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        return self._resolve_deadline(timeout)
                    slice_seconds = min(slice_seconds, remaining)

                if self.finished.wait(slice_seconds):
                    return self._completed_outcome()

                if interrupt_event is not None and interrupt_event.is_set():
                    logger.warning(f"Interrupted while waiting for {self.name}")
                    return WaitInterrupted(
                        InterruptedError(f"interrupt requested while waiting for {self.name}")
                    )
        except KeyboardInterrupt as e:
            logger.warning(f"Keyboard interrupt while waiting for {self.name}")
            return WaitInterrupted(e)

    def _resolve_deadline(self, timeout: Optional[float]) -> ExecutionOutcome:
        if self.finished.is_set():
            logger.debug(f"{self.name} exited as its timeout expired; reporting completion")
            return self._completed_outcome()
        logger.warning(f"{self.name} timed out after {timeout:g} seconds")
        return TimedOut(timeout)

    def _completed_outcome(self) -> ExecutionOutcome:
        with self._lock:
            exit_code = self.exit_code
            wait_error = self.wait_error
        if wait_error is not None or exit_code is None:
            return WaitInterrupted(wait_error)
        return Completed(exit_code)

    def abandon(self) -> None:
        """Stop caring about the waiter; a late result will be discarded."""
        with self._lock:
            self._abandoned = True

    @property
    def abandoned(self) -> bool:
        with self._lock:
            return self._abandoned

    def wait_for_exit(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the waiter thread to observe the process exit.

        The process terminator uses this instead of a second ``waitpid`` so
        that only the waiter ever reaps the process. Without a waiter (the
        supervisor was never started) nobody else reaps it, so the process is
        waited for directly.

        Returns:
            True if the process has exited
        """
        if self.thread is None:
            try:
                self.process.wait(timeout=timeout)
            except subprocess.TimeoutExpired:
                return False
            return True
        return self.finished.wait(timeout)

    def is_process_running(self) -> bool:
        if self.thread is None:
            return self.process.poll() is None
        return not self.finished.is_set()
