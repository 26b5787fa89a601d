"""
Forced termination of supervised processes.

This module terminates a still-running process together with its descendants
and its process group, escalating from SIGTERM to SIGKILL. Killing the whole
tree matters for output draining: a grandchild that inherited the stdout
pipe keeps it open, and the drain worker would never see end-of-stream.
"""

import logging
import os
import signal
import subprocess
import time
from typing import Callable, List, Optional

import psutil

from .shared_state import TimeoutConstants

logger = logging.getLogger(__name__)


class ProcessTerminator:
    """
    Process tree termination with escalating force.

    Handles the usual edge cases:
    - the process exiting between the check and the signal
    - zombies, which count as terminated
    - children spawned while termination is in progress
    - grandchildren reparented after their parent died
    """

    def __init__(
        self,
        graceful_timeout: float = TimeoutConstants.TERMINATION_GRACEFUL_TIMEOUT,
        force_timeout: float = TimeoutConstants.TERMINATION_FORCE_TIMEOUT
    ):
        self.phases = [
            {"name": "graceful", "signal": "SIGTERM", "timeout": graceful_timeout, "force": False},
            {"name": "force_kill", "signal": "SIGKILL", "timeout": force_timeout, "force": True},
        ]

    def terminate(
        self,
        process: subprocess.Popen,
        name: str,
        wait_for_leader: Optional[Callable[[float], bool]] = None
    ) -> bool:
        """
        Terminate a process and everything it started.

        Args:
            process: The process to terminate
            name: Human-readable name for log messages
            wait_for_leader: Callable waiting up to N seconds for the process
                itself to be reaped, returning True once it has. Sessions pass
                their supervisor's ``wait_for_exit`` so only the waiter thread
                reaps the process. Defaults to psutil's wait.

        Returns:
            True if the process is no longer running
        """
        pid = process.pid
        logger.info(f"Terminating {name} (PID: {pid}) and its process tree")

        try:
            leader = psutil.Process(pid)
        except psutil.NoSuchProcess:
            logger.info(f"Process {name} (PID: {pid}) already terminated")
            self.kill_process_group(pid, name)
            return True
        except psutil.AccessDenied:
            logger.warning(f"Access denied to process {name} (PID: {pid}), attempting force kill")
            self._force_kill_process(pid)
            self.kill_process_group(pid, name)
            return self._leader_exited(leader=None, wait_for_leader=wait_for_leader,
                                       timeout=TimeoutConstants.TERMINATION_FORCE_TIMEOUT)

        known_children: List[psutil.Process] = []
        leader_gone = False

        for phase in self.phases:
            # Children can appear between phases; keep everything seen so far
            # because orphans are reparented away from the leader.
            known_children = self._merge_children(known_children, self._get_process_children(leader))
            alive_children = [p for p in known_children if self._is_process_alive(p)]
            leader_alive = self._is_process_alive(leader)

            if not leader_alive and not alive_children:
                logger.debug(f"{name} has no live processes left before phase {phase['name']}")
                break

            logger.info(
                f"Phase {phase['name']}: sending {phase['signal']} to "
                f"{int(leader_alive) + len(alive_children)} processes of {name}"
            )
            targets = ([leader] if leader_alive else []) + alive_children
            self._apply_termination_signal(targets, phase)

            started = time.monotonic()
            leader_gone = self._leader_exited(leader, wait_for_leader, phase["timeout"])
            remaining_time = max(0.0, phase["timeout"] - (time.monotonic() - started))
            still_alive = self._wait_for_termination(alive_children, remaining_time)

            if leader_gone and not still_alive:
                logger.info(f"All processes of {name} terminated in phase {phase['name']}")
                break
            logger.warning(
                f"Phase {phase['name']}: {name} leader "
                f"{'exited' if leader_gone else 'still alive'}, "
                f"{len(still_alive)} children still alive"
            )
            if phase is self.phases[-1]:
                self._handle_stubborn_processes(
                    ([] if leader_gone else [leader]) + still_alive, name
                )

        self.kill_process_group(pid, name)

        if not leader_gone:
            leader_gone = self._leader_exited(leader, wait_for_leader, 0.0)
        logger.info(f"Termination completed for {name} (PID: {pid})")
        return leader_gone

    def _leader_exited(
        self,
        leader: Optional[psutil.Process],
        wait_for_leader: Optional[Callable[[float], bool]],
        timeout: float
    ) -> bool:
        if wait_for_leader is not None:
            return wait_for_leader(timeout)
        if leader is None:
            return False
        return not self._wait_for_termination([leader], timeout)

    def _is_process_alive(self, process: psutil.Process) -> bool:
        """Safely check if a process is still alive and not a zombie."""
        try:
            if not process.is_running():
                return False
            status = process.status()
            return status not in [psutil.STATUS_ZOMBIE, psutil.STATUS_DEAD]
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            return False
        except Exception as e:
            logger.debug(f"Error checking process status: {e}")
            return False

    def _get_process_children(self, parent: psutil.Process) -> List[psutil.Process]:
        """Safely get all descendants of a process, handling race conditions."""
        try:
            return [child for child in parent.children(recursive=True)
                    if self._is_process_alive(child)]
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            return []
        except Exception as e:
            logger.warning(f"Error getting process children: {e}")
            return []

    @staticmethod
    def _merge_children(
        known: List[psutil.Process], current: List[psutil.Process]
    ) -> List[psutil.Process]:
        merged = list(known)
        seen = {p.pid for p in known}
        for process in current:
            if process.pid not in seen:
                merged.append(process)
                seen.add(process.pid)
        return merged

    def _apply_termination_signal(self, processes: List[psutil.Process], phase: dict) -> None:
        """Send the phase's signal to every process that is still alive."""
        signal_name = phase["signal"]
        for process in processes:
            try:
                if phase["force"]:
                    process.kill()
                else:
                    process.terminate()
                logger.debug(f"Sent {signal_name} to PID {process.pid}")
            except psutil.NoSuchProcess:
                continue
            except psutil.AccessDenied:
                logger.warning(f"Access denied sending {signal_name} to PID {process.pid}")
            except Exception as e:
                logger.warning(f"Error sending {signal_name} to PID {process.pid}: {e}")

    def _wait_for_termination(self, processes: List[psutil.Process], timeout: float) -> List[psutil.Process]:
        """Wait for processes to terminate and return any that are still alive."""
        if not processes:
            return []
        try:
            _, still_alive = psutil.wait_procs(processes, timeout=timeout)
        except Exception as e:
            logger.warning(f"Error waiting for process termination: {e}")
            still_alive = processes
        # Zombies are effectively terminated
        return [p for p in still_alive if self._is_process_alive(p)]

    def _handle_stubborn_processes(self, processes: List[psutil.Process], name: str) -> None:
        """Log processes that survived SIGKILL (usually stuck in uninterruptible I/O)."""
        logger.error(f"Failed to terminate {len(processes)} processes for {name}")
        for process in processes:
            try:
                logger.error(f"Stubborn process: PID {process.pid}, name: {process.name()}, "
                             f"status: {process.status()}")
            except Exception as e:
                logger.error(f"Could not get info for stubborn process PID {process.pid}: {e}")

    def kill_process_group(self, pid: int, name: str) -> None:
        """
        SIGKILL every member of the process group ``pid``.

        Sessions start their process in a new session, so the group outlives
        its leader and still holds any background descendants.
        """
        if not hasattr(os, "killpg"):
            return
        try:
            os.killpg(pid, signal.SIGKILL)
            logger.debug(f"Sent SIGKILL to process group {pid} for {name}")
        except ProcessLookupError:
            pass
        except PermissionError:
            logger.debug(f"No permission to kill process group {pid}")
        except OSError as e:
            logger.debug(f"Error cleaning process group {pid}: {e}")

    def _force_kill_process(self, pid: int) -> None:
        """Force kill a single process by PID as last resort."""
        try:
            os.kill(pid, signal.SIGKILL)
            logger.warning(f"Force killed process PID {pid}")
        except ProcessLookupError:
            pass
        except OSError as e:
            logger.error(f"Failed to force kill PID {pid}: {e}")
