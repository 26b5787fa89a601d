"""
Supervised execution of external processes.

This module launches external processes, drains their output without ever
letting them block on a full pipe, bounds how long they may run, tears down
whole process trees, and records a durable status per execution.

Components:
- ProcessSession: One supervised run, from launch to teardown
- PipeDrainWorker: Per-stream output draining thread
- TimedWaitSupervisor: Bounded wait on process termination
- ProcessTerminator: SIGTERM/SIGKILL escalation over the process tree
- StatusRecorder: Atomic status file writes
"""

from .drain import BufferSink, ConsoleSink, FileSink, OutputSink, PipeDrainWorker, create_sink
from .exceptions import (
    ExecutionFailure,
    LaunchFailure,
    NonZeroExitFailure,
    TimeoutFailure,
    WaitInterruptedFailure,
)
from .process_manager import ProcessTerminator
from .session import ProcessSession
from .shared_state import SessionState, TimeoutConstants
from .status_recorder import STATUS_SUFFIX, StatusRecorder, read_status, status_path
from .supervisor import TimedWaitSupervisor

__all__ = [
    # Session
    "ProcessSession",
    "SessionState",
    "TimeoutConstants",
    # Draining
    "OutputSink",
    "ConsoleSink",
    "BufferSink",
    "FileSink",
    "create_sink",
    "PipeDrainWorker",
    # Waiting and termination
    "TimedWaitSupervisor",
    "ProcessTerminator",
    # Status records
    "STATUS_SUFFIX",
    "StatusRecorder",
    "read_status",
    "status_path",
    # Failures
    "ExecutionFailure",
    "LaunchFailure",
    "NonZeroExitFailure",
    "TimeoutFailure",
    "WaitInterruptedFailure",
]
