"""
Shared state and constants for the execution module.
"""

import subprocess
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from .drain import BufferSink, PipeDrainWorker
    from .supervisor import TimedWaitSupervisor


@dataclass
class SessionState:
    """
    Runtime state of one process session.

    Owned by a single ProcessSession; drain workers and the supervisor each
    get their own handles out of it and never touch the rest.
    """
    process: Optional[subprocess.Popen] = None
    supervisor: Optional["TimedWaitSupervisor"] = None
    workers: List["PipeDrainWorker"] = field(default_factory=list)
    stdout_buffer: Optional["BufferSink"] = None
    stderr_buffer: Optional["BufferSink"] = None
    # Set from signal handlers or other threads to stop waiting early.
    interrupt_requested: threading.Event = field(default_factory=threading.Event)
    forced_termination: bool = False
    start_time: Optional[float] = None
    end_time: Optional[float] = None


class TimeoutConstants:
    """
    Centralized timeout configuration, in seconds.
    """
    # Slice of the bounded wait between checks of the interrupt flag
    WAIT_POLL_INTERVAL = 0.1
    
    # Process termination timeouts
    TERMINATION_GRACEFUL_TIMEOUT = 3.0
    TERMINATION_FORCE_TIMEOUT = 2.0

    # Per-worker join grace after a forced termination, applied twice: once
    # before cancelling the worker and once after
    DRAIN_JOIN_TIMEOUT = 5.0
