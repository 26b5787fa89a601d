"""
Signal handling for the orchestration module.

This module manages signal registration, cleanup, and delegation to active
ProcessSession instances using a global registry pattern.
"""

import logging
import signal
import threading
from typing import TYPE_CHECKING, Any, Dict

if TYPE_CHECKING:
    from ..execution.session import ProcessSession

logger = logging.getLogger(__name__)

# Global state management for signal handling
# Since signal handlers cannot be bound to class instances directly,
# we maintain a registry of active sessions.
_active_sessions: Dict[int, "ProcessSession"] = {}
# Re-entrant: the handler runs on the main thread, which may hold the lock.
_active_sessions_lock = threading.RLock()


class SignalHandler:
    """
    Manages signal registration and cleanup for ProcessSession instances.

    SIGINT and SIGTERM are turned into ``interrupt()`` calls on every
    registered session. Supervised processes run in their own session, so
    they do not see a terminal Ctrl-C themselves; they are torn down by the
    interrupted session instead.
    """

    def __init__(self):
        self._original_sigint_handler = None
        self._original_sigterm_handler = None
        self._signal_handlers_set = False

    def setup_signal_handlers(self) -> None:
        """Install the handlers, remembering the previous ones."""
        if threading.current_thread() is not threading.main_thread():
            logger.warning("Signal handlers can only be installed from the main thread; skipping")
            return
        try:
            # Store original handlers so we can restore them later
            self._original_sigint_handler = signal.signal(signal.SIGINT, self._global_signal_handler)
            self._original_sigterm_handler = signal.signal(signal.SIGTERM, self._global_signal_handler)
            self._signal_handlers_set = True
            logger.debug("Signal handlers set up for process sessions")
        except (ValueError, OSError) as e:
            logger.warning(f"Failed to set up signal handlers: {e}")

    def cleanup_signal_handlers(self) -> None:
        """Restore original signal handlers."""
        if not self._signal_handlers_set:
            return

        try:
            if self._original_sigint_handler is not None:
                signal.signal(signal.SIGINT, self._original_sigint_handler)
            if self._original_sigterm_handler is not None:
                signal.signal(signal.SIGTERM, self._original_sigterm_handler)
            logger.debug("Signal handlers restored")
        except (ValueError, OSError) as e:
            logger.warning(f"Failed to restore signal handlers: {e}")
        finally:
            self._signal_handlers_set = False

    def register_session(self, session_id: int, session: "ProcessSession") -> None:
        """
        Register a ProcessSession instance for signal handling.

        Args:
            session_id: Unique identifier for the session
            session: The session to interrupt on SIGINT/SIGTERM
        """
        with _active_sessions_lock:
            _active_sessions[session_id] = session
            logger.debug(f"Registered session {session.name} ({session_id}) for signal handling")

    def unregister_session(self, session_id: int) -> None:
        """
        Unregister a ProcessSession instance from signal handling.

        Args:
            session_id: Unique identifier for the session to remove
        """
        with _active_sessions_lock:
            session = _active_sessions.pop(session_id, None)
            if session is not None:
                logger.debug(f"Unregistered session {session.name} ({session_id}) from signal handling")

    @staticmethod
    def active_session_count() -> int:
        with _active_sessions_lock:
            return len(_active_sessions)

    @staticmethod
    def _global_signal_handler(signum: int, frame: Any) -> None:
        """
        Global signal handler that delegates to active sessions.

        Args:
            signum: Signal number that was received
            frame: Current stack frame (unused)
        """
        logger.warning(f"Signal {signum} received. Interrupting all active sessions.")
        with _active_sessions_lock:
            sessions = list(_active_sessions.values())
        for session in sessions:
            session.interrupt()
