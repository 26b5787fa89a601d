"""
Common driver for the build actions.

Every action builds an ExecutionRequest and hands it to ``run_step``, which
runs one ProcessSession with signal delegation in place and turns an
unsuccessful result into the matching ExecutionFailure.
"""

import logging
from typing import Optional, TextIO

from ..execution import ProcessSession, ProcessTerminator
from ..models.execution import ExecutionRequest, SessionResult
from ..system import check_tool_installed
from ..validation import ValidationError
from .signal_handler import SignalHandler

logger = logging.getLogger(__name__)


def require_tool(request: ExecutionRequest, label: str) -> None:
    """
    Fail before anything is launched when the build tool cannot be found.

    The lookup uses the PATH the child process will see.

    Raises:
        ValidationError: If the executable is not installed
    """
    tool = str(request.executable)
    if not check_tool_installed(tool, path=request.merged_environment().get("PATH")):
        raise ValidationError(
            f"Error executing {label}: {tool} is not installed or not on PATH",
            field_name="executable",
            value=tool
        )


def run_step(
    request: ExecutionRequest,
    label: str,
    console: Optional[TextIO] = None,
    terminator: Optional[ProcessTerminator] = None,
    handle_signals: bool = True
) -> SessionResult:
    """
    Run one supervised execution for a build action.

    Args:
        request: What to run
        label: How the execution is named in failure messages ("CMake", ...)
        console: Console stream for live and buffered output
        terminator: Process terminator override
        handle_signals: Install SIGINT/SIGTERM delegation while running

    Returns:
        The successful SessionResult

    Raises:
        ExecutionFailure: If the execution did not succeed
    """
    session = ProcessSession(request, console=console, terminator=terminator)
    signal_handler = SignalHandler()
    session_id = id(session)

    signal_handler.register_session(session_id, session)
    if handle_signals:
        signal_handler.setup_signal_handlers()
    try:
        result = session.run()
    finally:
        signal_handler.cleanup_signal_handlers()
        signal_handler.unregister_session(session_id)

    return result.check_outcome(label)
