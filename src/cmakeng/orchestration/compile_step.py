"""
The ``compile`` action: run make in the generated build tree.
"""

import logging
from typing import Optional, TextIO

from ..models.config import CompileConfig
from ..models.execution import ExecutionRequest, OutputMode, SessionResult
from ..system import build_make_command, validate_platform
from .step_runner import require_tool, run_step

logger = logging.getLogger(__name__)

COMPILE_LABEL = "make"


def build_compile_request(config: CompileConfig) -> ExecutionRequest:
    """
    Translate the compile configuration into an execution request.

    Both streams are buffered: stdout is only worth showing when the build
    fails, while stderr carries compiler warnings and is always shown.
    """
    command = build_make_command(
        target=config.target,
        verbose=config.verbose,
        make_executable=config.make_executable,
    )
    return ExecutionRequest(
        executable=command[0],
        args=command[1:],
        working_dir=config.output,
        env=dict(config.env),
        timeout=config.timeout,
        stdout_mode=OutputMode.BUFFER,
        stderr_mode=OutputMode.BUFFER,
        name="make",
    )


def run_compile(
    config: CompileConfig,
    console: Optional[TextIO] = None,
    handle_signals: bool = True
) -> SessionResult:
    """
    Compile the build tree.

    Raises:
        PlatformNotSupportedError: On unsupported platforms
        ValidationError: If make is not installed
        ExecutionFailure: If make does not succeed
    """
    validate_platform()
    request = build_compile_request(config)
    require_tool(request, COMPILE_LABEL)
    logger.info(f"Compiling in {config.output}" + (f" (target {config.target})" if config.target else ""))
    return run_step(request, COMPILE_LABEL, console=console, handle_signals=handle_signals)
