"""
The ``generate`` action: run cmake to create the native build tree.
"""

import logging
from typing import Optional, TextIO

from ..models.config import GenerateConfig
from ..models.execution import ExecutionRequest, OutputMode, SessionResult
from ..system import build_cmake_command, validate_platform
from ..validation import ensure_directory, validate_path_exists, validate_source_not_in_output
from .step_runner import require_tool, run_step

logger = logging.getLogger(__name__)

GENERATE_LABEL = "CMake"


def build_generate_request(config: GenerateConfig) -> ExecutionRequest:
    """
    Translate the generate configuration into an execution request.

    cmake runs inside the output directory; its stderr is merged into
    stdout and printed as it arrives.
    """
    command = build_cmake_command(
        config.source,
        cmake_vars=config.vars,
        generator=config.generator,
        cmake_executable=config.cmake_executable,
    )
    return ExecutionRequest(
        executable=command[0],
        args=command[1:],
        working_dir=config.output,
        env=dict(config.env),
        timeout=config.timeout,
        stdout_mode=OutputMode.CONSOLE,
        merge_stderr=True,
        name="cmake",
    )


def run_generate(
    config: GenerateConfig,
    console: Optional[TextIO] = None,
    handle_signals: bool = True
) -> SessionResult:
    """
    Generate the build tree.

    Raises:
        PlatformNotSupportedError: On unsupported platforms
        ValidationError: If cmake is not installed, the source is missing or lies
            inside the output directory, or the output directory cannot be created
        ExecutionFailure: If cmake does not succeed
    """
    validate_platform()
    validate_path_exists(config.source, field_name="generate.source")
    validate_source_not_in_output(config.source, config.output)
    ensure_directory(config.output, field_name="generate.output")

    request = build_generate_request(config)
    require_tool(request, GENERATE_LABEL)
    # Printed rather than logged: it belongs with cmake's own output.
    print(f"Running {request.describe()}", file=console, flush=True)
    return run_step(request, GENERATE_LABEL, console=console, handle_signals=handle_signals)
