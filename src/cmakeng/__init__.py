"""
cmake-ng: supervised native build driver.

This package drives a CMake-based native build (generate, compile, test)
and runs every external tool under supervision: output is drained without
deadlocks, test binaries are bounded by a wall-clock timeout, whole process
trees are torn down, and each test leaves a durable status record.

The package is organized into specialized modules:
- config: Configuration management and validation
- models: Data structures and type definitions
- validation: Input validation and error handling
- system: Platform checks and build tool command lines
- execution: Supervised process sessions
- orchestration: The generate, compile and test actions
- cli: Command-line interface

Usage:
    From command line:
        cmake-ng [--config cmake-ng.toml] {generate,compile,test} [options]

    Programmatically:
        from cmakeng import ExecutionRequest, ProcessSession
        result = ProcessSession(ExecutionRequest("/bin/true")).run()
"""

__version__ = "1.0.0"

# Main interfaces
from .config import get_config, clear_config_cache, set_config_path
from .execution import ProcessSession, StatusRecorder, read_status
from .orchestration import run_compile, run_generate, run_test, run_tests
from .cli import main_cli

# Model classes for external use
from .models import (
    AppConfig,
    CompileConfig,
    ExecutionRequest,
    ExecutionStatus,
    GenerateConfig,
    OutputMode,
    SessionResult,
    TestConfig,
)

# Validation utilities
from .validation import (
    PlatformNotSupportedError,
    ValidationError,
)

__all__ = [
    # Main interfaces
    "get_config",
    "clear_config_cache",
    "set_config_path",
    "ProcessSession",
    "StatusRecorder",
    "read_status",
    "run_generate",
    "run_compile",
    "run_test",
    "run_tests",
    "main_cli",
    # Models
    "AppConfig",
    "GenerateConfig",
    "CompileConfig",
    "TestConfig",
    "ExecutionRequest",
    "ExecutionStatus",
    "OutputMode",
    "SessionResult",
    # Validation
    "PlatformNotSupportedError",
    "ValidationError",
]
