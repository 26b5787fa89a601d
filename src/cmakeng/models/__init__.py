"""
Data models for cmakeng.

Configuration Models:
- Settings for the generate, compile and test actions

Execution Models:
- The request describing one supervised process execution
- The outcome variants and the persisted status record
- The result handed back by a finished session

All models are dataclasses.
"""

# Configuration models
from .config import (
    DEFAULT_GENERATOR,
    DEFAULT_RESULTS_DIR,
    DEFAULT_TEST_TIMEOUT,
    AppConfig,
    CompileConfig,
    GenerateConfig,
    TestConfig,
)

# Execution models
from .execution import ExecutionRequest, OutputMode, SessionResult
from .outcome import Completed, ExecutionOutcome, LaunchFailed, TimedOut, WaitInterrupted
from .status import UNKNOWN_EXIT_CODE, ExecutionStatus, StatusKind

__all__ = [
    # Configuration
    "DEFAULT_GENERATOR",
    "DEFAULT_RESULTS_DIR",
    "DEFAULT_TEST_TIMEOUT",
    "AppConfig",
    "CompileConfig",
    "GenerateConfig",
    "TestConfig",
    # Execution
    "ExecutionRequest",
    "OutputMode",
    "SessionResult",
    "ExecutionOutcome",
    "Completed",
    "TimedOut",
    "LaunchFailed",
    "WaitInterrupted",
    "ExecutionStatus",
    "StatusKind",
    "UNKNOWN_EXIT_CODE",
]
