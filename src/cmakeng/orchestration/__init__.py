"""
Orchestration of the build actions.

Components:
- run_generate: cmake, printed live
- run_compile: make, output buffered
- run_test / run_tests: test binaries with timeouts and result files
- run_step: shared session driver for the actions
- SignalHandler: SIGINT/SIGTERM delegation to active sessions
"""

from .compile_step import COMPILE_LABEL, build_compile_request, run_compile
from .generate_step import GENERATE_LABEL, build_generate_request, run_generate
from .signal_handler import SignalHandler
from .step_runner import require_tool, run_step
from .test_step import build_test_request, failure_label, run_test, run_tests

__all__ = [
    "GENERATE_LABEL",
    "build_generate_request",
    "run_generate",
    "COMPILE_LABEL",
    "build_compile_request",
    "run_compile",
    "build_test_request",
    "failure_label",
    "run_test",
    "run_tests",
    "require_tool",
    "run_step",
    "SignalHandler",
]
