"""
System interaction utilities.

This module provides the host platform gate run before every build action
and the construction of the command lines handed to the build tools.
"""

# Command construction
from .commands import (
    build_cmake_command,
    build_make_command,
    check_tool_installed,
    format_cmake_vars,
)

# Platform checks
from .platform import is_supported_platform, validate_platform

__all__ = [
    # Commands
    "build_cmake_command",
    "build_make_command",
    "check_tool_installed",
    "format_cmake_vars",
    # Platform
    "is_supported_platform",
    "validate_platform",
]
