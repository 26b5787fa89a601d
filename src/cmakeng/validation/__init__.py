"""
Input validation and error reporting for cmake-ng.

Validators check configuration values and CLI options before any build tool
is launched; the error helpers give every layer the same log format.
"""

# Core exception classes and error handling
from .exceptions import (
    ErrorSeverity,
    PlatformNotSupportedError,
    ValidationError,
    handle_error,
    handle_config_error,
    handle_file_error,
    handle_subprocess_error,
    handle_cli_error,
    validate_with_handler,
)

# Validation functions
from .validators import (
    ensure_directory,
    validate_execution_name,
    validate_non_empty_string,
    validate_optional_timeout,
    validate_path_exists,
    validate_positive_float,
    validate_source_not_in_output,
    validate_string_list,
    validate_string_mapping,
)

__all__ = [
    # Core functionality
    "ErrorSeverity",
    "PlatformNotSupportedError",
    "ValidationError",
    "handle_error",
    "handle_config_error",
    "handle_file_error",
    "handle_subprocess_error",
    "handle_cli_error",
    "validate_with_handler",
    # Validators
    "ensure_directory",
    "validate_execution_name",
    "validate_non_empty_string",
    "validate_optional_timeout",
    "validate_path_exists",
    "validate_positive_float",
    "validate_source_not_in_output",
    "validate_string_list",
    "validate_string_mapping",
]
