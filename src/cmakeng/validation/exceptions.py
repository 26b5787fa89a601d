"""
Error types and logging helpers shared by every cmake-ng layer.

``ValidationError`` covers everything that can be rejected before a build
tool is launched: configuration files, command-line options, missing tools
and directories that cannot be created. The ``handle_*`` helpers log an error
with a short context prefix and then either re-raise it or, at the CLI
boundary, exit.
"""

import logging
import sys
from enum import Enum
from typing import Any, Callable, NoReturn, Optional, TypeVar, Union

logger = logging.getLogger(__name__)

T = TypeVar('T')


class ErrorSeverity(Enum):
    """Log level an error is reported at; values are logger method names."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ValidationError(Exception):
    """
    A configuration value, option or precondition was rejected.

    ``field_name`` names the offending setting the way the user wrote it
    (``generate.source``, ``--timeout``, ``executable``) so the CLI message
    points at something the user can fix.
    """

    def __init__(self, message: str, field_name: Optional[str] = None,
                 value: Any = None, severity: ErrorSeverity = ErrorSeverity.ERROR):
        super().__init__(message)
        self.field_name = field_name
        self.value = value
        self.severity = severity


class PlatformNotSupportedError(ValidationError):
    """Raised by every action on Windows, where the build is not supported."""


def handle_error(
    error: Exception,
    context: str,
    severity: Union[ErrorSeverity, str] = ErrorSeverity.ERROR,
    reraise: bool = True,
    logger: Optional[logging.Logger] = None,
    include_traceback: bool = False
) -> None:
    """
    Log ``error`` as "Error in <context>: <error>" and optionally re-raise it.

    Sessions call this with ``reraise=False`` during teardown, where one
    failing step must not stop the remaining ones.

    Args:
        error: The exception to report
        context: What was being done, e.g. "joining drain worker stdout"
        severity: ErrorSeverity member or its name in any case
        reraise: Raise ``error`` again after logging
        logger: Logger of the calling module (defaults to this module's)
        include_traceback: Attach the traceback; DEBUG and CRITICAL always do
    """
    target = logger or globals()['logger']
    if isinstance(severity, str):
        severity = ErrorSeverity(severity.lower())

    with_traceback = include_traceback or severity in (ErrorSeverity.DEBUG, ErrorSeverity.CRITICAL)
    getattr(target, severity.value)(f"Error in {context}: {error}", exc_info=with_traceback)

    if reraise:
        raise error


def validate_with_handler(
    validation_func: Callable[[Any], T],
    value: Any,
    field_name: str,
    context: str,
    logger: Optional[logging.Logger] = None
) -> T:
    """
    Run a validator and turn any foreign exception into a ValidationError.

    The CLI uses this for option values so that a bad ``--timeout`` ends
    with a clean message instead of a traceback.

    Raises:
        ValidationError: If ``validation_func`` raises anything
    """
    try:
        return validation_func(value)
    except ValidationError:
        raise
    except Exception as e:
        message = f"Invalid {field_name} in {context}: {e}"
        if logger:
            logger.error(message)
        raise ValidationError(message, field_name=field_name, value=value) from e


def handle_config_error(error: Exception, context: str, **kwargs) -> None:
    """Report a problem reading or validating the cmake-ng TOML configuration."""
    handle_error(error, f"config {context}", **kwargs)


def handle_file_error(error: Exception, context: str, **kwargs) -> None:
    """Report a failed write of a status or result file."""
    handle_error(error, f"file {context}", **kwargs)


def handle_subprocess_error(error: Exception, command: str, **kwargs) -> None:
    """Report a build tool or test binary that could not be launched."""
    handle_error(error, f"launching {command}", **kwargs)


def handle_cli_error(
    error: Exception,
    context: str,
    exit_code: int = 1,
    include_traceback: bool = False,
    severity: Union[ErrorSeverity, str] = ErrorSeverity.ERROR,
    logger: Optional[logging.Logger] = None
) -> NoReturn:
    """Log a failed action or configuration load, then exit the CLI."""
    handle_error(
        error,
        f"CLI {context}",
        severity=severity,
        reraise=False,
        logger=logger,
        include_traceback=include_traceback
    )
    sys.exit(exit_code)
