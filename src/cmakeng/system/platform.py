"""
Host platform checks.

Every build action calls ``validate_platform()`` before doing anything else.
"""

import logging
import platform
from typing import Optional

from ..validation import PlatformNotSupportedError

logger = logging.getLogger(__name__)

UNSUPPORTED_SYSTEMS = ("windows",)


def is_supported_platform(system_name: Optional[str] = None) -> bool:
    """
    Check whether cmake-ng can drive builds on a platform.

    Args:
        system_name: Platform name as reported by ``platform.system()``
            (defaults to the current host)
    """
    system = (system_name if system_name is not None else platform.system()).lower()
    return not any(system.startswith(name) for name in UNSUPPORTED_SYSTEMS)


def validate_platform(system_name: Optional[str] = None) -> None:
    """
    Refuse to run on unsupported platforms.

    Raises:
        PlatformNotSupportedError: On Windows
    """
    system = system_name if system_name is not None else platform.system()
    if not is_supported_platform(system):
        raise PlatformNotSupportedError(
            "cmake-ng does not (yet) support the Windows platform.",
            field_name="platform",
            value=system
        )
    logger.debug(f"Platform {system} is supported")
