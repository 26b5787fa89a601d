"""
Configuration file loading utilities.

This module handles the low-level loading and parsing of the TOML
configuration file and splits it into the per-action sections.
"""

import logging
import tomllib
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..validation import handle_config_error, ErrorSeverity, ValidationError

logger = logging.getLogger(__name__)


def load_toml_file(file_path: Path, description: str = "configuration file") -> Dict[str, Any]:
    """
    Load and parse a TOML file with error handling.

    Args:
        file_path: Path to the TOML file to load
        description: Human-readable description for error messages

    Returns:
        Parsed TOML data as a dictionary

    Raises:
        FileNotFoundError: If the file doesn't exist
        tomllib.TOMLDecodeError: If the file is malformed
    """
    logger.info(f"Loading {description} from: {file_path}")

    if not file_path.exists():
        logger.error(f"{description} not found: {file_path}")
        raise FileNotFoundError(f"{description} not found: {file_path}")

    try:
        with open(file_path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        handle_config_error(
            error=e,
            context=f"parsing {description}",
            severity=ErrorSeverity.CRITICAL,
            reraise=True,
            logger=logger
        )
        raise


def get_section(config_data: Dict[str, Any], name: str) -> Optional[Dict[str, Any]]:
    """
    Extract a table section such as ``[generate]``.

    Returns:
        The section, or None if the file does not define it

    Raises:
        ValidationError: If the key exists but is not a table
    """
    section = config_data.get(name)
    if section is None:
        return None
    if not isinstance(section, dict):
        raise ValidationError(
            f"[{name}] must be a table",
            field_name=name,
            value=section
        )
    return section


def get_tests_section(config_data: Dict[str, Any]) -> List[Dict[str, Any]]:
    """
    Extract the ``[[tests]]`` array of tables.

    Returns:
        The list of test tables (empty if none are configured)

    Raises:
        ValidationError: If ``tests`` is not an array of tables
    """
    tests = config_data.get("tests", [])
    if not isinstance(tests, list) or not all(isinstance(t, dict) for t in tests):
        raise ValidationError(
            "tests must be an array of tables ([[tests]])",
            field_name="tests",
            value=tests
        )
    return tests


def resolve_path(value: Any, config_dir: Path) -> Path:
    """Resolve a configured path against the directory holding the config file."""
    path = Path(value).expanduser()
    if path.is_absolute():
        return path
    return config_dir / path
