"""
Configuration management and singleton pattern.

This module provides the main configuration loading and management interface,
implementing a singleton pattern to ensure configuration is loaded only once.
"""

import logging
from pathlib import Path
from typing import Optional

from ..models.config import AppConfig
from ..validation import handle_config_error, ErrorSeverity
from .loader import get_section, get_tests_section, load_toml_file
from .validators import validate_compile_config, validate_generate_config, validate_tests_config

logger = logging.getLogger(__name__)

# --- Global Singleton for Configuration ---

# This global variable will hold the single instance of the loaded AppConfig.
_CONFIG: Optional[AppConfig] = None

DEFAULT_CONFIG_PATH = Path("cmake-ng.toml")

# The configuration file to load. Overridden by the CLI's --config option
# and by tests.
_CONFIG_FILE_PATH = DEFAULT_CONFIG_PATH
_CONFIG_PATH_EXPLICIT = False


def set_config_path(config_path: Path) -> None:
    """
    Set a custom configuration file path.

    Unlike the default path, an explicitly set path must exist when the
    configuration is loaded.

    Args:
        config_path: Path to the cmake-ng.toml file
    """
    global _CONFIG_FILE_PATH, _CONFIG_PATH_EXPLICIT, _CONFIG
    _CONFIG_FILE_PATH = Path(config_path)
    _CONFIG_PATH_EXPLICIT = True
    # Clear cached config to force reload with new path
    _CONFIG = None
    logger.info(f"Configuration path set to: {config_path}")


def reset_config_path() -> None:
    """Go back to the default configuration path and drop the cache."""
    global _CONFIG_FILE_PATH, _CONFIG_PATH_EXPLICIT, _CONFIG
    _CONFIG_FILE_PATH = DEFAULT_CONFIG_PATH
    _CONFIG_PATH_EXPLICIT = False
    _CONFIG = None


def clear_config_cache() -> None:
    """
    Clear the cached configuration, forcing a reload on next access.
    """
    global _CONFIG
    _CONFIG = None
    logger.debug("Configuration cache cleared")


def _load_config(config_path: Path, required: bool) -> AppConfig:
    """
    Load the complete application configuration from the TOML file.

    Args:
        config_path: Path to the configuration file
        required: Whether a missing file is an error

    Returns:
        Fully validated AppConfig instance

    Raises:
        FileNotFoundError: If a required configuration file is missing
        ValidationError: If configuration validation fails
        tomllib.TOMLDecodeError: If the file is malformed
    """
    if not required and not config_path.exists():
        logger.info(f"No configuration file at {config_path}; using command-line options only")
        return AppConfig()

    try:
        config_data = load_toml_file(config_path, "cmake-ng configuration file")
        config_dir = config_path.absolute().parent

        generate_data = get_section(config_data, "generate")
        compile_data = get_section(config_data, "compile")

        app_config = AppConfig(
            generate=validate_generate_config(generate_data, config_dir) if generate_data is not None else None,
            compile=validate_compile_config(compile_data, config_dir) if compile_data is not None else None,
            tests=validate_tests_config(get_tests_section(config_data), config_dir),
        )

        logger.info(
            f"Successfully loaded configuration (generate: {app_config.generate is not None}, "
            f"compile: {app_config.compile is not None}, tests: {len(app_config.tests)})"
        )
        return app_config

    except FileNotFoundError as e:
        handle_config_error(
            error=e,
            context="loading configuration file",
            severity=ErrorSeverity.CRITICAL,
            reraise=True,
            logger=logger
        )
        raise
    except Exception as e:
        handle_config_error(
            error=e,
            context="processing configuration",
            severity=ErrorSeverity.CRITICAL,
            reraise=True,
            logger=logger
        )
        raise


def get_config() -> AppConfig:
    """
    Get the global application configuration, loading it if necessary.

    Returns:
        The singleton AppConfig instance

    Raises:
        FileNotFoundError: If an explicitly set configuration file is missing
        ValidationError: If configuration validation fails
        tomllib.TOMLDecodeError: If the file is malformed
    """
    global _CONFIG
    if _CONFIG is None:
        _CONFIG = _load_config(_CONFIG_FILE_PATH, required=_CONFIG_PATH_EXPLICIT)
    return _CONFIG


def is_config_loaded() -> bool:
    """
    Check if configuration has been loaded and cached.

    Returns:
        True if configuration is cached, False otherwise
    """
    return _CONFIG is not None


def get_config_info() -> dict:
    """
    Get information about the current configuration state.

    Returns:
        Dictionary with configuration metadata
    """
    return {
        "config_loaded": is_config_loaded(),
        "config_path": str(_CONFIG_FILE_PATH),
        "config_path_explicit": _CONFIG_PATH_EXPLICIT,
        "has_generate": bool(_CONFIG and _CONFIG.generate),
        "has_compile": bool(_CONFIG and _CONFIG.compile),
        "tests_count": len(_CONFIG.tests) if _CONFIG else 0,
    }
