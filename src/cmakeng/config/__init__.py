"""
Configuration management for the cmakeng package.

This module provides a clean interface for loading, validating, and accessing
configuration data from the TOML file with singleton pattern management.
"""

# Main configuration interface
from .manager import (
    DEFAULT_CONFIG_PATH,
    clear_config_cache,
    get_config,
    get_config_info,
    is_config_loaded,
    reset_config_path,
    set_config_path,
)

# For advanced usage - direct access to loaders and validators
from .loader import (
    get_section,
    get_tests_section,
    load_toml_file,
    resolve_path,
)
from .validators import (
    validate_compile_config,
    validate_generate_config,
    validate_test_config,
    validate_tests_config,
)

__all__ = [
    # Main interface
    "DEFAULT_CONFIG_PATH",
    "get_config",
    "set_config_path",
    "reset_config_path",
    "clear_config_cache",
    "is_config_loaded",
    "get_config_info",
    # Advanced interface
    "load_toml_file",
    "get_section",
    "get_tests_section",
    "resolve_path",
    "validate_generate_config",
    "validate_compile_config",
    "validate_test_config",
    "validate_tests_config",
]
