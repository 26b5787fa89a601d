"""
Configuration validation utilities.

This module turns the raw TOML sections into validated configuration
dataclasses for the generate, compile and test actions.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..models.config import (
    DEFAULT_GENERATOR,
    DEFAULT_RESULTS_DIR,
    DEFAULT_TEST_TIMEOUT,
    CompileConfig,
    GenerateConfig,
    TestConfig,
)
from ..validation import (
    ValidationError,
    validate_execution_name,
    validate_non_empty_string,
    validate_optional_timeout,
    validate_string_list,
    validate_string_mapping,
)
from .loader import resolve_path

logger = logging.getLogger(__name__)


def _required_path(data: Dict[str, Any], key: str, section: str, config_dir: Path) -> Path:
    value = data.get(key)
    if value is None:
        raise ValidationError(
            f"{section}.{key} is required",
            field_name=f"{section}.{key}"
        )
    validate_non_empty_string(value, field_name=f"{section}.{key}")
    return resolve_path(value, config_dir)


def _optional_string(data: Dict[str, Any], key: str, section: str, default: Optional[str]) -> Optional[str]:
    value = data.get(key, default)
    if value is None:
        return None
    return validate_non_empty_string(value, field_name=f"{section}.{key}")


def validate_generate_config(generate_data: Dict[str, Any], config_dir: Path) -> GenerateConfig:
    """
    Validate and create a GenerateConfig from the ``[generate]`` section.

    Args:
        generate_data: Raw section from TOML
        config_dir: Directory of the config file, for relative paths

    Returns:
        Validated GenerateConfig instance

    Raises:
        ValidationError: If validation fails
    """
    try:
        return GenerateConfig(
            source=_required_path(generate_data, "source", "generate", config_dir),
            output=_required_path(generate_data, "output", "generate", config_dir),
            vars=validate_string_mapping(generate_data.get("vars"), field_name="generate.vars"),
            env=validate_string_mapping(generate_data.get("env"), field_name="generate.env"),
            generator=_optional_string(generate_data, "generator", "generate", DEFAULT_GENERATOR),
            cmake_executable=_optional_string(generate_data, "cmake", "generate", "cmake"),
            timeout=validate_optional_timeout(generate_data.get("timeout"), field_name="generate.timeout"),
        )
    except ValidationError as e:
        logger.error(f"Generate configuration validation failed: {e}")
        raise


def validate_compile_config(compile_data: Dict[str, Any], config_dir: Path) -> CompileConfig:
    """
    Validate and create a CompileConfig from the ``[compile]`` section.

    Args:
        compile_data: Raw section from TOML
        config_dir: Directory of the config file, for relative paths

    Returns:
        Validated CompileConfig instance

    Raises:
        ValidationError: If validation fails
    """
    try:
        verbose = compile_data.get("verbose", True)
        if not isinstance(verbose, bool):
            raise ValidationError(
                "compile.verbose must be a boolean",
                field_name="compile.verbose",
                value=verbose
            )
        return CompileConfig(
            output=_required_path(compile_data, "output", "compile", config_dir),
            target=_optional_string(compile_data, "target", "compile", None),
            env=validate_string_mapping(compile_data.get("env"), field_name="compile.env"),
            make_executable=_optional_string(compile_data, "make", "compile", "make"),
            verbose=verbose,
            timeout=validate_optional_timeout(compile_data.get("timeout"), field_name="compile.timeout"),
        )
    except ValidationError as e:
        logger.error(f"Compile configuration validation failed: {e}")
        raise


def validate_test_config(test_data: Dict[str, Any], config_dir: Path, index: int = 0) -> TestConfig:
    """
    Validate and create one TestConfig from a ``[[tests]]`` entry.

    Raises:
        ValidationError: If validation fails
    """
    section = f"tests[{index}]"
    name = test_data.get("name")
    if name is not None:
        name = validate_execution_name(name, field_name=f"{section}.name")

    results = test_data.get("results")
    return TestConfig(
        binary=_required_path(test_data, "binary", section, config_dir),
        name=name,
        args=validate_string_list(test_data.get("args"), field_name=f"{section}.args"),
        env=validate_string_mapping(test_data.get("env"), field_name=f"{section}.env"),
        timeout=validate_optional_timeout(
            test_data.get("timeout", DEFAULT_TEST_TIMEOUT), field_name=f"{section}.timeout"
        ),
        results=resolve_path(results, config_dir) if results else DEFAULT_RESULTS_DIR,
    )


def validate_tests_config(tests_data: List[Dict[str, Any]], config_dir: Path) -> List[TestConfig]:
    """
    Validate and create TestConfig instances from the ``[[tests]]`` entries.

    Test names must be unique within one results directory, since each name
    owns its result files there.

    Raises:
        ValidationError: If validation fails
    """
    tests_config = []
    seen = set()

    for i, test_data in enumerate(tests_data):
        try:
            test_config = validate_test_config(test_data, config_dir, index=i)
            key = (test_config.results, test_config.test_name)
            if key in seen:
                raise ValidationError(
                    f"tests[{i}]: duplicate test name '{test_config.test_name}' "
                    f"in results directory {test_config.results}",
                    field_name=f"tests[{i}].name",
                    value=test_config.test_name
                )
            seen.add(key)
            tests_config.append(test_config)
        except ValidationError as e:
            logger.error(f"Test configuration validation failed: {e}")
            raise

    return tests_config
