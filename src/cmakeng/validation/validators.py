"""
Validation functions for configuration values and action parameters.

Each validator returns the normalized value or raises ``ValidationError``
naming the offending field.
"""

import os
import re
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from .exceptions import ValidationError


def validate_positive_float(
    value: Any, 
    min_value: float = 0.0,
    max_value: Optional[float] = None,
    field_name: str = "value"
) -> float:
    """
    Validate that a value is a positive float.
    
    Args:
        value: Value to validate
        min_value: Minimum allowed value (inclusive)
        max_value: Maximum allowed value (inclusive), None for no limit
        field_name: Name of the field being validated
        
    Returns:
        Validated float value
        
    Raises:
        ValidationError: If validation fails
    """
    if isinstance(value, bool):
        raise ValidationError(
            f"{field_name} must be a valid number, got {value}",
            field_name=field_name,
            value=value
        )
    try:
        float_value = float(value)
    except (ValueError, TypeError):
        raise ValidationError(
            f"{field_name} must be a valid number, got {value}",
            field_name=field_name,
            value=value
        )
    if float_value < min_value:
        raise ValidationError(
            f"{field_name} must be >= {min_value}, got {float_value}",
            field_name=field_name,
            value=value
        )
    if max_value is not None and float_value > max_value:
        raise ValidationError(
            f"{field_name} must be <= {max_value}, got {float_value}",
            field_name=field_name,
            value=value
        )
    return float_value


def validate_optional_timeout(value: Any, field_name: str = "timeout") -> Optional[float]:
    """
    Validate a timeout in seconds where ``None`` or ``0`` mean "no timeout".

    Returns:
        The timeout as a float, or None when unbounded
    """
    if value is None:
        return None
    timeout = validate_positive_float(value, min_value=0.0, field_name=field_name)
    return timeout if timeout > 0 else None


def validate_path_exists(path: Union[str, Path], field_name: str = "path") -> str:
    """
    Validate that a path exists.
    
    Args:
        path: Path to validate
        field_name: Name of the field being validated
        
    Returns:
        Validated path string
        
    Raises:
        ValidationError: If path doesn't exist
    """
    path_str = str(path)
    if not os.path.exists(path_str):
        raise ValidationError(
            f"{field_name} does not exist: {path_str}",
            field_name=field_name,
            value=path_str
        )
    return path_str


def validate_non_empty_string(value: Any, field_name: str = "value") -> str:
    """Validate that a value is a string with at least one non-blank character."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(
            f"{field_name} must be a non-empty string",
            field_name=field_name,
            value=value
        )
    return value


def validate_execution_name(name: Any, field_name: str = "name") -> str:
    """
    Validate an execution name.

    The name becomes part of the result file names (``<name>.status`` and
    friends), so it must be a plain file name.
    
    Args:
        name: Execution name to validate
        field_name: Name of the field being validated
        
    Returns:
        Validated execution name
        
    Raises:
        ValidationError: If name is invalid
    """
    validate_non_empty_string(name, field_name)
    
    if not re.match(r'^[A-Za-z0-9_.+-]+$', name) or name in (".", ".."):
        raise ValidationError(
            f"{field_name} must contain only alphanumeric characters, dots, "
            f"plus signs, underscores, and hyphens: {name}",
            field_name=field_name,
            value=name
        )
    
    return name


def validate_string_list(value: Any, field_name: str = "values") -> List[str]:
    """
    Validate an ordered list of command-line arguments.

    Order is preserved; non-string scalars are rejected so that a TOML typo
    does not silently become a different argument.
    """
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValidationError(
            f"{field_name} must be a list of strings",
            field_name=field_name,
            value=value
        )
    for i, item in enumerate(value):
        if not isinstance(item, str):
            raise ValidationError(
                f"{field_name}[{i}] must be a string, got {item!r}",
                field_name=field_name,
                value=value
            )
    return list(value)


def validate_string_mapping(value: Any, field_name: str = "mapping") -> Dict[str, str]:
    """
    Validate a name -> value mapping such as environment overrides.

    ``None`` values become the empty string; scalars (numbers, booleans) are
    rendered with ``str`` (booleans as ``ON``/``OFF``, the CMake spelling).
    Nested tables are rejected.
    """
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValidationError(
            f"{field_name} must be a table of names to values",
            field_name=field_name,
            value=value
        )
    result: Dict[str, str] = {}
    for key, item in value.items():
        if not isinstance(key, str) or not key:
            raise ValidationError(
                f"{field_name} keys must be non-empty strings, got {key!r}",
                field_name=field_name,
                value=value
            )
        if item is None:
            result[key] = ""
        elif isinstance(item, bool):
            result[key] = "ON" if item else "OFF"
        elif isinstance(item, (str, int, float)):
            result[key] = str(item)
        else:
            raise ValidationError(
                f"{field_name}.{key} must be a scalar value, got {type(item).__name__}",
                field_name=field_name,
                value=value
            )
    return result


def validate_source_not_in_output(source: Union[str, Path], output: Union[str, Path]) -> None:
    """
    Check that the source directory does not live inside the output directory.

    This does not catch every bad case (symlinks and hard links can still
    defeat it), but it catches the common mistake of pointing the output at
    a parent of the sources, which a clean would then destroy.

    Raises:
        ValidationError: If the canonical source path equals or lies below
            the canonical output path
    """
    try:
        canonical_output = os.path.realpath(output)
    except OSError as e:
        raise ValidationError(
            f"error getting canonical path for output: {e}",
            field_name="output",
            value=str(output)
        )
    try:
        canonical_source = os.path.realpath(source)
    except OSError as e:
        raise ValidationError(
            f"error getting canonical path for source: {e}",
            field_name="source",
            value=str(source)
        )

    output_prefix = canonical_output.rstrip(os.sep) + os.sep
    if canonical_source == canonical_output or canonical_source.startswith(output_prefix):
        raise ValidationError(
            "The source directory must not be inside the output directory "
            "(it would be destroyed by a clean)",
            field_name="source",
            value=str(source)
        )


def ensure_directory(path: Union[str, Path], field_name: str = "directory") -> Path:
    """
    Make sure a directory exists, creating it and its parents if needed.

    Returns:
        The directory as a Path

    Raises:
        ValidationError: If the directory cannot be created
    """
    directory = Path(path)
    if directory.is_dir():
        return directory
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ValidationError(
            f"Failed to create output directory '{directory}': {e}",
            field_name=field_name,
            value=str(directory)
        )
    return directory
