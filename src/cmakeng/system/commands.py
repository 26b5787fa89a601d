"""
Command line construction for the build tools.

This module turns action configuration into argv lists for ``cmake`` and
``make``, and checks that the tools are available on the system.
"""

import logging
import shutil
from pathlib import Path
from typing import Dict, List, Optional, Union

from ..models.config import DEFAULT_GENERATOR

logger = logging.getLogger(__name__)


def format_cmake_vars(cmake_vars: Dict[str, Optional[str]]) -> List[str]:
    """Render CMake cache variables as ``-D`` definitions.

    Variables are rendered in mapping order. A variable with an empty (or
    None) value is rendered as a bare definition.

    Args:
        cmake_vars: Variable names mapped to their values.

    Returns:
        The list of ``-D`` arguments.

    Examples:
        >>> format_cmake_vars({"JVM_ARCH_DATA_MODEL": "64", "REQUIRE_SNAPPY": ""})
        ['-DJVM_ARCH_DATA_MODEL=64', '-DREQUIRE_SNAPPY']
    """
    definitions = []
    for key, value in cmake_vars.items():
        if value is None or value == "":
            definitions.append(f"-D{key}")
        else:
            definitions.append(f"-D{key}={value}")
    return definitions


def build_cmake_command(
    source: Union[str, Path],
    cmake_vars: Optional[Dict[str, Optional[str]]] = None,
    generator: str = DEFAULT_GENERATOR,
    cmake_executable: str = "cmake",
) -> List[str]:
    """Prepare the argv that generates a build tree.

    Args:
        source: Directory containing the top-level CMakeLists.txt; passed
            as an absolute path since cmake runs inside the build tree.
        cmake_vars: Cache variables to define.
        generator: CMake generator name.
        cmake_executable: Name or path of the cmake program.

    Returns:
        ``[cmake, <abs source>, -D..., -G, <generator>]``
    """
    command = [cmake_executable, str(Path(source).absolute())]
    command.extend(format_cmake_vars(cmake_vars or {}))
    command.extend(["-G", generator])
    logger.debug(f"Prepared cmake command: {command}")
    return command


def build_make_command(
    target: Optional[str] = None,
    verbose: bool = True,
    make_executable: str = "make",
) -> List[str]:
    """Prepare the argv that compiles a generated build tree.

    Args:
        target: Make target, or None for the default target.
        verbose: Add ``VERBOSE=1`` so full compiler command lines are shown.
        make_executable: Name or path of the make program.

    Returns:
        ``[make, VERBOSE=1, <target>]`` without the optional parts that do
        not apply.
    """
    command = [make_executable]
    if verbose:
        command.append("VERBOSE=1")
    if target:
        command.append(target)
    return command


def check_tool_installed(tool: str, path: Optional[str] = None) -> bool:
    """Check if a build tool is available on the system PATH.

    A tool given as a path (with a separator) must be an executable file.

    Args:
        tool: Name or path of the program, e.g. "cmake".
        path: Search path to use instead of the current ``PATH``.

    Returns:
        True if the program is found, False otherwise.
    """
    return shutil.which(tool, path=path) is not None
