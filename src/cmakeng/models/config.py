"""
Configuration data models.

This module contains the configuration structures for the three build
actions, loaded from ``cmake-ng.toml``.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

# Default seconds a test binary may run before it is declared timed out.
DEFAULT_TEST_TIMEOUT = 600.0
DEFAULT_RESULTS_DIR = Path("./cmake-ng-results")
DEFAULT_GENERATOR = "Unix Makefiles"


@dataclass
class GenerateConfig:
    """
    Configuration for the ``generate`` action, loaded from ``[generate]``.
    """

    # Where the CMakeLists.txt lives. Must not be inside `output`.
    source: Path
    # Build tree; created if missing, and the working directory of cmake.
    output: Path
    # CMake cache variables, rendered as -DKEY=VALUE (or -DKEY when empty).
    vars: Dict[str, str] = field(default_factory=dict)
    # Environment overrides. Prefer cache variables where possible: cmake may
    # re-run itself later from the build system, outside this environment.
    env: Dict[str, str] = field(default_factory=dict)
    generator: str = DEFAULT_GENERATOR
    cmake_executable: str = "cmake"
    timeout: Optional[float] = None


@dataclass
class CompileConfig:
    """
    Configuration for the ``compile`` action, loaded from ``[compile]``.
    """

    # Build tree generated by the `generate` action.
    output: Path
    # Make target; None builds the default target.
    target: Optional[str] = None
    env: Dict[str, str] = field(default_factory=dict)
    make_executable: str = "make"
    # Pass VERBOSE=1 so full compiler command lines end up in the log.
    verbose: bool = True
    timeout: Optional[float] = None


@dataclass
class TestConfig:
    """
    Configuration for one native test binary, loaded from ``[[tests]]``.
    """

    __test__ = False

    binary: Path
    # Defaults to the binary's base name: /foo/bar/baz -> "baz".
    name: Optional[str] = None
    args: List[str] = field(default_factory=list)
    env: Dict[str, str] = field(default_factory=dict)
    timeout: Optional[float] = DEFAULT_TEST_TIMEOUT
    results: Path = DEFAULT_RESULTS_DIR

    @property
    def test_name(self) -> str:
        return self.name or self.binary.name


@dataclass
class AppConfig:
    """
    The root configuration object that aggregates all loaded settings.
    """

    generate: Optional[GenerateConfig] = None
    compile: Optional[CompileConfig] = None
    tests: List[TestConfig] = field(default_factory=list)
