"""
Pytest configuration and shared fixtures for the cmake-ng test suite.

This module provides common fixtures, test utilities, and configuration
for all test modules in the cmake-ng project.
"""

import io
import os
import shutil
import stat
import sys
import tempfile
from pathlib import Path
from typing import Any, Dict

import psutil
import pytest

# Add src to Python path for testing
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


# ============================================================================
# Test Configuration
# ============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "e2e: mark test as an end-to-end test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


# ============================================================================
# Core Fixtures
# ============================================================================


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def console():
    """In-memory console stream for sessions and actions."""
    return io.StringIO()


@pytest.fixture
def make_script(temp_dir):
    """Factory writing executable /bin/sh scripts into the temp directory."""

    def _make_script(name: str, body: str) -> Path:
        path = temp_dir / name
        path.write_text("#!/bin/sh\n" + body + "\n")
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return path

    return _make_script


@pytest.fixture
def sample_config_data(temp_dir) -> Dict[str, Any]:
    """Sample cmake-ng.toml content for testing."""
    return {
        "generate": {
            "source": "src/main/native",
            "output": "target/native",
            "vars": {"JVM_ARCH_DATA_MODEL": "64", "REQUIRE_SNAPPY": ""},
            "env": {"CFLAGS": "-O2"},
        },
        "compile": {
            "output": "target/native",
            "target": "all",
        },
        "tests": [
            {
                "binary": "target/native/test_bulk_crc32",
                "args": ["-v"],
                "timeout": 30,
            },
            {
                "binary": "target/native/test_libhdfs",
                "name": "libhdfs",
            },
        ],
    }


@pytest.fixture
def config_file(temp_dir, sample_config_data):
    """Write the sample configuration to a temporary cmake-ng.toml."""
    import toml

    config_path = temp_dir / "cmake-ng.toml"
    with open(config_path, "w") as f:
        toml.dump(sample_config_data, f)
    return config_path


# ============================================================================
# Test Utilities
# ============================================================================


class TestUtils:
    """Utility functions for testing."""

    @staticmethod
    def pid_is_running(pid: int) -> bool:
        """True if pid names a live process (zombies count as gone)."""
        try:
            return psutil.Process(pid).status() != psutil.STATUS_ZOMBIE
        except psutil.NoSuchProcess:
            return False

    @staticmethod
    def read_pid_file(path: Path) -> int:
        return int(path.read_text().strip())


@pytest.fixture
def test_utils():
    """Provide test utility functions."""
    return TestUtils


@pytest.fixture(autouse=True)
def clear_config_after_test():
    """Automatically reset configuration state after each test."""
    yield  # Run the test

    from cmakeng.config import reset_config_path

    reset_config_path()


@pytest.fixture(autouse=True)
def keep_working_directory():
    """Restore the working directory if a test changed it."""
    cwd = os.getcwd()
    yield
    os.chdir(cwd)
