"""
Unit tests for configuration loading and validation.

Tests the per-action section validators, relative path resolution, and the
configuration singleton.
"""

import tomllib
from pathlib import Path

import pytest

from cmakeng.config import (
    clear_config_cache,
    get_config,
    get_config_info,
    is_config_loaded,
    set_config_path,
    validate_compile_config,
    validate_generate_config,
    validate_tests_config,
)
from cmakeng.models import DEFAULT_GENERATOR, DEFAULT_RESULTS_DIR, DEFAULT_TEST_TIMEOUT
from cmakeng.validation import ValidationError


@pytest.mark.unit
class TestGenerateConfigValidation:
    """Test cases for the [generate] section."""

    def test_minimal_section(self, temp_dir):
        config = validate_generate_config({"source": "src", "output": "target"}, temp_dir)

        assert config.source == temp_dir / "src"
        assert config.output == temp_dir / "target"
        assert config.generator == DEFAULT_GENERATOR
        assert config.cmake_executable == "cmake"
        assert config.vars == {}
        assert config.timeout is None

    def test_full_section(self, temp_dir, sample_config_data):
        data = dict(sample_config_data["generate"], generator="Ninja", timeout=120)
        config = validate_generate_config(data, temp_dir)

        assert config.vars == {"JVM_ARCH_DATA_MODEL": "64", "REQUIRE_SNAPPY": ""}
        assert list(config.vars) == ["JVM_ARCH_DATA_MODEL", "REQUIRE_SNAPPY"]
        assert config.env == {"CFLAGS": "-O2"}
        assert config.generator == "Ninja"
        assert config.timeout == 120.0

    def test_absolute_paths_are_kept(self, temp_dir):
        config = validate_generate_config({"source": "/abs/src", "output": "out"}, temp_dir)
        assert config.source == Path("/abs/src")

    @pytest.mark.parametrize("missing", ["source", "output"])
    def test_required_keys(self, temp_dir, missing):
        data = {"source": "src", "output": "target"}
        del data[missing]
        with pytest.raises(ValidationError) as exc_info:
            validate_generate_config(data, temp_dir)
        assert f"generate.{missing}" in str(exc_info.value)


@pytest.mark.unit
class TestCompileConfigValidation:
    """Test cases for the [compile] section."""

    def test_defaults(self, temp_dir):
        config = validate_compile_config({"output": "target"}, temp_dir)

        assert config.output == temp_dir / "target"
        assert config.target is None
        assert config.verbose is True
        assert config.make_executable == "make"

    def test_target_and_verbose(self, temp_dir):
        config = validate_compile_config({"output": "t", "target": "all", "verbose": False}, temp_dir)
        assert config.target == "all"
        assert config.verbose is False

    def test_verbose_must_be_boolean(self, temp_dir):
        with pytest.raises(ValidationError):
            validate_compile_config({"output": "t", "verbose": "yes"}, temp_dir)


@pytest.mark.unit
class TestTestsConfigValidation:
    """Test cases for the [[tests]] entries."""

    def test_defaults(self, temp_dir):
        [test] = validate_tests_config([{"binary": "target/native/test_bulk_crc32"}], temp_dir)

        assert test.binary == temp_dir / "target/native/test_bulk_crc32"
        assert test.test_name == "test_bulk_crc32"
        assert test.timeout == DEFAULT_TEST_TIMEOUT
        assert test.results == DEFAULT_RESULTS_DIR
        assert test.args == []

    def test_zero_timeout_disables_it(self, temp_dir):
        [test] = validate_tests_config([{"binary": "t", "timeout": 0}], temp_dir)
        assert test.timeout is None

    def test_name_override_and_results(self, temp_dir):
        [test] = validate_tests_config(
            [{"binary": "t", "name": "custom", "results": "res", "args": ["-v"]}], temp_dir
        )
        assert test.test_name == "custom"
        assert test.results == temp_dir / "res"
        assert test.args == ["-v"]

    def test_duplicate_names_rejected(self, temp_dir):
        with pytest.raises(ValidationError) as exc_info:
            validate_tests_config([{"binary": "a/t"}, {"binary": "b/t"}], temp_dir)
        assert "duplicate test name" in str(exc_info.value)

    def test_invalid_name_rejected(self, temp_dir):
        with pytest.raises(ValidationError):
            validate_tests_config([{"binary": "t", "name": "../escape"}], temp_dir)


@pytest.mark.unit
class TestConfigManager:
    """Test cases for the configuration singleton."""

    def test_load_from_file(self, config_file, temp_dir):
        set_config_path(config_file)

        config = get_config()

        assert config.generate.source == temp_dir / "src/main/native"
        assert config.compile.target == "all"
        assert [t.test_name for t in config.tests] == ["test_bulk_crc32", "libhdfs"]
        assert config.tests[0].timeout == 30.0
        assert is_config_loaded()

    def test_config_is_cached(self, config_file):
        set_config_path(config_file)
        assert get_config() is get_config()

        clear_config_cache()
        assert not is_config_loaded()

    def test_missing_explicit_file_raises(self, temp_dir):
        set_config_path(temp_dir / "nope.toml")
        with pytest.raises(FileNotFoundError):
            get_config()

    def test_missing_default_file_gives_empty_config(self, temp_dir, monkeypatch):
        monkeypatch.chdir(temp_dir)

        config = get_config()

        assert config.generate is None
        assert config.compile is None
        assert config.tests == []

    def test_malformed_file_raises(self, temp_dir):
        bad = temp_dir / "bad.toml"
        bad.write_text("[generate\nsource = ")
        set_config_path(bad)
        with pytest.raises(tomllib.TOMLDecodeError):
            get_config()

    def test_section_must_be_a_table(self, temp_dir):
        path = temp_dir / "cmake-ng.toml"
        path.write_text('generate = "oops"\n')
        set_config_path(path)
        with pytest.raises(ValidationError):
            get_config()

    def test_config_info(self, config_file):
        set_config_path(config_file)
        get_config()

        info = get_config_info()

        assert info["config_loaded"] is True
        assert info["config_path"] == str(config_file)
        assert info["has_generate"] is True
        assert info["tests_count"] == 2
