"""
Command-line interface for cmake-ng.

This module provides the ``cmake-ng`` entry point: it parses the command
line, loads the configuration file, lets command-line options override it,
and runs the requested build action.
"""

import argparse
import logging
import sys
import tomllib
from dataclasses import replace
from pathlib import Path
from typing import Dict, List, Optional

from .. import __version__
from ..config import get_config, set_config_path
from ..execution import ExecutionFailure
from ..models.config import (
    DEFAULT_GENERATOR,
    DEFAULT_RESULTS_DIR,
    DEFAULT_TEST_TIMEOUT,
    AppConfig,
    CompileConfig,
    GenerateConfig,
    TestConfig,
)
from ..orchestration import run_compile, run_generate, run_tests
from ..validation import (
    handle_cli_error,
    ValidationError,
    validate_execution_name,
    validate_optional_timeout,
    validate_with_handler,
)

LOG_FORMAT = "%(asctime)s [%(levelname)-5.5s] %(name)s:%(filename)s:%(lineno)d\t %(message)s"

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO") -> None:
    """Configure root logging the way every cmake-ng run logs."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cmake-ng",
        description="Drive a CMake-based native build: generate, compile and test.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--config",
        type=Path,
        help="Configuration file to load (default: ./cmake-ng.toml if present).",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: INFO).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate = subparsers.add_parser("generate", help="Run cmake to create the native build tree.")
    generate.add_argument("--source", type=Path, help="Directory containing CMakeLists.txt.")
    generate.add_argument("--output", type=Path, help="Build tree to create.")
    generate.add_argument(
        "-D",
        dest="defines",
        action="append",
        default=[],
        metavar="KEY[=VALUE]",
        help="CMake cache variable; may be repeated.",
    )
    generate.add_argument("--generator", help=f"CMake generator (default: {DEFAULT_GENERATOR}).")

    compile_parser = subparsers.add_parser("compile", help="Run make in the build tree.")
    compile_parser.add_argument("--output", type=Path, help="Build tree generated by 'generate'.")
    compile_parser.add_argument("--target", help="Make target to build.")

    test = subparsers.add_parser("test", help="Run native test binaries.")
    test.add_argument("--binary", type=Path, help="Test binary to run instead of the configured tests.")
    test.add_argument("--name", help="Test name for result files (default: binary base name).")
    test.add_argument(
        "--timeout",
        type=float,
        help=f"Seconds before a test is killed; 0 disables (default: {DEFAULT_TEST_TIMEOUT:g}).",
    )
    test.add_argument("--results", type=Path, help=f"Results directory (default: {DEFAULT_RESULTS_DIR}).")
    test.add_argument(
        "--arg",
        dest="test_args",
        action="append",
        default=[],
        help="Argument passed to --binary; may be repeated.",
    )
    test.add_argument("--only", metavar="NAME", help="Run only the configured test with this name.")
    return parser


def parse_defines(defines: List[str]) -> Dict[str, str]:
    """Parse ``-D KEY[=VALUE]`` options, keeping their order."""
    cmake_vars: Dict[str, str] = {}
    for define in defines:
        key, _, value = define.partition("=")
        if not key:
            raise ValidationError(f"Invalid -D option: '{define}'", field_name="-D", value=define)
        cmake_vars[key] = value
    return cmake_vars


def resolve_generate_config(app_config: AppConfig, args: argparse.Namespace) -> GenerateConfig:
    """Merge the ``generate`` options over the ``[generate]`` section."""
    config = app_config.generate
    if config is None:
        if args.source is None or args.output is None:
            raise ValidationError(
                "generate needs --source and --output, or a [generate] section in the configuration",
                field_name="generate"
            )
        config = GenerateConfig(source=args.source, output=args.output)

    overrides = {}
    if args.source is not None:
        overrides["source"] = args.source
    if args.output is not None:
        overrides["output"] = args.output
    if args.generator:
        overrides["generator"] = args.generator
    if args.defines:
        overrides["vars"] = {**config.vars, **parse_defines(args.defines)}
    return replace(config, **overrides)


def resolve_compile_config(app_config: AppConfig, args: argparse.Namespace) -> CompileConfig:
    """Merge the ``compile`` options over the ``[compile]`` section."""
    config = app_config.compile
    if config is None:
        if args.output is None:
            raise ValidationError(
                "compile needs --output, or a [compile] section in the configuration",
                field_name="compile"
            )
        config = CompileConfig(output=args.output)

    overrides = {}
    if args.output is not None:
        overrides["output"] = args.output
    if args.target:
        overrides["target"] = args.target
    return replace(config, **overrides)


def resolve_test_configs(app_config: AppConfig, args: argparse.Namespace) -> List[TestConfig]:
    """
    Select the tests to run.

    ``--binary`` runs a single ad-hoc test; otherwise the configured tests
    run, optionally narrowed down with ``--only``. ``--timeout`` and
    ``--results`` apply to every selected test.
    """
    if args.binary is not None:
        name = validate_execution_name(args.name, field_name="--name") if args.name else None
        tests = [TestConfig(binary=args.binary, name=name, args=list(args.test_args))]
    else:
        if args.name or args.test_args:
            raise ValidationError("--name and --arg can only be used with --binary", field_name="test")
        tests = list(app_config.tests)
        if args.only:
            tests = [t for t in tests if t.test_name == args.only]
            if not tests:
                available = ", ".join(t.test_name for t in app_config.tests) or "none"
                raise ValidationError(
                    f"Test '{args.only}' not found in configuration. Available: {available}",
                    field_name="--only",
                    value=args.only
                )
        if not tests:
            raise ValidationError(
                "No tests to run: pass --binary or add [[tests]] to the configuration",
                field_name="tests"
            )

    overrides = {}
    if args.timeout is not None:
        overrides["timeout"] = validate_with_handler(
            validate_optional_timeout, args.timeout, "--timeout", "test options", logger=logger
        )
    if args.results is not None:
        overrides["results"] = args.results
    return [replace(test, **overrides) for test in tests]


def main_cli(argv: Optional[List[str]] = None) -> None:
    """
    Main command-line interface for cmake-ng.

    Raises:
        SystemExit: With code 1 on configuration errors, validation failures
            or failed executions.
    """
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    if args.config is not None:
        set_config_path(args.config)

    # Load application configuration
    try:
        app_config = get_config()
    except (FileNotFoundError, ValidationError, tomllib.TOMLDecodeError) as e:
        handle_cli_error(
            error=e,
            context="configuration loading",
            exit_code=1,
            include_traceback=False,
            logger=logger,
        )

    try:
        if args.command == "generate":
            run_generate(resolve_generate_config(app_config, args))
        elif args.command == "compile":
            run_compile(resolve_compile_config(app_config, args))
        elif args.command == "test":
            run_tests(resolve_test_configs(app_config, args))
    except (ValidationError, ExecutionFailure) as e:
        handle_cli_error(
            error=e,
            context=f"{args.command} action",
            exit_code=1,
            include_traceback=False,
            logger=logger,
        )

    logger.info(f"{args.command} completed successfully")


if __name__ == "__main__":
    main_cli()
