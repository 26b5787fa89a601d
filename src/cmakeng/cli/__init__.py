"""
Command-line interface for the cmakeng package.

This module provides the main CLI entry point for the build driver.
"""

from .main import main_cli

__all__ = [
    "main_cli",
]
