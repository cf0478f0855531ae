"""CLI utility functions and error handling.

This module provides shared utilities for the tck-audit CLI:
- Exit code constants
- Error and message helpers writing to stderr/stdout consistently

Errors are written as plain text to stderr with a non-zero exit code so
that CI pipelines can gate on coverage.

Example:
    from tck_audit.cli.utils import error_exit, ExitCode

    if not path.exists():
        error_exit("References file not found", exit_code=ExitCode.FILE_NOT_FOUND, path=str(path))
"""

from __future__ import annotations

import sys
from enum import IntEnum
from typing import TYPE_CHECKING

import click

if TYPE_CHECKING:
    from typing import NoReturn


class ExitCode(IntEnum):
    """Standard exit codes for CLI commands."""

    SUCCESS = 0
    """Command completed successfully (including a skipped run)."""

    GENERAL_ERROR = 1
    """General error, also used when coverage is below --fail-under."""

    USAGE_ERROR = 2
    """Invalid usage (bad arguments, invalid configuration)."""

    FILE_NOT_FOUND = 3
    """Required file not found."""

    PERMISSION_ERROR = 4
    """Permission denied writing the report."""

    VALIDATION_ERROR = 5
    """Audit document or references file failed validation."""


def _format(prefix: str, message: str, context: dict[str, str | int | bool | None]) -> str:
    context_str = ", ".join(f"{k}={v}" for k, v in context.items() if v is not None)
    if context_str:
        return f"{prefix}: {message} ({context_str})"
    return f"{prefix}: {message}"


def error(message: str, **context: str | int | bool | None) -> None:
    """Print an error message to stderr.

    Args:
        message: Error message to display.
        **context: Optional context key-value pairs to include.

    Example:
        error("File not found", path="/path/to/file")
        # Output: Error: File not found (path=/path/to/file)
    """
    click.echo(_format("Error", message, context), err=True)


def error_exit(
    message: str,
    exit_code: ExitCode = ExitCode.GENERAL_ERROR,
    **context: str | int | bool | None,
) -> NoReturn:
    """Print an error message to stderr and exit with a code.

    Args:
        message: Error message to display.
        exit_code: Exit code to use (default: GENERAL_ERROR).
        **context: Optional context key-value pairs to include.

    Raises:
        SystemExit: Always exits with the specified code.
    """
    error(message, **context)
    sys.exit(exit_code)


def warn(message: str, **context: str | int | bool | None) -> None:
    """Print a warning message to stderr."""
    click.echo(_format("Warning", message, context), err=True)


def success(message: str) -> None:
    """Print a success message to stdout."""
    click.echo(message)


def info(message: str) -> None:
    """Print an informational message to stderr.

    Used for progress and status information that should not be captured
    by stdout redirection.
    """
    click.echo(message, err=True)


__all__: list[str] = [
    "ExitCode",
    "error",
    "error_exit",
    "info",
    "success",
    "warn",
]
