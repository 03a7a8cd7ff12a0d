"""CLI utility functions and error handling.

Shared helpers for the readyset-helm commands:
- Exit code constants
- stderr/stdout output helpers
- The ``--set``/``--values`` options every command accepts, and turning
  them into override layers

Errors are printed as plain text to stderr with a non-zero exit code, so
the commands can gate CI pipelines.

Example:
    from readyset_helm.cli.utils import error_exit, ExitCode

    if not path.exists():
        error_exit("File not found", exit_code=ExitCode.FILE_NOT_FOUND, path=str(path))
"""

from __future__ import annotations

import sys
from collections.abc import Callable
from enum import IntEnum
from pathlib import Path
from typing import TYPE_CHECKING, Any, TypeVar

import click

from readyset_helm.errors import ChartError, ValuesValidationError
from readyset_helm.parsing import load_values_file, parse_set_values

if TYPE_CHECKING:
    from typing import NoReturn

F = TypeVar("F", bound=Callable[..., Any])


class ExitCode(IntEnum):
    """Standard exit codes for CLI commands."""

    SUCCESS = 0
    """Command completed successfully."""

    GENERAL_ERROR = 1
    """General error (catch-all for failures)."""

    USAGE_ERROR = 2
    """Invalid usage (bad arguments, missing required options)."""

    FILE_NOT_FOUND = 3
    """Required file or template not found."""

    VALIDATION_ERROR = 5
    """Chart values failed validation."""


def error(message: str, **context: str | int | bool | None) -> None:
    """Print an error message to stderr.

    Example:
        error("File not found", path="/path/to/file")
        # Output: Error: File not found (path=/path/to/file)
    """
    if context:
        context_str = ", ".join(f"{k}={v}" for k, v in context.items() if v is not None)
        full_message = f"Error: {message} ({context_str})"
    else:
        full_message = f"Error: {message}"

    click.echo(full_message, err=True)


def error_exit(
    message: str,
    exit_code: ExitCode = ExitCode.GENERAL_ERROR,
    **context: str | int | bool | None,
) -> NoReturn:
    """Print an error message to stderr and exit with a code.

    Raises:
        SystemExit: Always exits with the specified code.
    """
    error(message, **context)
    sys.exit(exit_code)


def chart_error_exit(exc: ChartError) -> NoReturn:
    """Report a ChartError and exit with its exit code.

    Validation errors list one offending path per line.
    """
    if isinstance(exc, ValuesValidationError):
        lines = [f"  {path}: {message}" for path, message in exc.issues]
        error_exit(
            "\n".join([f"{len(exc.issues)} invalid value(s)", *lines]),
            exit_code=ExitCode(exc.exit_code),
        )
    error_exit(str(exc), exit_code=ExitCode(exc.exit_code))


def success(message: str) -> None:
    """Print a success message to stdout."""
    click.echo(message)


def info(message: str) -> None:
    """Print an informational message to stderr.

    Used for progress updates that should not be captured by stdout
    redirection of rendered manifests.
    """
    click.echo(message, err=True)


def values_options(func: F) -> F:
    """Add the ``--values/-f`` and ``--set`` options to a command."""
    func = click.option(
        "--set",
        "set_values",
        multiple=True,
        help="Override a value using key=value syntax. Can be repeated.",
        metavar="KEY=VALUE",
    )(func)
    func = click.option(
        "--values",
        "-f",
        "values_files",
        type=click.Path(exists=True, dir_okay=False, resolve_path=True, path_type=Path),
        multiple=True,
        help="Values file to merge over the defaults. Can be repeated; later files win.",
        metavar="PATH",
    )(func)
    return func


def collect_overrides(
    values_files: tuple[Path, ...],
    set_values: tuple[str, ...],
) -> list[dict[str, Any]]:
    """Turn ``--values`` files and ``--set`` items into override layers.

    Files come first in the order given; ``--set`` wins over every file.

    Raises:
        ValuesValidationError: If a file or --set item cannot be parsed.
    """
    layers = [load_values_file(path) for path in values_files]
    if set_values:
        layers.append(parse_set_values(set_values))
    return layers


__all__: list[str] = [
    "ExitCode",
    "chart_error_exit",
    "collect_overrides",
    "error",
    "error_exit",
    "info",
    "success",
    "values_options",
]
