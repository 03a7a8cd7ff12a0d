"""Main entry point for the readyset-helm CLI.

Commands:
    readyset-helm template: Render the chart's manifests
    readyset-helm values: Print merged, validated values
    readyset-helm validate: Validate overrides only
    readyset-helm schema: Export the values JSON Schema

Example:
    $ readyset-helm --help
    $ readyset-helm template --set readyset.deployment=prod -n readyset
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version

import click

from readyset_helm.cli.schema import schema_command
from readyset_helm.cli.template import template_command
from readyset_helm.cli.values import validate_command, values_command
from readyset_helm.telemetry import configure_logging


def _get_version() -> str:
    """Get the readyset-helm package version, or 'unknown' if not installed."""
    try:
        return get_version("readyset-helm")
    except PackageNotFoundError:
        return "unknown"


@click.group(
    name="readyset-helm",
    help="readyset-helm - Render and validate the ReadySet Kubernetes deployment.",
    epilog="Use 'readyset-helm <command> --help' for command-specific help.",
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.version_option(
    version=_get_version(),
    prog_name="readyset-helm",
    message="%(prog)s %(version)s",
)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging.")
@click.option(
    "--log-format",
    type=click.Choice(["console", "json"]),
    default="console",
    show_default=True,
    help="Format of log lines written to stderr.",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, log_format: str) -> None:
    """Root command group."""
    ctx.ensure_object(dict)
    configure_logging(
        log_level="DEBUG" if verbose else "WARNING",
        json_output=log_format == "json",
    )


cli.add_command(template_command)
cli.add_command(values_command)
cli.add_command(validate_command)
cli.add_command(schema_command)


__all__: list[str] = ["cli"]
