"""Inspect and validate chart values.

Commands:
    readyset-helm values: print the merged, validated values
    readyset-helm validate: check overrides without rendering
"""

from __future__ import annotations

from pathlib import Path

import click
import yaml

from readyset_helm.chart import Chart
from readyset_helm.cli.utils import chart_error_exit, collect_overrides, success, values_options
from readyset_helm.errors import ChartError
from readyset_helm.resolver import resolve_values


@click.command(
    name="values",
    help="Print the merged values after validation, as YAML.",
    context_settings={"help_option_names": ["-h", "--help"]},
)
@values_options
def values_command(values_files: tuple[Path, ...], set_values: tuple[str, ...]) -> None:
    """Print merged values."""
    try:
        layers = collect_overrides(values_files, set_values)
        values = resolve_values(Chart.load(), *layers)
    except ChartError as e:
        chart_error_exit(e)

    dumped = values.model_dump(mode="json", by_alias=True)
    click.echo(yaml.safe_dump(dumped, default_flow_style=False, sort_keys=False), nl=False)


@click.command(
    name="validate",
    help="Validate overrides against the chart values schema.",
    context_settings={"help_option_names": ["-h", "--help"]},
)
@values_options
def validate_command(values_files: tuple[Path, ...], set_values: tuple[str, ...]) -> None:
    """Validate overrides only."""
    try:
        layers = collect_overrides(values_files, set_values)
        values = resolve_values(Chart.load(), *layers)
    except ChartError as e:
        chart_error_exit(e)

    success(f"Values are valid for deployment {values.readyset.deployment}")


__all__: list[str] = ["validate_command", "values_command"]
