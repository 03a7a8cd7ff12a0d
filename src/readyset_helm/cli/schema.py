"""Export the values JSON Schema, or check values files against it.

Example:
    $ readyset-helm schema -o values.schema.json
    $ readyset-helm schema --check -f prod.yaml
"""

from __future__ import annotations

import json
from pathlib import Path

import click

from readyset_helm.chart import Chart
from readyset_helm.cli.utils import (
    ExitCode,
    chart_error_exit,
    collect_overrides,
    error_exit,
    info,
    success,
    values_options,
)
from readyset_helm.errors import ChartError
from readyset_helm.merger import merge_all
from readyset_helm.schemas import schema_errors, values_json_schema


@click.command(
    name="schema",
    help="""\b
Print or write the JSON Schema of the chart values.

With --check, merge the given overrides over the chart defaults and
report every place the result does not conform to the schema instead.

Examples:
    $ readyset-helm schema -o values.schema.json
    $ readyset-helm schema --check -f prod.yaml
""",
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, resolve_path=True, path_type=Path),
    default=None,
    help="Write the schema to a file instead of stdout.",
    metavar="PATH",
)
@click.option(
    "--check",
    is_flag=True,
    default=False,
    help="Validate merged values against the schema instead of printing it.",
)
@values_options
def schema_command(
    output: Path | None,
    check: bool,
    values_files: tuple[Path, ...],
    set_values: tuple[str, ...],
) -> None:
    """Export the values schema."""
    schema = values_json_schema()

    if check:
        try:
            layers = collect_overrides(values_files, set_values)
        except ChartError as e:
            chart_error_exit(e)
        errors = schema_errors(merge_all(Chart.load().defaults, *layers), schema)
        if errors:
            error_exit(
                "\n".join([f"{len(errors)} schema violation(s)", *(f"  {m}" for m in errors)]),
                exit_code=ExitCode.VALIDATION_ERROR,
            )
        success("Values conform to the schema")
        return

    text = json.dumps(schema, indent=2, sort_keys=True) + "\n"
    if output is None:
        click.echo(text, nl=False)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text)
    info(f"Wrote values schema to {output}")


__all__: list[str] = ["schema_command"]
