"""Render chart manifests.

Renders the ReadySet chart with the given overrides and prints the
manifests as multi-document YAML, in the layout ``helm template`` uses.
Nothing is printed when any value is invalid.

Example:
    $ readyset-helm template --set readyset.deployment=prod -n readyset
    $ readyset-helm template -f prod.yaml -s templates/readyset-server-statefulset.yaml
"""

from __future__ import annotations

from pathlib import Path

import click
import structlog

from readyset_helm.cli.utils import (
    chart_error_exit,
    collect_overrides,
    info,
    values_options,
)
from readyset_helm.errors import ChartError
from readyset_helm.renderer import ChartRenderer
from readyset_helm.resolver import ReleaseInfo

logger = structlog.get_logger(__name__)


@click.command(
    name="template",
    help="""\b
Render the chart's Kubernetes manifests.

Values are merged in this order (later wins): chart defaults, each
--values file, then --set items. Unknown value paths are rejected.

Examples:
    $ readyset-helm template --set readyset.deployment=prod
    $ readyset-helm template -f prod.yaml -n readyset -o manifests.yaml
    $ readyset-helm template --set readyset.deployment=prod \\
        -s templates/readyset-adapter-deployment.yaml
""",
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.option(
    "--namespace",
    "-n",
    default="default",
    show_default=True,
    help="Namespace to render the manifests into.",
)
@click.option(
    "--release-name",
    default="readyset",
    show_default=True,
    help="Release name; prefixes the bundled Consul resources.",
)
@click.option(
    "--show-only",
    "-s",
    multiple=True,
    help="Only render the given template. Can be repeated.",
    metavar="TEMPLATE",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, resolve_path=True, path_type=Path),
    default=None,
    help="Write manifests to a file instead of stdout.",
    metavar="PATH",
)
@values_options
def template_command(
    namespace: str,
    release_name: str,
    show_only: tuple[str, ...],
    output: Path | None,
    values_files: tuple[Path, ...],
    set_values: tuple[str, ...],
) -> None:
    """Render manifests for the given overrides."""
    try:
        release = ReleaseInfo(name=release_name, namespace=namespace)
        layers = collect_overrides(values_files, set_values)
        result = ChartRenderer().render(*layers, release=release, show_only=show_only)
    except ChartError as e:
        logger.warning("render_failed", error=str(e))
        chart_error_exit(e)

    manifests = result.to_yaml()
    if output is None:
        click.echo(manifests, nl=False)
        return

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(manifests)
    info(f"Wrote {len(result.documents)} manifests to {output}")


__all__: list[str] = ["template_command"]
