"""Render the ReadySet chart into Kubernetes manifests.

The renderer validates values completely before touching any template,
so a bad override never produces a partial set of manifests. Templates
are Jinja2 files with Helm-like ``toyaml`` and ``nindent`` filters and
``StrictUndefined``, so a missing context value fails the render.

Example:
    >>> from readyset_helm.renderer import ChartRenderer
    >>> from readyset_helm.resolver import ReleaseInfo
    >>> renderer = ChartRenderer()
    >>> result = renderer.render(
    ...     {"readyset": {"deployment": "prod"}},
    ...     release=ReleaseInfo(namespace="readyset"),
    ... )
    >>> result.get("templates/readyset-adapter-deployment.yaml").documents[0]["kind"]
    'Deployment'
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import structlog
import yaml
from jinja2 import Environment, PackageLoader, StrictUndefined, TemplateError

from readyset_helm.chart import TEMPLATE_SUFFIX, Chart
from readyset_helm.errors import RenderError, TemplateNotFoundError
from readyset_helm.resolver import ReleaseInfo, build_context, resolve_values
from readyset_helm.schemas import ChartValues
from readyset_helm.telemetry import get_tracer

logger = structlog.get_logger(__name__)

# Template environment - loads templates from the bundled chart
_template_env: Environment | None = None


def to_yaml(value: Any) -> str:
    """Serialize a value as block YAML without a trailing newline.

    Scalars come back as a single quoted-if-needed token, so they can be
    placed inline after a key.
    """
    dumped: str = yaml.safe_dump(value, default_flow_style=False, sort_keys=False)
    return dumped.removesuffix("...\n").rstrip("\n")


def nindent(text: str, width: int) -> str:
    """Prefix a newline and indent every line, as Helm's ``nindent`` does."""
    pad = " " * width
    return "\n" + "\n".join(pad + line for line in text.splitlines())


def _get_template_env() -> Environment:
    """Get or create the Jinja2 template environment.

    Returns:
        Configured Jinja2 Environment.
    """
    global _template_env
    if _template_env is None:
        _template_env = Environment(
            loader=PackageLoader("readyset_helm", "chart/templates"),
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
            autoescape=False,
        )
        _template_env.filters["toyaml"] = to_yaml
        _template_env.filters["nindent"] = nindent
    return _template_env


@dataclass
class RenderedTemplate:
    """Output of one template file.

    Attributes:
        name: Template name, e.g. ``templates/readyset-server-statefulset.yaml``.
        text: Rendered YAML text.
        documents: Parsed, non-empty YAML documents in file order.
    """

    name: str
    text: str
    documents: list[dict[str, Any]]

    def by_kind(self, kind: str) -> list[dict[str, Any]]:
        """Documents of the given ``kind``."""
        return [doc for doc in self.documents if doc.get("kind") == kind]


@dataclass
class RenderResult:
    """All manifests produced by one render."""

    chart_name: str
    values: ChartValues
    templates: list[RenderedTemplate] = field(default_factory=list)

    @property
    def documents(self) -> list[dict[str, Any]]:
        """Every manifest across all templates."""
        return [doc for template in self.templates for doc in template.documents]

    def get(self, name: str) -> RenderedTemplate:
        """Look up a rendered template by name.

        Raises:
            KeyError: If the template rendered nothing or was not selected.
        """
        wanted = normalize_template_name(name)
        for template in self.templates:
            if template.name == wanted:
                return template
        raise KeyError(name)

    def to_yaml(self) -> str:
        """Multi-document YAML in the layout ``helm template`` prints."""
        chunks = [
            f"---\n# Source: {self.chart_name}/{template.name}\n{template.text.strip()}\n"
            for template in self.templates
        ]
        return "".join(chunks)


def normalize_template_name(name: str) -> str:
    """Accept ``x.yaml``, ``templates/x.yaml`` or ``readyset/templates/x.yaml``."""
    name = name.removesuffix(TEMPLATE_SUFFIX)
    if "templates/" in name:
        name = name[name.index("templates/") :]
    else:
        name = f"templates/{name}"
    return name


class ChartRenderer:
    """Render the bundled chart with operator overrides.

    Attributes:
        chart: The chart being rendered.
    """

    def __init__(self, chart: Chart | None = None) -> None:
        self.chart = chart or Chart.load()

    def resolve(self, *layers: dict[str, Any]) -> ChartValues:
        """Merge and validate values without rendering."""
        return resolve_values(self.chart, *layers)

    def render(
        self,
        *layers: dict[str, Any],
        release: ReleaseInfo | None = None,
        show_only: Sequence[str] = (),
    ) -> RenderResult:
        """Render manifests.

        Args:
            *layers: Override mappings, lowest priority first.
            release: Release name and namespace (defaults to
                ``readyset`` in ``default``).
            show_only: Restrict output to these templates.

        Returns:
            RenderResult with one entry per template that produced output.

        Raises:
            ValuesValidationError: If values are invalid (nothing is rendered).
            TemplateNotFoundError: If show_only names an unknown template.
            RenderError: If a template fails or emits invalid YAML.
        """
        release = release or ReleaseInfo()
        log = logger.bind(release=release.name, namespace=release.namespace)

        selected = self._select(show_only)

        with get_tracer().start_as_current_span("readyset_helm.render") as span:
            span.set_attribute("readyset.release", release.name)
            span.set_attribute("readyset.namespace", release.namespace)

            values = self.resolve(*layers)
            context = build_context(self.chart, values, release)

            result = RenderResult(chart_name=self.chart.metadata.name, values=values)
            for name in selected:
                text = self._render_template(name, context)
                documents = _parse_documents(name, text)
                if not documents:
                    log.debug("template_skipped", template=name)
                    continue
                result.templates.append(
                    RenderedTemplate(name=name, text=text, documents=documents)
                )
            span.set_attribute("readyset.manifests", len(result.documents))

        log.info(
            "chart_rendered",
            deployment=values.readyset.deployment,
            templates=len(result.templates),
            manifests=len(result.documents),
        )
        return result

    def _select(self, show_only: Sequence[str]) -> list[str]:
        available = self.chart.template_names
        if not show_only:
            return available
        selected: list[str] = []
        for requested in show_only:
            name = normalize_template_name(requested)
            if name not in available:
                raise TemplateNotFoundError(requested, available)
            if name not in selected:
                selected.append(name)
        return selected

    def _render_template(self, name: str, context: dict[str, Any]) -> str:
        env = _get_template_env()
        filename = name.removeprefix("templates/") + TEMPLATE_SUFFIX
        try:
            return env.get_template(filename).render(**context)
        except TemplateError as e:
            raise RenderError(name, str(e)) from e


def _parse_documents(name: str, text: str) -> list[dict[str, Any]]:
    try:
        documents = [doc for doc in yaml.safe_load_all(text) if doc is not None]
    except yaml.YAMLError as e:
        raise RenderError(name, f"invalid YAML: {e}") from e
    for doc in documents:
        if not isinstance(doc, dict):
            raise RenderError(name, "every document must be a mapping")
    return documents


__all__: list[str] = [
    "ChartRenderer",
    "RenderResult",
    "RenderedTemplate",
    "nindent",
    "normalize_template_name",
    "to_yaml",
]
