"""Chart metadata and bundled defaults.

The chart ships inside the package (``readyset_helm/chart``): a
``Chart.yaml`` with name and versions, the default ``values.yaml``, and
one Jinja2 template per manifest file under ``templates/``.

Example:
    >>> from readyset_helm.chart import Chart
    >>> chart = Chart.load()
    >>> chart.metadata.label
    'readyset-0.8.0'
"""

from __future__ import annotations

from functools import cached_property
from importlib.resources import files
from typing import TYPE_CHECKING, Any

import structlog
import yaml
from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from importlib.resources.abc import Traversable

logger = structlog.get_logger(__name__)

TEMPLATE_SUFFIX = ".j2"


class ChartMetadata(BaseModel):
    """The parts of Chart.yaml the templates use."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    name: str
    version: str
    app_version: str = Field(alias="appVersion")
    description: str = ""

    @property
    def label(self) -> str:
        """Value of the ``helm.sh/chart`` label, e.g. ``readyset-0.8.0``."""
        return f"{self.name}-{self.version}"


class Chart:
    """The bundled ReadySet chart.

    Attributes:
        root: Directory holding Chart.yaml, values.yaml and templates/.
    """

    def __init__(self, root: Traversable) -> None:
        self.root = root

    @classmethod
    def load(cls) -> Chart:
        """Load the chart bundled with this package."""
        return cls(files("readyset_helm") / "chart")

    @cached_property
    def metadata(self) -> ChartMetadata:
        """Parsed Chart.yaml."""
        raw = yaml.safe_load((self.root / "Chart.yaml").read_text())
        return ChartMetadata.model_validate(raw)

    @property
    def defaults(self) -> dict[str, Any]:
        """A fresh copy of the default values."""
        raw = yaml.safe_load((self.root / "values.yaml").read_text())
        return raw or {}

    @cached_property
    def template_names(self) -> list[str]:
        """Template names as they appear in rendered output, sorted.

        Names are relative to the chart root without the Jinja2 suffix,
        e.g. ``templates/readyset-adapter-deployment.yaml``.
        """
        names = [
            f"templates/{entry.name.removesuffix(TEMPLATE_SUFFIX)}"
            for entry in (self.root / "templates").iterdir()
            if entry.name.endswith(TEMPLATE_SUFFIX) and not entry.name.startswith("_")
        ]
        logger.debug("chart_templates_discovered", count=len(names))
        return sorted(names)


__all__: list[str] = ["Chart", "ChartMetadata", "TEMPLATE_SUFFIX"]
