"""Kubernetes deployment package for the ReadySet SQL cache.

This package renders the ReadySet chart (adapter Deployment, server
StatefulSet, adapter RBAC, Services, and a bundled Consul cluster) from
a default values document and sparse operator overrides.

Modules:
    schemas: Pydantic models defining every overridable value path
    merger: Deep merge utilities for values layers
    parsing: --set and values file parsing
    resolver: Values-to-workload resolution rules
    renderer: Jinja2 rendering into Kubernetes manifests
    env: Name-keyed container environment

Example:
    >>> from readyset_helm import ChartRenderer, ReleaseInfo
    >>> result = ChartRenderer().render(
    ...     {"readyset": {"deployment": "prod", "queryCachingMode": "async"}},
    ...     release=ReleaseInfo(namespace="readyset"),
    ... )
    >>> len(result.documents) > 0
    True
"""

from __future__ import annotations

from readyset_helm.chart import Chart, ChartMetadata
from readyset_helm.env import ContainerEnv, EnvVar
from readyset_helm.errors import (
    ChartError,
    RenderError,
    TemplateNotFoundError,
    ValuesValidationError,
)
from readyset_helm.merger import deep_merge, merge_all, unflatten_dict
from readyset_helm.parsing import parse_set_values
from readyset_helm.renderer import ChartRenderer, RenderedTemplate, RenderResult
from readyset_helm.resolver import ReleaseInfo, resolve_values
from readyset_helm.schemas import CachingMode, ChartValues, DatabaseType

__all__: list[str] = [
    # Chart
    "Chart",
    "ChartMetadata",
    "ChartRenderer",
    "ReleaseInfo",
    "RenderResult",
    "RenderedTemplate",
    "resolve_values",
    # Schemas
    "CachingMode",
    "ChartValues",
    "DatabaseType",
    # Environment
    "ContainerEnv",
    "EnvVar",
    # Errors
    "ChartError",
    "RenderError",
    "TemplateNotFoundError",
    "ValuesValidationError",
    # Utilities
    "deep_merge",
    "merge_all",
    "parse_set_values",
    "unflatten_dict",
]
