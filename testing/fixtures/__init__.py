"""Test fixtures for chart render scenarios.

Modules:
    chart: Render one template with overrides and look up containers and
        environment variables by name
    namespaces: Unique, valid namespace names per scenario
"""

from __future__ import annotations

from testing.fixtures.chart import (
    cli_values,
    container_by_name,
    env_of,
    render_template,
)
from testing.fixtures.namespaces import (
    InvalidNamespaceError,
    generate_unique_namespace,
    validate_namespace,
)

__all__ = [
    "InvalidNamespaceError",
    "cli_values",
    "container_by_name",
    "env_of",
    "generate_unique_namespace",
    "render_template",
    "validate_namespace",
]
