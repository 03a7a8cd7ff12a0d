"""Root-level test configuration for readyset-helm.

Provides the ``requirement`` marker, shared fixtures, and resets
structlog between tests so a CLI test that configures logging does not
leak its configuration (or a closed stream) into the next test.
"""

from __future__ import annotations

from collections.abc import Generator
from pathlib import Path

import pytest
import structlog

from readyset_helm.chart import Chart
from readyset_helm.renderer import ChartRenderer
from testing.fixtures.namespaces import generate_unique_namespace


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "requirement(id): Mark test as covering a specific requirement",
    )


@pytest.fixture(autouse=True)
def _reset_structlog() -> Generator[None, None, None]:
    """Restore structlog defaults after each test."""
    yield
    structlog.reset_defaults()


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Path to the repository root."""
    return Path(__file__).parent.parent


@pytest.fixture(scope="session")
def chart() -> Chart:
    """The bundled chart."""
    return Chart.load()


@pytest.fixture(scope="session")
def renderer(chart: Chart) -> ChartRenderer:
    """Renderer shared across tests; rendering holds no state between calls."""
    return ChartRenderer(chart)


@pytest.fixture
def namespace() -> str:
    """A fresh namespace for one render scenario."""
    return generate_unique_namespace()
