"""Assertion harness for the ReadySet chart.

Renders chart templates for fixed override scenarios, parses the
manifests and exposes name-keyed accessors for assertions. Nothing here
talks to a cluster.

Components:
    fixtures: Namespace generation and render-and-parse helpers

Usage:
    from testing.fixtures import cli_values, generate_unique_namespace, render_template

    docs = render_template(
        generate_unique_namespace(),
        cli_values(),
        "templates/readyset-server-statefulset.yaml",
    )
"""

from __future__ import annotations

__version__ = "0.1.0"
