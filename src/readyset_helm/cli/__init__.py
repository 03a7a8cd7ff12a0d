"""Command-line interface for readyset-helm."""

from __future__ import annotations

from readyset_helm.cli.main import cli

__all__: list[str] = ["cli"]
