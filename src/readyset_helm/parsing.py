"""Parsing utilities for chart overrides.

Provides ``parse_set_values`` and ``parse_value`` used by every CLI
command to interpret ``--set key=value`` arguments, and
``load_values_file`` for ``-f/--values`` files.

Example:
    >>> from readyset_helm.parsing import parse_set_values
    >>> parse_set_values(("readyset.deployment=prod", "consul.server.replicas=5"))
    {'readyset': {'deployment': 'prod'}, 'consul': {'server': {'replicas': 5}}}
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import yaml

from readyset_helm.errors import ValuesValidationError
from readyset_helm.merger import unflatten_dict

INTEGER_PATTERN = re.compile(r"^-?(0|[1-9][0-9]*)$")


def parse_set_values(set_values: Iterable[str]) -> dict[str, Any]:
    """Parse --set key=value arguments into nested dict.

    Args:
        set_values: Iterable of "key=value" strings.

    Returns:
        Nested dictionary with parsed values.

    Raises:
        ValuesValidationError: If an item has no '=' or an empty key,
            or two items conflict (``a=1`` and ``a.b=2``).
    """
    flat: dict[str, Any] = {}
    issues: list[tuple[str, str]] = []

    for item in set_values:
        key, sep, value = item.partition("=")
        key = key.strip()
        if not sep:
            issues.append((item, "expected key=value"))
            continue
        if not key or any(not part for part in key.split(".")):
            issues.append((item, "empty path segment"))
            continue
        flat[key] = parse_value(value)

    if issues:
        raise ValuesValidationError(issues)

    try:
        return unflatten_dict(flat)
    except ValueError as e:
        raise ValuesValidationError([("--set", str(e))]) from e


def parse_value(value: str) -> Any:
    """Parse a string value into appropriate Python type.

    Follows Helm ``--set`` semantics: lowercase null and booleans, plain
    integers, then falls back to string. A value wrapped in braces of the form
    ``{a,b}`` becomes a list of strings.

    Args:
        value: String value from --set argument.

    Returns:
        Parsed value as int, bool, None, list, or original string.
    """
    if value == "null":
        return None
    if value == "true":
        return True
    if value == "false":
        return False

    if value.startswith("{") and value.endswith("}"):
        inner = value[1:-1].strip()
        return [part.strip() for part in inner.split(",")] if inner else []

    if INTEGER_PATTERN.match(value):
        return int(value)

    # Helm keeps zero-padded and non-integer numbers such as image tags as strings
    return value


def load_values_file(path: Path) -> dict[str, Any]:
    """Load a YAML values file.

    Args:
        path: Path to a values file.

    Returns:
        Parsed mapping (empty for an empty file).

    Raises:
        FileNotFoundError: If the file does not exist.
        ValuesValidationError: If the document is not a mapping or is not
            valid YAML.
    """
    with path.open() as f:
        try:
            loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValuesValidationError([(str(path), f"invalid YAML: {e}")]) from e

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ValuesValidationError([(str(path), "values file must contain a mapping")])
    return loaded


__all__: list[str] = [
    "load_values_file",
    "parse_set_values",
    "parse_value",
]
