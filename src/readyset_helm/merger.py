"""Deep merge utilities for chart values.

This module merges sparse override layers over the chart defaults.
Merging is override-wins-at-leaf: nested mappings are merged
recursively, while lists and scalars from the override replace the
base value wholesale.

Layers are merged in this order (later overrides earlier):
1. Chart default values (chart/values.yaml)
2. Values files (-f/--values), in the order given
3. --set overrides

Example:
    >>> from readyset_helm.merger import deep_merge
    >>> base = {"readyset": {"adapter": {"type": "postgresql", "queryLogAdHoc": True}}}
    >>> override = {"readyset": {"adapter": {"type": "mysql"}}}
    >>> deep_merge(base, override)["readyset"]["adapter"]
    {'type': 'mysql', 'queryLogAdHoc': True}
"""

from __future__ import annotations

from copy import deepcopy
from typing import Any


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge two dictionaries.

    Args:
        base: Base dictionary (lower priority)
        override: Override dictionary (higher priority)

    Returns:
        New dictionary with merged values (does not modify inputs)

    Examples:
        >>> deep_merge({"a": 1, "b": {"c": 2}}, {"b": {"d": 3}})
        {'a': 1, 'b': {'c': 2, 'd': 3}}

        Lists are replaced, never concatenated:
        >>> deep_merge({"items": [1, 2]}, {"items": [3]})
        {'items': [3]}
    """
    result = deepcopy(base)

    for key, override_value in override.items():
        current = result.get(key)
        if isinstance(current, dict) and isinstance(override_value, dict):
            result[key] = deep_merge(current, override_value)
        else:
            # Scalars, lists and type mismatches: override wins
            result[key] = deepcopy(override_value)

    return result


def merge_all(*dicts: dict[str, Any]) -> dict[str, Any]:
    """Merge multiple dictionaries in order, later ones winning.

    Example:
        >>> merge_all({"a": 1, "b": 2}, {"b": 3, "c": 4}, {"c": 5})
        {'a': 1, 'b': 3, 'c': 5}
    """
    result: dict[str, Any] = {}
    for d in dicts:
        result = deep_merge(result, d)
    return result


def unflatten_dict(d: dict[str, Any], sep: str = ".") -> dict[str, Any]:
    """Convert a flattened dictionary back to nested structure.

    Args:
        d: Flattened dictionary with dot-notation keys
        sep: Separator used in keys

    Returns:
        Nested dictionary

    Raises:
        ValueError: If one key is used both as a leaf and as a parent,
            e.g. ``a=1`` together with ``a.b=2``.

    Example:
        >>> unflatten_dict({"readyset.deployment": "prod"})
        {'readyset': {'deployment': 'prod'}}
    """
    result: dict[str, Any] = {}

    for key, value in d.items():
        parts = key.split(sep)
        current = result

        for depth, part in enumerate(parts[:-1]):
            child = current.setdefault(part, {})
            if not isinstance(child, dict):
                prefix = sep.join(parts[: depth + 1])
                msg = f"Conflicting keys: {prefix} is set both as a value and as a parent of {key}"
                raise ValueError(msg)
            current = child

        final_key = parts[-1]
        if isinstance(current.get(final_key), dict) and not isinstance(value, dict):
            msg = f"Conflicting keys: {key} is set both as a value and as a parent"
            raise ValueError(msg)
        current[final_key] = value

    return result


__all__: list[str] = [
    "deep_merge",
    "merge_all",
    "unflatten_dict",
]
