"""Container environment variables keyed by name.

Kubernetes wants ``env`` as an ordered list, but nothing downstream
should depend on where a variable sits in that list. ``ContainerEnv``
keeps variables in a mapping keyed by name and only produces the list
when a manifest is emitted.

Example:
    >>> env = ContainerEnv()
    >>> env.set("QUERY_CACHING", "explicit")
    >>> env.set_field_ref("EXTERNAL_ADDRESS", "status.podIP")
    >>> env["QUERY_CACHING"]
    'explicit'
    >>> [item["name"] for item in env.to_list()]
    ['QUERY_CACHING', 'EXTERNAL_ADDRESS']
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class EnvVar:
    """A single container environment variable.

    Exactly one of ``value`` and ``value_from`` is set.
    """

    name: str
    value: str | None = None
    value_from: dict[str, Any] | None = None

    def to_manifest(self) -> dict[str, Any]:
        """Serialize to the Kubernetes EnvVar shape."""
        if self.value_from is not None:
            return {"name": self.name, "valueFrom": self.value_from}
        return {"name": self.name, "value": self.value}


class ContainerEnv(Mapping[str, "str | None"]):
    """Name-keyed environment for one container.

    Mapping access returns the literal value (None for variables sourced
    through ``valueFrom``). Setting an existing name replaces it in place.
    """

    def __init__(self) -> None:
        self._vars: dict[str, EnvVar] = {}

    def set(self, name: str, value: Any) -> None:
        """Set a literal value; booleans render as true/false."""
        if isinstance(value, bool):
            value = "true" if value else "false"
        self._vars[name] = EnvVar(name=name, value=str(value))

    def set_field_ref(self, name: str, field_path: str) -> None:
        """Source a value from the pod's own metadata or status."""
        self._vars[name] = EnvVar(
            name=name,
            value_from={"fieldRef": {"fieldPath": field_path}},
        )

    def set_secret_ref(self, name: str, secret: str, key: str) -> None:
        """Source a value from a key of a Secret."""
        self._vars[name] = EnvVar(
            name=name,
            value_from={"secretKeyRef": {"name": secret, "key": key}},
        )

    def set_resource_ref(self, name: str, container: str, resource: str) -> None:
        """Source a value from a container's resource requests or limits."""
        self._vars[name] = EnvVar(
            name=name,
            value_from={"resourceFieldRef": {"containerName": container, "resource": resource}},
        )

    def get_var(self, name: str) -> EnvVar:
        """Return the full EnvVar, including any valueFrom source."""
        return self._vars[name]

    def __getitem__(self, name: str) -> str | None:
        return self._vars[name].value

    def __iter__(self) -> Iterator[str]:
        return iter(self._vars)

    def __len__(self) -> int:
        return len(self._vars)

    def __repr__(self) -> str:
        return f"ContainerEnv({list(self._vars)})"

    def to_list(self) -> list[dict[str, Any]]:
        """Emit the ordered list Kubernetes expects."""
        return [var.to_manifest() for var in self._vars.values()]

    @classmethod
    def from_list(cls, entries: list[dict[str, Any]] | None) -> ContainerEnv:
        """Rebuild a ContainerEnv from a parsed manifest's ``env`` list.

        Raises:
            ValueError: If the same name appears twice.
        """
        env = cls()
        for entry in entries or []:
            name = entry["name"]
            if name in env._vars:
                msg = f"Duplicate environment variable: {name}"
                raise ValueError(msg)
            env._vars[name] = EnvVar(
                name=name,
                value=entry.get("value"),
                value_from=entry.get("valueFrom"),
            )
        return env


__all__: list[str] = ["ContainerEnv", "EnvVar"]
