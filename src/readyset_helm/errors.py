"""Exception hierarchy for readyset-helm.

All exceptions inherit from ChartError, so callers can catch every
render failure with a single except clause.

Exception Hierarchy:
    ChartError (base)
    ├── ValuesValidationError  # Unknown path, bad value, broken invariant
    ├── TemplateNotFoundError  # --show-only names a missing template
    └── RenderError            # Template failed to render or emitted bad YAML

Exit Codes:
    1 - General error (ChartError, RenderError)
    3 - Template not found (TemplateNotFoundError)
    5 - Values validation failed (ValuesValidationError)

Example:
    >>> from readyset_helm.errors import ValuesValidationError
    >>> raise ValuesValidationError([("readyset.foo", "unknown value path")])
    Traceback (most recent call last):
        ...
    ValuesValidationError: Invalid chart values: readyset.foo: unknown value path
"""

from __future__ import annotations

from collections.abc import Sequence


class ChartError(Exception):
    """Base exception for all chart rendering errors.

    Attributes:
        exit_code: CLI exit code for this error type (default: 1).
    """

    exit_code: int = 1


class ValuesValidationError(ChartError):
    """Raised when chart values fail validation.

    Every issue names the dotted values path it refers to, so the
    message points the operator at the exact ``--set`` key to fix.

    Attributes:
        issues: List of (path, message) tuples.
        exit_code: CLI exit code (5).
    """

    exit_code: int = 5

    def __init__(self, issues: Sequence[tuple[str, str]]) -> None:
        self.issues: list[tuple[str, str]] = list(issues)
        details = "; ".join(f"{path}: {message}" for path, message in self.issues)
        super().__init__(f"Invalid chart values: {details}")

    @property
    def paths(self) -> list[str]:
        """Dotted paths of every offending value, in reporting order."""
        return [path for path, _ in self.issues]


class TemplateNotFoundError(ChartError):
    """Raised when a requested template does not exist in the chart.

    Attributes:
        template: The template name that was requested.
        available: Names of the templates the chart provides.
        exit_code: CLI exit code (3).
    """

    exit_code: int = 3

    def __init__(self, template: str, available: Sequence[str]) -> None:
        self.template = template
        self.available = list(available)
        super().__init__(
            f"Template not found: {template} (available: {', '.join(self.available)})"
        )


class RenderError(ChartError):
    """Raised when a template fails to render or emits invalid YAML.

    Attributes:
        template: The template that failed.
        reason: Description of the failure.
    """

    def __init__(self, template: str, reason: str) -> None:
        self.template = template
        self.reason = reason
        super().__init__(f"Failed to render {template}: {reason}")


__all__: list[str] = [
    "ChartError",
    "RenderError",
    "TemplateNotFoundError",
    "ValuesValidationError",
]
