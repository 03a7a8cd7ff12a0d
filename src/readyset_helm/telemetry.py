"""Structured logging and tracing for readyset-helm.

Logs go through structlog and are written to stderr, keeping stdout
free for rendered manifests. When an OpenTelemetry span is active, log
records carry its trace_id and span_id. Without an SDK configured the
tracer is a no-op.

Example:
    >>> from readyset_helm.telemetry import configure_logging, get_tracer
    >>> configure_logging(log_level="DEBUG", json_output=False)
    >>> with get_tracer().start_as_current_span("readyset_helm.render"):
    ...     structlog.get_logger().info("rendering")
"""

from __future__ import annotations

import logging
import sys
from collections.abc import MutableMapping
from typing import TYPE_CHECKING, Any

import structlog
from opentelemetry import trace
from opentelemetry.trace import INVALID_SPAN_ID, INVALID_TRACE_ID

if TYPE_CHECKING:
    from opentelemetry.trace import Tracer

EventDict = MutableMapping[str, Any]

TRACER_NAME = "readyset_helm"

_tracer: Tracer | None = None


def get_tracer() -> Tracer:
    """Get the package tracer, created on first use."""
    global _tracer
    if _tracer is None:
        _tracer = trace.get_tracer(TRACER_NAME)
    return _tracer


def add_trace_context(
    logger: Any,  # noqa: ARG001
    method_name: str,  # noqa: ARG001
    event_dict: EventDict,
) -> EventDict:
    """Structlog processor adding trace_id and span_id of the active span."""
    ctx = trace.get_current_span().get_span_context()
    if ctx.trace_id != INVALID_TRACE_ID and ctx.span_id != INVALID_SPAN_ID:
        event_dict["trace_id"] = format(ctx.trace_id, "032x")
        event_dict["span_id"] = format(ctx.span_id, "016x")
    return event_dict


def configure_logging(log_level: str = "WARNING", json_output: bool = False) -> None:
    """Configure structlog for CLI use.

    Args:
        log_level: Minimum level to emit (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_output: Emit JSON lines instead of the console format.

    Raises:
        ValueError: If log_level is not a known level name.
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        msg = f"Unknown log level: {log_level}"
        raise ValueError(msg)

    renderer: Any = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_trace_context,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        # Resolve stderr per logger so redirected streams are honoured
        logger_factory=lambda *_: structlog.PrintLogger(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


__all__: list[str] = [
    "add_trace_context",
    "configure_logging",
    "get_tracer",
]
