"""OpenTelemetry tracing support for the S3 Bucket Compiler.

Spans go to whatever tracer provider the host process installed; without one
the OpenTelemetry API hands out non-recording spans.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator

from opentelemetry import trace
from opentelemetry.trace import Span, Tracer

from .constants import SERVICE_NAME


def get_tracer() -> Tracer:
    """Get the tracer for this library from the global tracer provider."""
    return trace.get_tracer(SERVICE_NAME)


@contextmanager
def trace_span(
    name: str,
    stage: str | None = None,
    attributes: dict[str, Any] | None = None,
) -> Iterator[Span]:
    """Context manager for creating a trace span.

    Args:
        name: Name of the span
        stage: Pipeline stage (e.g., "validate", "lifecycle")
        attributes: Additional span attributes

    Yields:
        The current span
    """
    attrs = dict(attributes or {})
    if stage:
        attrs["compiler.stage"] = stage

    with get_tracer().start_as_current_span(
        name,
        attributes=attrs,
        record_exception=False,
        set_status_on_exception=False,
    ) as span:
        try:
            yield span
        except Exception as e:
            if span.is_recording():
                span.record_exception(e)
                span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))
            raise


def add_span_attribute(key: str, value: Any) -> None:
    """Add an attribute to the current span.

    Args:
        key: Attribute key
        value: Attribute value
    """
    span = trace.get_current_span()
    if span.is_recording():
        span.set_attribute(key, value)


def set_span_status(ok: bool, description: str | None = None) -> None:
    """Set the status of the current span.

    Args:
        ok: Whether the operation succeeded
        description: Optional status description
    """
    span = trace.get_current_span()
    if span.is_recording():
        if ok:
            span.set_status(trace.Status(trace.StatusCode.OK))
        else:
            span.set_status(trace.Status(trace.StatusCode.ERROR, description))
