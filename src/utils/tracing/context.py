"""
Context managers and helpers for span management.
"""

from contextlib import contextmanager

from opentelemetry import trace

from .tracer import get_tracer


@contextmanager
def trace_operation(
    operation_name: str,
    kind: trace.SpanKind = trace.SpanKind.INTERNAL,
    **attributes
):
    """
    Trace a block of work as one span.

    Exceptions are recorded on the span and re-raised.

    Example:
        >>> with trace_operation("batch_execute", job="customers") as span:
        ...     cursor.executemany(sql, batch)
        ...     span.set_attribute("batch.size", len(batch))
    """
    tracer = get_tracer()

    with tracer.start_as_current_span(operation_name, kind=kind) as span:
        for key, value in attributes.items():
            span.set_attribute(key, str(value))

        try:
            yield span
        except Exception as e:
            span.set_attribute("error", True)
            span.set_attribute("error.type", type(e).__name__)
            span.record_exception(e)
            raise


def add_span_attributes(**attributes):
    """Add attributes to the current span, if it is recording."""
    current_span = trace.get_current_span()
    if current_span.is_recording():
        for key, value in attributes.items():
            current_span.set_attribute(key, str(value))


def add_span_event(name: str, **attributes):
    """Add an event (a point in time) to the current span."""
    current_span = trace.get_current_span()
    if current_span.is_recording():
        current_span.add_event(name, attributes={k: str(v) for k, v in attributes.items()})
