"""
CrossDoc Observability Layer

Per-run tracing.
"""

from crossdoc.observability.tracer import Span, SpanEvent, SpanStatus, Tracer

__all__ = [
    "Tracer",
    "Span",
    "SpanEvent",
    "SpanStatus",
]
