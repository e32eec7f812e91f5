"""
CrossDoc Tracer

Structured, in-memory tracing of engine runs using an OpenTelemetry-compatible
span format. One tracer is created per run; the active span is tracked in a
context variable so rules evaluated as concurrent tasks nest under the span
that spawned them.
"""

import json
import logging
import time
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generator

logger = logging.getLogger(__name__)


class SpanStatus(str, Enum):
    """Span completion status."""

    UNSET = "unset"
    OK = "ok"
    ERROR = "error"


@dataclass
class SpanEvent:
    """Event within a span."""

    name: str
    timestamp: float = field(default_factory=time.time)
    attributes: dict[str, Any] = field(default_factory=dict)


@dataclass
class Span:
    """
    Trace span representing a unit of work.

    Attributes:
        trace_id: Identifier of the run the span belongs to.
        span_id: Unique span identifier.
        parent_id: Parent span ID (None for root).
        name: Operation name.
        start_time: Start timestamp.
        end_time: End timestamp (set on completion).
        status: Completion status.
        attributes: Key-value metadata.
        events: Events during span.
    """

    trace_id: str
    span_id: str
    name: str
    parent_id: str | None = None
    start_time: float = field(default_factory=time.perf_counter)
    end_time: float | None = None
    status: SpanStatus = SpanStatus.UNSET
    status_message: str | None = None
    attributes: dict[str, Any] = field(default_factory=dict)
    events: list[SpanEvent] = field(default_factory=list)

    @property
    def duration_ms(self) -> float | None:
        """Duration in milliseconds."""
        if self.end_time is None:
            return None
        return (self.end_time - self.start_time) * 1000

    def set_attribute(self, key: str, value: Any) -> None:
        self.attributes[key] = value

    def add_event(self, name: str, attributes: dict[str, Any] | None = None) -> None:
        self.events.append(SpanEvent(name=name, attributes=attributes or {}))

    def set_status(self, status: SpanStatus, message: str | None = None) -> None:
        self.status = status
        self.status_message = message

    def end(self) -> None:
        if self.end_time is None:
            self.end_time = time.perf_counter()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "trace_id": self.trace_id,
            "span_id": self.span_id,
            "parent_id": self.parent_id,
            "name": self.name,
            "duration_ms": self.duration_ms,
            "status": self.status.value,
            "status_message": self.status_message,
            "attributes": self.attributes,
            "events": [{"name": e.name, "attributes": e.attributes} for e in self.events],
        }


# Active span of the current task; shared by all tracers, filtered by trace_id
_current_span: ContextVar[Span | None] = ContextVar("crossdoc_current_span", default=None)


class Tracer:
    """
    Tracer for one engine run.

    Usage:
        tracer = Tracer("crossdoc.engine")

        with tracer.span("normalize") as span:
            normalized = normalize_bundle(raw)
            span.set_attribute("issue_count", len(normalized.issues))
    """

    def __init__(self, name: str, trace_id: str | None = None) -> None:
        self._name = name
        self._trace_id = trace_id or self._generate_id()
        self._spans: list[Span] = []

    @staticmethod
    def _generate_id() -> str:
        return uuid.uuid4().hex[:16]

    @property
    def trace_id(self) -> str:
        return self._trace_id

    @property
    def current_span(self) -> Span | None:
        """Active span of this trace in the current task, if any."""
        span = _current_span.get()
        if span is not None and span.trace_id == self._trace_id:
            return span
        return None

    @contextmanager
    def span(self, name: str, attributes: dict[str, Any] | None = None) -> Generator[Span, None, None]:
        """
        Context manager for creating and managing spans.

        Exceptions are recorded on the span and re-raised.
        """
        parent = self.current_span
        span = Span(
            trace_id=self._trace_id,
            span_id=self._generate_id(),
            parent_id=parent.span_id if parent else None,
            name=f"{self._name}.{name}",
            attributes=attributes or {},
        )
        token = _current_span.set(span)

        try:
            yield span
            if span.status == SpanStatus.UNSET:
                span.set_status(SpanStatus.OK)
        except Exception as e:
            span.set_status(SpanStatus.ERROR, str(e))
            span.add_event("exception", {"type": type(e).__name__, "message": str(e)})
            raise
        finally:
            span.end()
            _current_span.reset(token)
            self._spans.append(span)
            logger.debug(
                f"span {span.name} {span.status.value} in {span.duration_ms:.2f}ms",
            )

    def get_spans(self) -> list[Span]:
        """Get all recorded spans, in completion order."""
        return self._spans.copy()

    def to_json(self) -> str:
        """Export all spans as JSON."""
        return json.dumps(
            {
                "trace_id": self._trace_id,
                "tracer": self._name,
                "spans": [s.to_dict() for s in self._spans],
            },
            indent=2,
            default=str,
        )
