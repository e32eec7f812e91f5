"""
Tracer Tests

Span nesting, error recording and parenting across concurrent tasks.
"""

import asyncio
import json

import pytest

from crossdoc.observability.tracer import SpanStatus, Tracer


class TestSpans:
    """Single-task behaviour."""

    def test_nested_spans_record_parent(self):
        tracer = Tracer("test")

        with tracer.span("outer") as outer:
            with tracer.span("inner", {"k": 1}) as inner:
                assert tracer.current_span is inner

        assert inner.parent_id == outer.span_id
        assert outer.parent_id is None
        assert inner.attributes == {"k": 1}
        assert [s.name for s in tracer.get_spans()] == ["test.inner", "test.outer"]
        assert tracer.current_span is None

    def test_success_sets_ok_and_duration(self):
        tracer = Tracer("test")

        with tracer.span("work") as span:
            pass

        assert span.status is SpanStatus.OK
        assert span.duration_ms is not None and span.duration_ms >= 0

    def test_exception_recorded_and_reraised(self):
        tracer = Tracer("test")

        with pytest.raises(KeyError):
            with tracer.span("fails"):
                raise KeyError("missing")

        (span,) = tracer.get_spans()
        assert span.status is SpanStatus.ERROR
        assert span.events[0].name == "exception"
        assert span.events[0].attributes["type"] == "KeyError"

    def test_explicit_status_kept(self):
        tracer = Tracer("test")

        with tracer.span("rule") as span:
            span.set_status(SpanStatus.ERROR, "rule failed")

        assert span.status is SpanStatus.ERROR
        assert span.status_message == "rule failed"

    def test_to_json(self):
        tracer = Tracer("test", trace_id="abc")
        with tracer.span("work"):
            pass

        data = json.loads(tracer.to_json())

        assert data["trace_id"] == "abc"
        assert data["spans"][0]["name"] == "test.work"
        assert data["spans"][0]["status"] == "ok"


class TestConcurrency:
    """Spans created in concurrent tasks."""

    def test_concurrent_children_share_parent(self):
        tracer = Tracer("test")

        async def child(name: str):
            with tracer.span(name):
                await asyncio.sleep(0)

        async def main():
            with tracer.span("root") as root:
                await asyncio.gather(child("a"), child("b"), child("c"))
            return root

        root = asyncio.run(main())
        children = [s for s in tracer.get_spans() if s.name != "test.root"]

        assert len(children) == 3
        assert all(s.parent_id == root.span_id for s in children)

    def test_separate_tracers_do_not_nest(self):
        first, second = Tracer("one"), Tracer("two")

        with first.span("outer"):
            assert second.current_span is None
            with second.span("inner") as inner:
                pass

        assert inner.parent_id is None
