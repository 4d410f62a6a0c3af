"""
Pytest fixtures for OpenTelemetry integration tests
"""

import pytest
from opentelemetry.sdk.trace import ReadableSpan
from opentelemetry.trace import SpanContext, Status, StatusCode

TRACE_ID = int("0af7651916cd43dd8448eb211c80319c", 16)
SPAN_ID = int("b7ad6b7169203331", 16)
PARENT_SPAN_ID = int("00f067aa0ba902b7", 16)

START_NS = 1_706_961_600_000_000_000
END_NS = START_NS + 250_000_000


def build_span(
    name="ai.generateText",
    attributes=None,
    status_code=StatusCode.OK,
    description=None,
    start_time=START_NS,
    end_time=END_NS,
    parent=False,
):
    """Build an ended ReadableSpan without a tracer"""
    context = SpanContext(trace_id=TRACE_ID, span_id=SPAN_ID, is_remote=False)
    parent_context = (
        SpanContext(trace_id=TRACE_ID, span_id=PARENT_SPAN_ID, is_remote=False)
        if parent
        else None
    )
    return ReadableSpan(
        name=name,
        context=context,
        parent=parent_context,
        attributes=attributes or {},
        status=Status(status_code, description),
        start_time=start_time,
        end_time=end_time,
    )


@pytest.fixture
def make_span():
    """Factory fixture for ended spans"""
    return build_span
