"""
Pytest configuration

Puts the project root on sys.path and provides shared event fixtures
"""

import sys
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

project_root = Path(__file__).parent.parent.resolve()
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from llm_monitor.monitoring.events import Event, EventType, new_event_id  # noqa: E402

BASE_TIME = datetime(2024, 2, 3, 12, 0, 0, tzinfo=timezone.utc)


def build_event(
    event_type=EventType.REQUEST_END,
    request_id="req-1",
    provider="openai",
    model="gpt-4o",
    time=None,
    offset_ms=0,
    **kwargs
):
    """Build an Event with sensible defaults"""
    return Event(
        id=kwargs.pop("id", None) or new_event_id(),
        event_type=event_type,
        request_id=request_id,
        time=(time or BASE_TIME) + timedelta(milliseconds=offset_ms),
        provider=provider,
        model=model,
        **kwargs
    )


@pytest.fixture
def make_event():
    """Factory fixture for events"""
    return build_event


@pytest.fixture
def base_time():
    return BASE_TIME


@pytest.fixture
def temp_dir():
    """Temporary directory removed after the test"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_events(make_event):
    """Two successes, one error and non-terminal noise"""
    return [
        make_event(EventType.REQUEST_START, request_id="req-a"),
        make_event(
            EventType.REQUEST_END, request_id="req-a", provider="openai", model="gpt-4o",
            offset_ms=100, duration=100, cost=0.1,
            payload={"usage": {"prompt_tokens": 10, "completion_tokens": 5}},
        ),
        make_event(
            EventType.REQUEST_END, request_id="req-b", provider="anthropic", model="claude-3-5-sonnet",
            offset_ms=200, duration=300, cost=0.2,
            payload={"usage": {"input_tokens": 20, "output_tokens": 10}},
        ),
        make_event(
            EventType.REQUEST_ERROR, request_id="req-c", provider="openai", model="gpt-4o-mini",
            offset_ms=300, duration=50,
            payload={"error": "rate limited"},
        ),
        make_event(EventType.TOOL_END, request_id="req-b", offset_ms=150),
    ]
