"""
Unit tests for the Monitor lifecycle hooks
"""

import asyncio
import logging
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import pytest

from llm_monitor.monitoring.events import EventType
from llm_monitor.monitoring.monitor import STATE_KEY, Monitor, MonitorContext
from llm_monitor.stores.memory import MemoryStore


def _raise(error):
    """Raise and return the exception so it carries a traceback"""
    try:
        raise error
    except Exception as e:
        return e


@pytest.fixture
def monitor(memory_store, fake_timer):
    return Monitor(memory_store, timer=fake_timer)


@pytest.fixture
def capturing_monitor(memory_store, fake_timer):
    return Monitor(memory_store, capture_content=True, timer=fake_timer)


class TestRequestLifecycle:
    """Test request start/end/error events"""

    def test_request_start_without_capture(self, monitor, memory_store, context):
        """Start events carry no content by default"""
        asyncio.run(monitor.on_request(context))

        assert len(memory_store) == 1
        event = memory_store.events[0]
        assert event.event_type == EventType.REQUEST_START
        assert event.request_id == "req-123"
        assert event.payload == {}
        assert event.session_id == "sess-1"
        assert STATE_KEY in context.state

    def test_request_start_with_capture(self, capturing_monitor, memory_store, context):
        """Captured messages are scrubbed"""
        asyncio.run(capturing_monitor.on_request(context))

        payload = memory_store.events[0].payload
        assert payload["messages"][0]["content"] == "Email me at [EMAIL]"
        assert payload["options"]["temperature"] == 0.2

    def test_response_metrics(self, monitor, memory_store, context, fake_timer):
        """Duration, cpu time, allocations and cost come from the timer and usage"""
        async def run():
            await monitor.on_request(context)
            fake_timer.advance(wall=250, cpu=20, memory=4096)
            await monitor.on_response(context, {
                "usage": {"prompt_tokens": 12, "completion_tokens": 4, "cost": 0.01},
            })

        asyncio.run(run())

        event = memory_store.events[-1]
        assert event.event_type == EventType.REQUEST_END
        assert event.duration == 250
        assert event.cpu_time == 20
        assert event.allocations == 4096
        assert event.cost == 0.01
        assert event.payload["usage"]["prompt_tokens"] == 12
        assert "result" not in event.payload

    def test_allocations_never_negative(self, monitor, memory_store, context, fake_timer):
        """Memory shrinking during a request records zero allocations"""
        async def run():
            await monitor.on_request(context)
            fake_timer.advance(wall=5, memory=-5000)
            await monitor.on_response(context, {})

        asyncio.run(run())

        assert memory_store.events[-1].allocations == 0

    def test_response_without_request(self, monitor, memory_store, context):
        """Metrics are omitted when on_request never ran"""
        asyncio.run(monitor.on_response(context, {"usage": {"prompt_tokens": 1}}))

        event = memory_store.events[0]
        assert event.duration is None
        assert event.cpu_time is None
        assert event.cost is None

    def test_response_with_capture(self, capturing_monitor, memory_store, context):
        """Captured results are stringified and scrubbed"""
        asyncio.run(capturing_monitor.on_response(context, "reply to john.doe@example.com"))

        assert memory_store.events[0].payload["result"] == "reply to [EMAIL]"

    def test_usage_object(self, monitor, memory_store, context):
        """Attribute-style results and usage objects are read"""
        result = SimpleNamespace(usage=SimpleNamespace(prompt_tokens=3, completion_tokens=2), model="gpt-4o")

        asyncio.run(monitor.on_response(context, result))

        assert memory_store.events[0].payload["usage"] == {"prompt_tokens": 3, "completion_tokens": 2}

    def test_model_filled_from_result(self, monitor, memory_store):
        """A context without a model takes the one reported by the result"""
        ctx = MonitorContext(request_id="req-9", provider="openai", model="")

        asyncio.run(monitor.on_response(ctx, {"model": "gpt-4o-2024-08-06"}))

        assert memory_store.events[0].model == "gpt-4o-2024-08-06"

    def test_error_event(self, monitor, memory_store, context, fake_timer):
        """Errors record message, stack and metrics"""
        async def run():
            await monitor.on_request(context)
            fake_timer.advance(wall=40)
            await monitor.on_error(context, _raise(ValueError("quota exceeded")))

        asyncio.run(run())

        event = memory_store.events[-1]
        assert event.event_type == EventType.REQUEST_ERROR
        assert event.payload["error"] == "quota exceeded"
        assert "ValueError" in event.payload["stack"]
        assert event.duration == 40

    def test_session_from_context_wins(self, monitor, memory_store, context):
        """Context session ids take precedence over options"""
        context.session_id = "sess-ctx"

        asyncio.run(monitor.on_request(context))

        assert memory_store.events[0].session_id == "sess-ctx"


class TestToolLifecycle:
    """Test tool call events"""

    def test_tool_start_with_capture(self, capturing_monitor, memory_store, context):
        """OpenAI-style tool calls are unpacked and arguments scrubbed"""
        tool = {"id": "call-1", "function": {"name": "search", "arguments": '{"q": "a@b.com"}'}}

        asyncio.run(capturing_monitor.on_tool_call_start(context, tool))

        payload = memory_store.events[0].payload
        assert memory_store.events[0].event_type == EventType.TOOL_START
        assert payload["tool"]["id"] == "call-1"
        assert payload["tool"]["name"] == "search"
        assert payload["tool"]["args"] == '{"q": "[EMAIL]"}'

    def test_tool_start_without_capture(self, monitor, memory_store, context):
        """Tool arguments are invocation metadata and are kept without capture"""
        asyncio.run(monitor.on_tool_call_start(context, {"id": "t1", "name": "lookup", "args": {"x": 1}}))

        assert memory_store.events[0].payload == {"tool": {"id": "t1", "name": "lookup", "args": {"x": 1}}}

    def test_tool_end_without_capture(self, monitor, memory_store, context):
        """Tool results stay out of the payload without capture"""
        asyncio.run(monitor.on_tool_call_end(context, {"id": "t1", "name": "lookup"}, {"rows": 3}))

        assert memory_store.events[0].payload == {"tool": {"id": "t1", "name": "lookup"}}

    def test_tool_end_and_error(self, capturing_monitor, memory_store, context):
        """Tool results are captured; tool errors carry the message"""
        tool = SimpleNamespace(id="t2", name="calc")

        async def run():
            await capturing_monitor.on_tool_call_end(context, tool, {"answer": 42})
            await capturing_monitor.on_tool_call_error(context, tool, RuntimeError("timeout"))

        asyncio.run(run())

        end, error = memory_store.events
        assert end.event_type == EventType.TOOL_END
        assert end.payload["result"] == {"answer": 42}
        assert error.event_type == EventType.TOOL_ERROR
        assert error.payload["error"] == "timeout"
        assert error.payload["tool"]["name"] == "calc"


class TestStorageFailures:
    """Test that store failures never propagate"""

    @pytest.fixture
    def failing_store(self):
        store = Mock()
        store.save_event = AsyncMock(side_effect=RuntimeError("disk full"))
        return store

    def test_error_callback_receives_event(self, failing_store, fake_timer, context):
        """The callback gets the exception and the unsaved event"""
        callback = Mock()
        monitor = Monitor(failing_store, on_error=callback, timer=fake_timer)

        asyncio.run(monitor.on_request(context))

        callback.assert_called_once()
        error, event = callback.call_args[0]
        assert str(error) == "disk full"
        assert event.event_type == EventType.REQUEST_START

    def test_failure_logged_without_callback(self, failing_store, fake_timer, context, caplog):
        """Without a callback the failure is logged"""
        monitor = Monitor(failing_store, timer=fake_timer)

        with caplog.at_level(logging.ERROR):
            asyncio.run(monitor.on_request(context))

        assert "disk full" in caplog.text

    def test_failing_callback_is_contained(self, failing_store, fake_timer, context, caplog):
        """A raising callback is logged, not raised"""
        callback = Mock(side_effect=ValueError("callback broke"))
        monitor = Monitor(failing_store, on_error=callback, timer=fake_timer)

        with caplog.at_level(logging.ERROR):
            asyncio.run(monitor.on_response(context, {}))

        assert "callback broke" in caplog.text

    def test_sync_store(self, fake_timer, context, caplog):
        """A store with a plain save_event is accepted"""
        store = Mock()
        monitor = Monitor(store, timer=fake_timer)

        with caplog.at_level(logging.ERROR):
            asyncio.run(monitor.on_request(context))

        store.save_event.assert_called_once()
        assert caplog.text == ""


class TestMonitorHelpers:
    """Test convenience constructors and enrichment"""

    def test_memory_constructor(self, fake_timer):
        """Monitor.memory wires a fresh MemoryStore"""
        monitor = Monitor.memory(capture_content=True, timer=fake_timer)

        assert isinstance(monitor.store, MemoryStore)
        assert monitor.capture_content is True

    def test_enrichment_exposed(self):
        """Enrichment helpers are reachable from the Monitor class"""
        payload = Monitor.enrich_with_retry({"a": 1}, retry_count=2)
        assert payload == {"a": 1, "retry": {"retry_count": 2}}
