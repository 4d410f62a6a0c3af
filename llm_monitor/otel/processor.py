"""
Monitor Span Processor - routes AI spans from OpenTelemetry to a store

Design principles:
- on_end never blocks on storage: saves run on a worker pool
- Failures go to an error callback or the log, never into the tracing
  pipeline
- force_flush/shutdown give a deterministic drain barrier

Pipeline per ended span:
    domain check -> top-level check -> caller filter -> extract attributes
    -> build Event -> caller transform -> background save
"""

import asyncio
import inspect
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any, Callable, Dict, Optional, Set

from opentelemetry.context import Context
from opentelemetry.sdk.trace import ReadableSpan, Span, SpanProcessor
from opentelemetry.trace import StatusCode

from llm_monitor.monitoring.events import Event, new_event_id, utcnow
from llm_monitor.monitoring.pricing import estimate_cost
from llm_monitor.otel.attributes import (
    TOOL_CALL_OPERATION,
    calculate_duration_ms,
    extract_ai_attributes,
    extract_model,
    extract_provider,
    extract_session_id,
    format_span_id,
    format_trace_id,
    generate_request_id,
    get_operation_type,
    is_ai_span,
    is_top_level_ai_span,
    map_status_to_event_type,
    ns_to_datetime,
    parse_json_attribute,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 4
DEFAULT_FLUSH_TIMEOUT_MS = 30000

SpanFilter = Callable[[ReadableSpan], bool]
EventTransform = Callable[[Event, ReadableSpan], Event]
SpanIdExtractor = Callable[[ReadableSpan], Optional[str]]
SpanErrorHandler = Callable[[Exception, ReadableSpan], Any]


class MonitorSpanProcessor(SpanProcessor):
    """
    Monitor Span Processor - OpenTelemetry SpanProcessor writing monitoring events

    Usage:
        store = SQLiteStore("./data/monitoring.db")
        provider = TracerProvider()
        provider.add_span_processor(MonitorSpanProcessor(store))

        # ... traced AI calls ...

        provider.shutdown()  # drains pending saves
    """

    def __init__(
        self,
        store: Any,
        capture_content: bool = True,
        filter: Optional[SpanFilter] = None,
        transform: Optional[EventTransform] = None,
        request_id_extractor: Optional[SpanIdExtractor] = None,
        session_id_extractor: Optional[SpanIdExtractor] = None,
        on_error: Optional[SpanErrorHandler] = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
        flush_timeout_ms: int = DEFAULT_FLUSH_TIMEOUT_MS,
    ):
        """
        Initialize MonitorSpanProcessor

        Args:
            store: Any object implementing the store contract
            capture_content: Record prompts, responses and tool payloads
            filter: Return False to skip a span
            transform: Replace the built event before it is saved
            request_id_extractor: Custom request id (otel_<trace>_<span> if None)
            session_id_extractor: Custom session id (telemetry metadata if None)
            on_error: Called with (exception, span) when processing fails
            max_workers: Background save threads
            flush_timeout_ms: Default wait for force_flush and shutdown
        """
        self.store = store
        self.capture_content = capture_content
        self.span_filter = filter
        self.transform = transform
        self.request_id_extractor = request_id_extractor
        self.session_id_extractor = session_id_extractor
        self.error_handler = on_error
        self.flush_timeout_ms = flush_timeout_ms

        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="llm-monitor-otel",
        )
        self._pending: Set[Future] = set()
        self._lock = threading.Lock()
        self._is_shutdown = False

    def on_start(self, span: Span, parent_context: Optional[Context] = None) -> None:
        """Spans are processed on completion"""

    def on_end(self, span: ReadableSpan) -> None:
        if self._is_shutdown:
            return
        try:
            if not self.should_process(span):
                return
        except Exception as e:
            self._handle_error(e, span)
            return

        try:
            future = self._executor.submit(self._process_span, span)
        except RuntimeError as e:
            # executor already shut down
            self._handle_error(e, span)
            return

        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._discard)

    def should_process(self, span: ReadableSpan) -> bool:
        """Domain check, then top-level check, then the caller filter"""
        if not is_ai_span(span):
            return False
        if not is_top_level_ai_span(span):
            return False
        if self.span_filter is not None and not self.span_filter(span):
            return False
        return True

    def span_to_event(self, span: ReadableSpan) -> Event:
        """Convert an ended AI span to a monitoring event"""
        attrs = extract_ai_attributes(span)
        operation_type = get_operation_type(span)
        provider = extract_provider(attrs)
        model = extract_model(attrs)
        duration = calculate_duration_ms(span.start_time, span.end_time)

        prompt_tokens = attrs.input_tokens
        completion_tokens = attrs.output_tokens
        cost = estimate_cost(provider, model, prompt_tokens, completion_tokens)

        request_id = (
            self.request_id_extractor(span)
            if self.request_id_extractor
            else None
        ) or generate_request_id(span)
        session_id = (
            self.session_id_extractor(span)
            if self.session_id_extractor
            else extract_session_id(span)
        )

        span_context = span.get_span_context()
        payload: Dict[str, Any] = {
            "operation_type": operation_type,
            "function_id": attrs.function_id,
            "finish_reason": attrs.response_finish_reason,
            "usage": {
                "prompt_tokens": prompt_tokens,
                "completion_tokens": completion_tokens,
                "total_tokens": prompt_tokens + completion_tokens,
            },
            "otel": {
                "trace_id": format_trace_id(span_context.trace_id),
                "span_id": format_span_id(span_context.span_id),
                "parent_span_id": format_span_id(span.parent.span_id) if span.parent else None,
            },
        }

        if attrs.ms_to_first_chunk is not None:
            payload["ms_to_first_chunk"] = attrs.ms_to_first_chunk
        if attrs.ms_to_finish is not None:
            payload["ms_to_finish"] = attrs.ms_to_finish
        if attrs.avg_completion_tokens_per_second is not None:
            payload["avg_completion_tokens_per_second"] = attrs.avg_completion_tokens_per_second
        if attrs.metadata:
            payload["metadata"] = attrs.metadata

        if self.capture_content:
            payload.update(self._content_payload(attrs))

        if operation_type == TOOL_CALL_OPERATION:
            tool = {"name": attrs.tool_call_name, "id": attrs.tool_call_id}
            if self.capture_content:
                tool["args"] = parse_json_attribute(attrs.tool_call_args)
                tool["result"] = parse_json_attribute(attrs.tool_call_result)
            payload["tool"] = tool

        status_code = span.status.status_code
        if status_code == StatusCode.ERROR:
            payload["error"] = span.status.description or "Unknown error"

        end_ns = span.end_time if span.end_time is not None else span.start_time
        return Event(
            id=new_event_id(),
            event_type=map_status_to_event_type(status_code, operation_type),
            request_id=request_id,
            session_id=session_id,
            time=ns_to_datetime(end_ns),
            duration=duration,
            cost=cost,
            payload=payload,
            created_at=utcnow(),
            provider=provider,
            model=model,
        )

    @staticmethod
    def _content_payload(attrs: Any) -> Dict[str, Any]:
        content: Dict[str, Any] = {}
        if attrs.prompt:
            content["prompt"] = attrs.prompt
        if attrs.prompt_messages:
            content["messages"] = parse_json_attribute(attrs.prompt_messages)
        if attrs.response_text:
            content["result"] = attrs.response_text
        if attrs.response_object:
            content["object"] = parse_json_attribute(attrs.response_object)
        if attrs.response_tool_calls:
            content["tool_calls"] = parse_json_attribute(attrs.response_tool_calls)
        return content

    def _process_span(self, span: ReadableSpan) -> None:
        """Worker-thread body: convert, transform and save one span"""
        try:
            event = self.span_to_event(span)
            if self.transform is not None:
                event = self.transform(event, span)

            result = self.store.save_event(event)
            if inspect.isawaitable(result):
                asyncio.run(_await(result))
        except Exception as e:
            self._handle_error(e, span)

    def _handle_error(self, error: Exception, span: ReadableSpan) -> None:
        if self.error_handler is None:
            logger.error(f"Error processing span '{span.name}': {error}")
            return

        try:
            self.error_handler(error, span)
        except Exception as callback_error:
            logger.error(f"Span error callback failed: {callback_error}; original error: {error}")

    def _discard(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def force_flush(self, timeout_millis: Optional[int] = None) -> bool:
        """
        Wait for every outstanding save to complete or fail

        Returns:
            False if the timeout elapsed with saves still running
        """
        with self._lock:
            pending = list(self._pending)

        if not pending:
            return True

        if timeout_millis is None:
            timeout_millis = self.flush_timeout_ms
        done, not_done = wait(pending, timeout=timeout_millis / 1000)

        with self._lock:
            self._pending.difference_update(done)

        if not_done:
            logger.warning(f"force_flush timed out with {len(not_done)} saves pending")
        return not not_done

    def shutdown(self) -> None:
        """Flush pending saves, then stop the worker pool"""
        if self._is_shutdown:
            return
        self.force_flush()
        self._is_shutdown = True
        self._executor.shutdown(wait=True)


async def _await(awaitable: Any) -> Any:
    return await awaitable


def create_span_processor(store: Any, config: Any = None, **options: Any) -> MonitorSpanProcessor:
    """
    Build a MonitorSpanProcessor, taking defaults from an OTelConfig

    Keyword options override config values.
    """
    if config is not None:
        options.setdefault("capture_content", config.capture_content)
        options.setdefault("max_workers", config.max_workers)
        options.setdefault("flush_timeout_ms", config.flush_timeout_ms)
    return MonitorSpanProcessor(store, **options)


__all__ = [
    "DEFAULT_MAX_WORKERS",
    "DEFAULT_FLUSH_TIMEOUT_MS",
    "MonitorSpanProcessor",
    "create_span_processor",
]
