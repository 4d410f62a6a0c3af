"""
Monitor - lifecycle hooks that turn provider calls into monitoring events

Design principles:
- Telemetry never aborts the instrumented workload: storage failures are
  reported to an error callback or the log, never raised
- Content (messages, results) is recorded only when capture_content is
  enabled; tool arguments are always recorded. Both pass through the scrubber
- Per-request timing marks live in the caller's context (ctx.state),
  not on the Monitor, so one Monitor serves concurrent requests

Lifecycle:
    on_request -> on_response | on_error
    on_tool_call_start -> on_tool_call_end | on_tool_call_error
"""

import inspect
import logging
import time
import traceback
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol

import psutil

from llm_monitor.monitoring import metadata
from llm_monitor.monitoring.events import Event, EventType, new_event_id, utcnow
from llm_monitor.monitoring.scrubber import ContentScrubber, ScrubbingConfig

logger = logging.getLogger(__name__)

STATE_KEY = "_monitor"

StorageErrorHandler = Callable[[Exception, Event], Any]


class PlatformTimer(Protocol):
    """Host timing counters used for per-request metrics"""

    def wall_ms(self) -> float: ...

    def cpu_ms(self) -> float: ...

    def memory_bytes(self) -> int: ...


class ProcessTimer:
    """
    Process Timer - psutil-backed counters for the current process

    cpu_ms is user + system CPU time; memory_bytes is resident set size.
    """

    def __init__(self):
        self._process = psutil.Process()

    def wall_ms(self) -> float:
        return time.monotonic() * 1000

    def cpu_ms(self) -> float:
        cpu = self._process.cpu_times()
        return (cpu.user + cpu.system) * 1000

    def memory_bytes(self) -> int:
        return self._process.memory_info().rss


@dataclass
class MonitorContext:
    """
    Per-request context passed to every hook

    Any object with the same attributes works; state must be a dict owned
    by exactly one request.
    """
    request_id: str
    provider: str
    model: str
    state: Dict[str, Any] = field(default_factory=dict)
    messages: Optional[List[Any]] = None
    options: Optional[Dict[str, Any]] = None
    session_id: Optional[str] = None
    transaction_id: Optional[str] = None


def _get(obj: Any, name: str, default: Any = None) -> Any:
    """Read a field from a mapping or an object attribute"""
    if obj is None:
        return default
    if isinstance(obj, Mapping):
        return obj.get(name, default)
    return getattr(obj, name, default)


def _to_mapping(value: Any) -> Optional[Dict[str, Any]]:
    """Best-effort conversion of a usage object to a plain dict"""
    if value is None:
        return None
    if isinstance(value, Mapping):
        return dict(value)
    if hasattr(value, "model_dump"):
        return value.model_dump()
    if hasattr(value, "__dict__"):
        return {k: v for k, v in vars(value).items() if not k.startswith("_")}
    return None


def _tool_name(tool: Any) -> Optional[str]:
    name = _get(tool, "name")
    if name is None:
        name = _get(_get(tool, "function"), "name")
    return name


def _tool_arguments(tool: Any) -> Any:
    for key in ("arguments", "args", "input"):
        value = _get(tool, key)
        if value is not None:
            return value
    return _get(_get(tool, "function"), "arguments")


def _format_stack(error: BaseException) -> str:
    return "".join(traceback.format_exception(type(error), error, error.__traceback__))


class Monitor:
    """
    Monitor - instrumentation engine for provider calls

    Usage:
        monitor = Monitor(store, capture_content=True)
        ctx = MonitorContext(request_id="req-1", provider="openai", model="gpt-4o")

        await monitor.on_request(ctx)
        try:
            result = await call_provider(...)
            await monitor.on_response(ctx, result)
        except Exception as e:
            await monitor.on_error(ctx, e)
            raise
    """

    name = "llm-monitor"

    def __init__(
        self,
        store: Any,
        capture_content: bool = False,
        scrubbing: Optional[ScrubbingConfig] = None,
        on_error: Optional[StorageErrorHandler] = None,
        timer: Optional[PlatformTimer] = None,
    ):
        """
        Initialize Monitor

        Args:
            store: Any object implementing the store contract
            capture_content: Record messages, results and tool results
            scrubbing: Scrubber configuration (PII and secrets if None)
            on_error: Called with (exception, event) when a save fails
            timer: Timing counters (psutil-backed ProcessTimer if None)
        """
        self.store = store
        self.capture_content = capture_content
        self.scrubber = ContentScrubber(scrubbing)
        self.error_handler = on_error
        self.timer = timer or ProcessTimer()

    @classmethod
    def memory(cls, **options: Any) -> "Monitor":
        """Monitor over a fresh in-memory store"""
        from llm_monitor.stores.memory import MemoryStore

        return cls(MemoryStore(), **options)

    # ------------------------------------------------------------------
    # Request lifecycle
    # ------------------------------------------------------------------

    async def on_request(self, ctx: Any) -> None:
        self._initialize_metrics(ctx)

        payload: Dict[str, Any] = {}
        if self.capture_content:
            messages = getattr(ctx, "messages", None)
            options = getattr(ctx, "options", None)
            if messages is not None:
                payload["messages"] = self.scrubber.scrub_messages(messages)
            if options is not None:
                payload["options"] = self.scrubber.scrub_object(options)

        await self._emit(ctx, EventType.REQUEST_START, payload)

    async def on_response(self, ctx: Any, result: Any) -> None:
        usage = _to_mapping(_get(result, "usage"))
        metrics = self._calculate_metrics(ctx, usage)

        result_model = _get(result, "model")
        if result_model and not getattr(ctx, "model", None):
            ctx.model = result_model

        payload: Dict[str, Any] = {}
        if self.capture_content:
            payload["result"] = self.scrubber.scrub_string(str(result))
        if usage is not None:
            payload["usage"] = usage

        await self._emit(ctx, EventType.REQUEST_END, payload, metrics)

    async def on_error(self, ctx: Any, error: BaseException) -> None:
        metrics = self._calculate_metrics(ctx)

        await self._emit(ctx, EventType.REQUEST_ERROR, {
            "error": str(error),
            "stack": _format_stack(error),
        }, metrics)

    # ------------------------------------------------------------------
    # Tool lifecycle
    # ------------------------------------------------------------------

    async def on_tool_call_start(self, ctx: Any, tool: Any) -> None:
        tool_info = self._tool_info(tool)
        arguments = _tool_arguments(tool)
        if arguments is not None:
            tool_info["args"] = self._scrub_value(arguments)

        await self._emit(ctx, EventType.TOOL_START, {"tool": tool_info})

    async def on_tool_call_end(self, ctx: Any, tool: Any, result: Any = None) -> None:
        payload: Dict[str, Any] = {"tool": self._tool_info(tool)}
        if self.capture_content and result is not None:
            payload["result"] = self._scrub_value(result)

        await self._emit(ctx, EventType.TOOL_END, payload)

    async def on_tool_call_error(self, ctx: Any, tool: Any, error: BaseException) -> None:
        await self._emit(ctx, EventType.TOOL_ERROR, {
            "tool": self._tool_info(tool),
            "error": str(error),
        })

    # ------------------------------------------------------------------
    # Payload enrichment
    # ------------------------------------------------------------------

    enrich_with_request_metadata = staticmethod(metadata.enrich_with_request_metadata)
    enrich_with_timing = staticmethod(metadata.enrich_with_timing)
    enrich_with_environment = staticmethod(metadata.enrich_with_environment)
    enrich_with_retry = staticmethod(metadata.enrich_with_retry)
    enrich_with_sampling = staticmethod(metadata.enrich_with_sampling)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _emit(
        self,
        ctx: Any,
        event_type: EventType,
        payload: Optional[Dict[str, Any]],
        metrics: Optional[Dict[str, Any]] = None,
    ) -> None:
        options = getattr(ctx, "options", None) or {}
        now = utcnow()

        event = Event(
            id=new_event_id(),
            event_type=event_type,
            request_id=ctx.request_id,
            session_id=getattr(ctx, "session_id", None) or options.get("session_id"),
            transaction_id=getattr(ctx, "transaction_id", None) or options.get("transaction_id"),
            time=now,
            created_at=now,
            provider=ctx.provider,
            model=ctx.model,
            payload=payload or {},
            **(metrics or {}),
        )

        try:
            result = self.store.save_event(event)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            self._handle_storage_error(e, event)

    def _handle_storage_error(self, error: Exception, event: Event) -> None:
        if self.error_handler is None:
            logger.error(f"Storage failure ({event.event_type.value}): {error}")
            return

        try:
            self.error_handler(error, event)
        except Exception as callback_error:
            logger.error(
                f"Storage error callback failed ({event.event_type.value}): {callback_error}; "
                f"original error: {error}"
            )

    def _initialize_metrics(self, ctx: Any) -> None:
        ctx.state[STATE_KEY] = {
            "start_time": self.timer.wall_ms(),
            "cpu_start": self.timer.cpu_ms(),
            "mem_start": self.timer.memory_bytes(),
        }

    def _calculate_metrics(self, ctx: Any, usage: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """Duration/cpu/allocation deltas; empty when on_request never ran"""
        state = (getattr(ctx, "state", None) or {}).get(STATE_KEY)
        if not state:
            return {}

        allocations = self.timer.memory_bytes() - (state.get("mem_start") or 0)

        return {
            "duration": self.timer.wall_ms() - state["start_time"],
            "cost": usage.get("cost") if usage else None,
            "cpu_time": self.timer.cpu_ms() - state["cpu_start"],
            "allocations": max(0, int(allocations)),
        }

    def _tool_info(self, tool: Any) -> Dict[str, Any]:
        return {"id": _get(tool, "id"), "name": _tool_name(tool)}

    def _scrub_value(self, value: Any) -> Any:
        if isinstance(value, str):
            return self.scrubber.scrub_string(value)
        return self.scrubber.scrub_object(value)


__all__ = [
    "STATE_KEY",
    "PlatformTimer",
    "ProcessTimer",
    "MonitorContext",
    "Monitor",
]
