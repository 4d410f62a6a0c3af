"""
Monitoring Events - shared data model for telemetry capture

Every producer (Monitor hooks, OpenTelemetry span processor) builds Event
records; every consumer (stores, aggregation, trace queries, API) reads them.

Event types:
- request.start / request.end / request.error: one logical provider call
- tool.start / tool.end / tool.error: one tool invocation within a call

Terminal events (request.end, request.error) are the only ones counted
towards statistics and trace listings.

Payload sub-keys are a soft convention, not a schema:
request, timing, retry, sampling, environment, tool, usage, otel, metadata, error
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class EventType(str, Enum):
    """Lifecycle phase recorded by an event"""
    REQUEST_START = "request.start"
    REQUEST_END = "request.end"
    REQUEST_ERROR = "request.error"
    TOOL_START = "tool.start"
    TOOL_END = "tool.end"
    TOOL_ERROR = "tool.error"

    @property
    def is_terminal(self) -> bool:
        """True for request.end and request.error"""
        return self in (EventType.REQUEST_END, EventType.REQUEST_ERROR)


class TraceStatus(str, Enum):
    """Status of a trace as shown to presentation layers"""
    SUCCESS = "success"
    ERROR = "error"
    RUNNING = "running"


TERMINAL_EVENT_TYPES = (EventType.REQUEST_END, EventType.REQUEST_ERROR)

# Legacy wire names accepted by Event.from_dict
_CAMEL_CASE_KEYS = {
    "eventType": "event_type",
    "requestId": "request_id",
    "sessionId": "session_id",
    "transactionId": "transaction_id",
    "cpuTime": "cpu_time",
    "createdAt": "created_at",
}


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime"""
    return datetime.now(timezone.utc)


def to_epoch_ms(value: datetime) -> float:
    """Milliseconds since the epoch; naive datetimes are read as UTC"""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp() * 1000


def parse_datetime(value: Any) -> datetime:
    """Parse an ISO-8601 string, epoch milliseconds or datetime"""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    if isinstance(value, str):
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    raise ValueError(f"Unsupported datetime value: {value!r}")


def new_event_id() -> str:
    """Generate a unique event identifier"""
    return str(uuid.uuid4())


@dataclass(frozen=True)
class Event:
    """
    Event - one immutable record of a lifecycle phase

    duration/cost/cpu_time/allocations are only set on terminal events.
    A missing optional field means "unknown", never zero.
    """
    id: str
    event_type: EventType
    request_id: str
    time: datetime
    provider: str
    model: str
    payload: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utcnow)
    session_id: Optional[str] = None
    transaction_id: Optional[str] = None
    duration: Optional[float] = None
    cost: Optional[float] = None
    cpu_time: Optional[float] = None
    allocations: Optional[int] = None

    def __post_init__(self):
        """Coerce string event types and keep payload non-null"""
        if isinstance(self.event_type, str) and not isinstance(self.event_type, EventType):
            object.__setattr__(self, "event_type", EventType(self.event_type))
        if self.payload is None:
            object.__setattr__(self, "payload", {})

    @property
    def is_terminal(self) -> bool:
        return self.event_type.is_terminal

    @property
    def timestamp_ms(self) -> float:
        return to_epoch_ms(self.time)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        result = {
            "id": self.id,
            "event_type": self.event_type.value,
            "request_id": self.request_id,
            "session_id": self.session_id,
            "transaction_id": self.transaction_id,
            "time": self.time.isoformat(),
            "duration": self.duration,
            "cost": self.cost,
            "cpu_time": self.cpu_time,
            "allocations": self.allocations,
            "payload": self.payload,
            "created_at": self.created_at.isoformat(),
            "provider": self.provider,
            "model": self.model,
        }
        return {key: value for key, value in result.items() if value is not None}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Event":
        """Rebuild an event from to_dict() output or the camelCase wire format"""
        normalized = {_CAMEL_CASE_KEYS.get(key, key): value for key, value in data.items()}
        return cls(
            id=normalized["id"],
            event_type=EventType(normalized["event_type"]),
            request_id=normalized["request_id"],
            time=parse_datetime(normalized["time"]),
            provider=normalized.get("provider") or "unknown",
            model=normalized.get("model") or "unknown",
            payload=normalized.get("payload") or {},
            created_at=parse_datetime(normalized.get("created_at") or normalized["time"]),
            session_id=normalized.get("session_id"),
            transaction_id=normalized.get("transaction_id"),
            duration=normalized.get("duration"),
            cost=normalized.get("cost"),
            cpu_time=normalized.get("cpu_time"),
            allocations=normalized.get("allocations"),
        )


@dataclass
class TraceSummary:
    """
    TraceSummary - read-only projection of a terminal event

    Optional fields are left as None when the source event lacks them and
    are omitted from to_dict() output.
    """
    request_id: str
    provider: str
    model: str
    start_time: datetime
    status: TraceStatus
    end_time: Optional[datetime] = None
    duration: Optional[float] = None
    cost: Optional[float] = None
    cpu_time: Optional[float] = None
    allocations: Optional[int] = None
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, dropping absent optional fields"""
        result = {
            "request_id": self.request_id,
            "provider": self.provider,
            "model": self.model,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "duration": self.duration,
            "cost": self.cost,
            "cpu_time": self.cpu_time,
            "allocations": self.allocations,
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "status": self.status.value,
        }
        return {key: value for key, value in result.items() if value is not None}


@dataclass
class TimeSeriesPoint:
    """Single (bucket timestamp, value) sample; timestamp in epoch ms"""
    timestamp: int
    value: float

    def to_dict(self) -> Dict[str, Any]:
        return {"timestamp": self.timestamp, "value": self.value}


@dataclass
class TimeSeries:
    """Bucketed series per metric, ascending by timestamp"""
    requests: List[TimeSeriesPoint] = field(default_factory=list)
    cost: List[TimeSeriesPoint] = field(default_factory=list)
    duration: List[TimeSeriesPoint] = field(default_factory=list)
    errors: List[TimeSeriesPoint] = field(default_factory=list)
    prompt_tokens: List[TimeSeriesPoint] = field(default_factory=list)
    completion_tokens: List[TimeSeriesPoint] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "requests": [p.to_dict() for p in self.requests],
            "cost": [p.to_dict() for p in self.cost],
            "duration": [p.to_dict() for p in self.duration],
            "errors": [p.to_dict() for p in self.errors],
            "prompt_tokens": [p.to_dict() for p in self.prompt_tokens],
            "completion_tokens": [p.to_dict() for p in self.completion_tokens],
        }


@dataclass
class ProviderStats:
    """Rollup for one (provider, model) pair"""
    provider: str
    model: str
    requests: int = 0
    cost: float = 0.0
    avg_duration: float = 0.0
    error_count: int = 0
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    cost_per_1k_tokens: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider": self.provider,
            "model": self.model,
            "requests": self.requests,
            "cost": self.cost,
            "avg_duration": self.avg_duration,
            "error_count": self.error_count,
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
            "cost_per_1k_tokens": self.cost_per_1k_tokens,
        }


@dataclass
class MonitoringStats:
    """Overview statistics; error_rate is a percentage (0-100)"""
    total_requests: int = 0
    total_cost: float = 0.0
    avg_duration: float = 0.0
    error_rate: float = 0.0
    total_prompt_tokens: int = 0
    total_completion_tokens: int = 0
    avg_tokens_per_request: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_requests": self.total_requests,
            "total_cost": self.total_cost,
            "avg_duration": self.avg_duration,
            "error_rate": self.error_rate,
            "total_prompt_tokens": self.total_prompt_tokens,
            "total_completion_tokens": self.total_completion_tokens,
            "avg_tokens_per_request": self.avg_tokens_per_request,
        }


@dataclass
class MetricsData:
    """Dashboard metrics: totals, per-provider rollups and time series"""
    totals: MonitoringStats
    by_provider: List[ProviderStats] = field(default_factory=list)
    time_series: TimeSeries = field(default_factory=TimeSeries)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totals": self.totals.to_dict(),
            "by_provider": [stats.to_dict() for stats in self.by_provider],
            "time_series": self.time_series.to_dict(),
        }


@dataclass
class PaginatedTraces:
    """One page of trace summaries; total is the unpaginated match count"""
    items: List[TraceSummary]
    total: int
    limit: int
    offset: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": [item.to_dict() for item in self.items],
            "total": self.total,
            "limit": self.limit,
            "offset": self.offset,
        }


@dataclass
class TraceFilters:
    """
    Trace listing criteria, AND-combined

    Text filters are case-insensitive substring matches. min_cost and
    min_latency are inclusive lower bounds. status "success" selects
    request.end, any other value selects request.error.
    """
    request_id: Optional[str] = None
    query: Optional[str] = None
    model: Optional[str] = None
    provider: Optional[str] = None
    min_cost: Optional[float] = None
    min_latency: Optional[float] = None
    status: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None


__all__ = [
    "EventType",
    "TraceStatus",
    "TERMINAL_EVENT_TYPES",
    "Event",
    "TraceSummary",
    "TimeSeriesPoint",
    "TimeSeries",
    "ProviderStats",
    "MonitoringStats",
    "MetricsData",
    "PaginatedTraces",
    "TraceFilters",
    "utcnow",
    "to_epoch_ms",
    "parse_datetime",
    "new_event_id",
]
