"""
Store contract - where monitoring events are persisted and queried

Required operations:
- save_event(event)
- get_stats(start_time, end_time)

Optional operations, advertised by capability flags:
- get_metrics(start_time, end_time)   supports_metrics
- list_traces(filters, limit, offset)  supports_traces
- get_events(request_id)               supports_events

Callers check the flag before calling an optional operation; the default
implementations raise NotImplementedError.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from llm_monitor.monitoring.aggregation import (
    DEFAULT_BUCKET_SIZE_MS,
    TimeSeriesBuilder,
    filter_by_time,
    summarize,
)
from llm_monitor.monitoring.events import (
    Event,
    MetricsData,
    MonitoringStats,
    PaginatedTraces,
    TraceFilters,
    utcnow,
)
from llm_monitor.monitoring.trace_filter import DEFAULT_PAGE_LIMIT, query_traces

DEFAULT_METRICS_WINDOW = timedelta(hours=24)


class MonitoringStore(ABC):
    """Abstract base for event stores"""

    supports_metrics: bool = False
    supports_traces: bool = False
    supports_events: bool = False

    @abstractmethod
    async def save_event(self, event: Event) -> None:
        """Persist one event"""

    @abstractmethod
    async def get_stats(
        self,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
    ) -> MonitoringStats:
        """Overview statistics over terminal events in the time range"""

    async def get_metrics(
        self,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
    ) -> MetricsData:
        raise NotImplementedError(f"{type(self).__name__} does not support metrics")

    async def list_traces(
        self,
        filters: Optional[TraceFilters] = None,
        limit: int = DEFAULT_PAGE_LIMIT,
        offset: int = 0,
    ) -> PaginatedTraces:
        raise NotImplementedError(f"{type(self).__name__} does not support trace listing")

    async def get_events(self, request_id: str) -> List[Event]:
        raise NotImplementedError(f"{type(self).__name__} does not support event lookup")


class EventLogStore(MonitoringStore):
    """
    Base for stores that hold raw events and aggregate in-process

    Subclasses implement save_event and _load_events; every query is
    answered by the aggregation engine and trace filter.
    """

    supports_metrics = True
    supports_traces = True
    supports_events = True

    def __init__(self, bucket_size_ms: int = DEFAULT_BUCKET_SIZE_MS):
        self.builder = TimeSeriesBuilder(bucket_size_ms)

    @abstractmethod
    async def _load_events(
        self,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        terminal_only: bool = False,
    ) -> Iterable[Event]:
        """Events in the time range; terminal_only is a hint, not a guarantee"""

    async def get_stats(
        self,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
    ) -> MonitoringStats:
        events = await self._load_events(start_time, end_time, terminal_only=True)
        return summarize(filter_by_time(events, start_time, end_time))

    async def get_metrics(
        self,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
    ) -> MetricsData:
        """Totals, per-provider rollups and time series; defaults to the last 24 hours"""
        if start_time is None:
            start_time = utcnow() - DEFAULT_METRICS_WINDOW

        events = filter_by_time(
            await self._load_events(start_time, end_time, terminal_only=True),
            start_time,
            end_time,
        )
        return MetricsData(
            totals=summarize(events),
            by_provider=self.builder.build_provider_stats(events),
            time_series=self.builder.build(events),
        )

    async def list_traces(
        self,
        filters: Optional[TraceFilters] = None,
        limit: int = DEFAULT_PAGE_LIMIT,
        offset: int = 0,
    ) -> PaginatedTraces:
        start_time = filters.start_time if filters else None
        end_time = filters.end_time if filters else None
        events = await self._load_events(start_time, end_time, terminal_only=True)
        return query_traces(events, filters, limit=limit, offset=offset)

    async def get_events(self, request_id: str) -> List[Event]:
        """All events of one request, oldest first"""
        events = await self._load_events()
        matched = [e for e in events if e.request_id == request_id]
        return sorted(matched, key=lambda e: e.timestamp_ms)


__all__ = [
    "DEFAULT_METRICS_WINDOW",
    "MonitoringStore",
    "EventLogStore",
]
