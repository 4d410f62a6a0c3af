"""
Trace Filter - filtering, ordering and pagination of terminal events

Canonical query path:
    filter_traces -> sort_by_time_desc -> paginate -> event_to_trace_summary
"""

from datetime import timedelta
from typing import Callable, Iterable, List, Optional, Sequence, TypeVar

from llm_monitor.monitoring.aggregation import extract_tokens
from llm_monitor.monitoring.events import (
    Event,
    EventType,
    PaginatedTraces,
    TraceFilters,
    TraceStatus,
    TraceSummary,
    to_epoch_ms,
)

DEFAULT_PAGE_LIMIT = 50

FilterPredicate = Callable[[Event], bool]
T = TypeVar("T")


def _contains(term: str) -> Callable[[str], bool]:
    needle = term.lower()
    return lambda value: needle in (value or "").lower()


def build_filter_predicates(filters: TraceFilters) -> List[FilterPredicate]:
    """One independent predicate per active filter"""
    predicates: List[FilterPredicate] = []

    if filters.request_id:
        match = _contains(filters.request_id)
        predicates.append(lambda e: match(e.request_id))

    if filters.query:
        match_query = _contains(filters.query)
        predicates.append(
            lambda e: match_query(e.request_id) or match_query(e.model) or match_query(e.provider)
        )

    if filters.model:
        match_model = _contains(filters.model)
        predicates.append(lambda e: match_model(e.model))

    if filters.provider:
        match_provider = _contains(filters.provider)
        predicates.append(lambda e: match_provider(e.provider))

    if filters.min_cost is not None:
        min_cost = filters.min_cost
        predicates.append(lambda e: (e.cost or 0) >= min_cost)

    if filters.min_latency is not None:
        min_latency = filters.min_latency
        predicates.append(lambda e: (e.duration or 0) >= min_latency)

    if filters.status:
        wanted = (
            EventType.REQUEST_END
            if filters.status.lower() == TraceStatus.SUCCESS.value
            else EventType.REQUEST_ERROR
        )
        predicates.append(lambda e: e.event_type == wanted)

    if filters.start_time:
        start_ms = to_epoch_ms(filters.start_time)
        predicates.append(lambda e: e.timestamp_ms >= start_ms)

    if filters.end_time:
        end_ms = to_epoch_ms(filters.end_time)
        predicates.append(lambda e: e.timestamp_ms <= end_ms)

    return predicates


def filter_traces(events: Iterable[Event], filters: Optional[TraceFilters] = None) -> List[Event]:
    """
    Filter terminal events by the given criteria (AND logic)

    Args:
        events: Events to filter
        filters: Criteria; None or an empty TraceFilters keeps every terminal event

    Returns:
        Matching request.end / request.error events
    """
    terminal = [e for e in events if e.is_terminal]
    predicates = build_filter_predicates(filters or TraceFilters())

    if not predicates:
        return terminal

    return [e for e in terminal if all(predicate(e) for predicate in predicates)]


def sort_by_time_desc(events: Iterable[Event]) -> List[Event]:
    """Most recent first; stable and non-mutating"""
    return sorted(events, key=lambda e: e.timestamp_ms, reverse=True)


def paginate(items: Sequence[T], limit: int, offset: int) -> List[T]:
    """Contiguous slice items[offset:offset + limit]; negative bounds count as 0"""
    offset = max(offset, 0)
    limit = max(limit, 0)
    return list(items[offset:offset + limit])


def event_to_trace_summary(event: Event) -> TraceSummary:
    """
    Project a terminal event to a trace summary

    start_time is derived as end time minus duration (0 when unknown).
    """
    tokens = extract_tokens(event)
    summary = TraceSummary(
        request_id=event.request_id,
        provider=event.provider,
        model=event.model,
        start_time=event.time - timedelta(milliseconds=event.duration or 0),
        end_time=event.time,
        status=(
            TraceStatus.SUCCESS
            if event.event_type == EventType.REQUEST_END
            else TraceStatus.ERROR
        ),
        duration=event.duration,
        cost=event.cost,
        cpu_time=event.cpu_time,
        allocations=event.allocations,
    )

    if tokens.prompt > 0:
        summary.prompt_tokens = tokens.prompt
    if tokens.completion > 0:
        summary.completion_tokens = tokens.completion

    return summary


def query_traces(
    events: Iterable[Event],
    filters: Optional[TraceFilters] = None,
    limit: int = DEFAULT_PAGE_LIMIT,
    offset: int = 0,
) -> PaginatedTraces:
    """Filter, sort and paginate events into a page of trace summaries"""
    matched = sort_by_time_desc(filter_traces(events, filters))
    items = [event_to_trace_summary(e) for e in paginate(matched, limit, offset)]
    return PaginatedTraces(items=items, total=len(matched), limit=limit, offset=offset)


__all__ = [
    "DEFAULT_PAGE_LIMIT",
    "build_filter_predicates",
    "filter_traces",
    "sort_by_time_desc",
    "paginate",
    "event_to_trace_summary",
    "query_traces",
]
