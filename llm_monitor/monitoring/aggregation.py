"""
Aggregation - turns a flat event log into dashboard metrics

Components:
- extract_tokens: usage counter extraction shared by every view
- TimeSeriesBuilder: bucketed time series and per-provider rollups
- summarize: overview statistics used by in-process stores

Only terminal events (request.end, request.error) are aggregated.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, NamedTuple, Optional, Tuple

from llm_monitor.monitoring.events import (
    Event,
    EventType,
    MonitoringStats,
    ProviderStats,
    TimeSeries,
    TimeSeriesPoint,
    to_epoch_ms,
)

DEFAULT_BUCKET_SIZE_MS = 5 * 60 * 1000

PROMPT_TOKEN_KEYS = ("promptTokens", "prompt_tokens", "input_tokens")
COMPLETION_TOKEN_KEYS = ("completionTokens", "completion_tokens", "output_tokens")


class TokenCounts(NamedTuple):
    prompt: int
    completion: int

    @property
    def total(self) -> int:
        return self.prompt + self.completion


def _first_count(source: Mapping[str, Any], keys: Tuple[str, ...]) -> int:
    for key in keys:
        value = source.get(key)
        if value:
            return value
    return 0


def extract_tokens(event: Event) -> TokenCounts:
    """
    Extract prompt/completion token counts from an event payload

    Reads payload["usage"] when present, otherwise the payload itself.
    Naming conventions are checked in order: camelCase (promptTokens),
    snake_case (prompt_tokens), input/output (input_tokens).
    """
    payload = event.payload or {}
    usage = payload.get("usage")
    source = usage if usage and isinstance(usage, Mapping) else payload

    return TokenCounts(
        prompt=_first_count(source, PROMPT_TOKEN_KEYS),
        completion=_first_count(source, COMPLETION_TOKEN_KEYS),
    )


def filter_by_time(
    events: Iterable[Event],
    start_time: Optional[datetime] = None,
    end_time: Optional[datetime] = None,
) -> List[Event]:
    """Keep events whose time falls within the inclusive bounds"""
    start_ms = to_epoch_ms(start_time) if start_time else None
    end_ms = to_epoch_ms(end_time) if end_time else None

    result = []
    for event in events:
        ts = event.timestamp_ms
        if start_ms is not None and ts < start_ms:
            continue
        if end_ms is not None and ts > end_ms:
            continue
        result.append(event)
    return result


def summarize(events: Iterable[Event]) -> MonitoringStats:
    """
    Overview statistics over terminal events

    Cost, average duration and token totals are taken over request.end
    events; error_rate is the percentage of terminal events that failed.
    """
    request_ends = []
    error_count = 0
    for event in events:
        if event.event_type == EventType.REQUEST_END:
            request_ends.append(event)
        elif event.event_type == EventType.REQUEST_ERROR:
            error_count += 1

    total_requests = len(request_ends) + error_count
    stats = MonitoringStats(total_requests=total_requests)
    if total_requests == 0:
        return stats

    stats.total_cost = sum(e.cost or 0 for e in request_ends)
    stats.avg_duration = sum(e.duration or 0 for e in request_ends) / max(len(request_ends), 1)
    stats.error_rate = error_count / total_requests * 100

    for event in request_ends:
        tokens = extract_tokens(event)
        stats.total_prompt_tokens += tokens.prompt
        stats.total_completion_tokens += tokens.completion

    stats.avg_tokens_per_request = (
        stats.total_prompt_tokens + stats.total_completion_tokens
    ) / total_requests
    return stats


@dataclass
class _Bucket:
    requests: int = 0
    cost: float = 0.0
    duration: float = 0.0
    errors: int = 0
    count: int = 0
    prompt_tokens: int = 0
    completion_tokens: int = 0


@dataclass
class _ProviderAccumulator:
    stats: ProviderStats
    total_duration: float = 0.0


class TimeSeriesBuilder:
    """
    TimeSeriesBuilder - buckets terminal events into fixed-width intervals

    Usage:
        builder = TimeSeriesBuilder(bucket_size_ms=60_000)
        series = builder.build(events)
        by_provider = builder.build_provider_stats(events)
    """

    def __init__(self, bucket_size_ms: int = DEFAULT_BUCKET_SIZE_MS):
        if bucket_size_ms <= 0:
            raise ValueError("bucket_size_ms must be positive")
        self.bucket_size_ms = bucket_size_ms

    def get_bucket(self, event: Event) -> int:
        """Start of the bucket containing the event, in epoch ms"""
        timestamp = int(event.timestamp_ms)
        return (timestamp // self.bucket_size_ms) * self.bucket_size_ms

    def build(self, events: Iterable[Event]) -> TimeSeries:
        """
        Build sparse time series; empty buckets are omitted

        The duration series is the mean duration per bucket, every other
        series is a sum or a count.
        """
        buckets: Dict[int, _Bucket] = {}

        for event in events:
            if not event.is_terminal:
                continue

            data = buckets.setdefault(self.get_bucket(event), _Bucket())
            tokens = extract_tokens(event)

            data.requests += 1
            data.cost += event.cost or 0
            data.duration += event.duration or 0
            data.count += 1
            data.prompt_tokens += tokens.prompt
            data.completion_tokens += tokens.completion
            if event.event_type == EventType.REQUEST_ERROR:
                data.errors += 1

        return self._to_time_series(buckets)

    def build_provider_stats(self, events: Iterable[Event]) -> List[ProviderStats]:
        """Roll terminal events up per (provider, model); order is unspecified"""
        groups: Dict[Tuple[str, str], _ProviderAccumulator] = {}

        for event in events:
            if not event.is_terminal:
                continue

            key = (event.provider, event.model)
            if key not in groups:
                groups[key] = _ProviderAccumulator(
                    stats=ProviderStats(provider=event.provider, model=event.model)
                )

            acc = groups[key]
            stats = acc.stats
            tokens = extract_tokens(event)

            stats.requests += 1
            stats.cost += event.cost or 0
            acc.total_duration += event.duration or 0
            stats.prompt_tokens += tokens.prompt
            stats.completion_tokens += tokens.completion
            stats.total_tokens += tokens.total
            if event.event_type == EventType.REQUEST_ERROR:
                stats.error_count += 1
            stats.avg_duration = acc.total_duration / stats.requests

        result = []
        for acc in groups.values():
            stats = acc.stats
            stats.cost_per_1k_tokens = (
                stats.cost / stats.total_tokens * 1000 if stats.total_tokens > 0 else 0.0
            )
            result.append(stats)
        return result

    def _to_time_series(self, buckets: Dict[int, _Bucket]) -> TimeSeries:
        ordered = sorted(buckets.items())
        return TimeSeries(
            requests=[TimeSeriesPoint(ts, d.requests) for ts, d in ordered],
            cost=[TimeSeriesPoint(ts, d.cost) for ts, d in ordered],
            duration=[
                TimeSeriesPoint(ts, d.duration / d.count if d.count > 0 else 0)
                for ts, d in ordered
            ],
            errors=[TimeSeriesPoint(ts, d.errors) for ts, d in ordered],
            prompt_tokens=[TimeSeriesPoint(ts, d.prompt_tokens) for ts, d in ordered],
            completion_tokens=[TimeSeriesPoint(ts, d.completion_tokens) for ts, d in ordered],
        )


__all__ = [
    "DEFAULT_BUCKET_SIZE_MS",
    "TokenCounts",
    "extract_tokens",
    "filter_by_time",
    "summarize",
    "TimeSeriesBuilder",
]
