"""
Monitoring core - event model, scrubbing, aggregation and instrumentation

Components:
- events: Event record and derived value types
- scrubber: PII/secret redaction
- aggregation: time series and per-provider rollups
- trace_filter: trace listing queries
- monitor: lifecycle hooks emitting events to a store
- metadata: payload enrichment helpers
- pricing: token-based cost estimation
"""

from llm_monitor.monitoring.events import (
    TERMINAL_EVENT_TYPES,
    Event,
    EventType,
    MetricsData,
    MonitoringStats,
    PaginatedTraces,
    ProviderStats,
    TimeSeries,
    TimeSeriesPoint,
    TraceFilters,
    TraceStatus,
    TraceSummary,
)
from llm_monitor.monitoring.scrubber import (
    ContentScrubber,
    CustomPattern,
    ScrubbingConfig,
    create_scrubber,
)
from llm_monitor.monitoring.aggregation import (
    TimeSeriesBuilder,
    TokenCounts,
    extract_tokens,
    filter_by_time,
    summarize,
)
from llm_monitor.monitoring.trace_filter import (
    event_to_trace_summary,
    filter_traces,
    paginate,
    query_traces,
    sort_by_time_desc,
)
from llm_monitor.monitoring.metadata import (
    create_enhanced_payload,
    enrich_with_environment,
    enrich_with_request_metadata,
    enrich_with_retry,
    enrich_with_sampling,
    enrich_with_timing,
)
from llm_monitor.monitoring.monitor import Monitor, MonitorContext, PlatformTimer, ProcessTimer
from llm_monitor.monitoring.pricing import MODEL_PRICING, estimate_cost

__all__ = [
    # Events
    "TERMINAL_EVENT_TYPES",
    "Event",
    "EventType",
    "MetricsData",
    "MonitoringStats",
    "PaginatedTraces",
    "ProviderStats",
    "TimeSeries",
    "TimeSeriesPoint",
    "TraceFilters",
    "TraceStatus",
    "TraceSummary",
    # Scrubbing
    "ContentScrubber",
    "CustomPattern",
    "ScrubbingConfig",
    "create_scrubber",
    # Aggregation
    "TimeSeriesBuilder",
    "TokenCounts",
    "extract_tokens",
    "filter_by_time",
    "summarize",
    # Trace queries
    "event_to_trace_summary",
    "filter_traces",
    "paginate",
    "query_traces",
    "sort_by_time_desc",
    # Metadata
    "create_enhanced_payload",
    "enrich_with_environment",
    "enrich_with_request_metadata",
    "enrich_with_retry",
    "enrich_with_sampling",
    "enrich_with_timing",
    # Instrumentation
    "Monitor",
    "MonitorContext",
    "PlatformTimer",
    "ProcessTimer",
    # Pricing
    "MODEL_PRICING",
    "estimate_cost",
]
