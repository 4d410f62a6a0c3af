"""
llm-monitor - telemetry capture and aggregation for LLM provider calls

Components:
- monitoring: event model, scrubber, aggregation, trace queries, Monitor
- otel: OpenTelemetry span processor
- stores: memory, JSON lines and SQLite stores
- api: FastAPI dashboard query routes
- config: YAML/env configuration
"""

from llm_monitor.exceptions import MonitorError, StoreConfigurationError
from llm_monitor.monitoring import (
    ContentScrubber,
    Event,
    EventType,
    Monitor,
    MonitorContext,
    ScrubbingConfig,
    TimeSeriesBuilder,
    TraceFilters,
)
from llm_monitor.stores import FileStore, MemoryStore, MonitoringStore, SQLiteStore, create_store
from llm_monitor.factory import create_monitor, create_otel_processor

__version__ = "0.1.0"

__all__ = [
    "MonitorError",
    "StoreConfigurationError",
    "ContentScrubber",
    "Event",
    "EventType",
    "Monitor",
    "MonitorContext",
    "ScrubbingConfig",
    "TimeSeriesBuilder",
    "TraceFilters",
    "FileStore",
    "MemoryStore",
    "MonitoringStore",
    "SQLiteStore",
    "create_store",
    "create_monitor",
    "create_otel_processor",
]
