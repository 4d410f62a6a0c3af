"""
Factories - build monitors and span processors from configuration
"""

from typing import Any, Optional

from llm_monitor.config import MonitorConfig, get_config
from llm_monitor.monitoring.monitor import Monitor
from llm_monitor.otel.processor import MonitorSpanProcessor, create_span_processor
from llm_monitor.stores import create_store


def create_monitor(config: Optional[MonitorConfig] = None, store: Any = None, **options: Any) -> Monitor:
    """
    Create a Monitor from configuration

    Args:
        config: Configuration (global configuration if None)
        store: Existing store; built from config.store when None
        **options: Monitor keyword overrides (on_error, timer, ...)

    Returns:
        Configured Monitor
    """
    config = config or get_config()
    if store is None:
        store = create_store(config.store, bucket_size_ms=config.aggregation.bucket_size_ms)

    options.setdefault("capture_content", config.capture_content)
    options.setdefault("scrubbing", config.scrubbing.to_scrubbing_config())
    return Monitor(store, **options)


def create_otel_processor(
    store: Any = None,
    config: Optional[MonitorConfig] = None,
    **options: Any,
) -> MonitorSpanProcessor:
    """Create a span processor from configuration, building the store if needed"""
    config = config or get_config()
    if store is None:
        store = create_store(config.store, bucket_size_ms=config.aggregation.bucket_size_ms)
    return create_span_processor(store, config.otel, **options)


__all__ = ["create_monitor", "create_otel_processor"]
