"""
OpenTelemetry bridge - turns AI spans into monitoring events

Usage:
    from opentelemetry.sdk.trace import TracerProvider
    from llm_monitor.otel import MonitorSpanProcessor

    provider = TracerProvider()
    provider.add_span_processor(MonitorSpanProcessor(store))
"""

from llm_monitor.otel.attributes import (
    AISpanAttributes,
    calculate_duration_ms,
    extract_ai_attributes,
    extract_model,
    extract_provider,
    extract_session_id,
    generate_request_id,
    get_operation_type,
    is_ai_span,
    is_top_level_ai_span,
    map_status_to_event_type,
    normalize_model_name,
    normalize_provider_name,
    ns_to_datetime,
    parse_json_attribute,
)
from llm_monitor.otel.processor import MonitorSpanProcessor, create_span_processor

__all__ = [
    "AISpanAttributes",
    "MonitorSpanProcessor",
    "create_span_processor",
    "calculate_duration_ms",
    "extract_ai_attributes",
    "extract_model",
    "extract_provider",
    "extract_session_id",
    "generate_request_id",
    "get_operation_type",
    "is_ai_span",
    "is_top_level_ai_span",
    "map_status_to_event_type",
    "normalize_model_name",
    "normalize_provider_name",
    "ns_to_datetime",
    "parse_json_attribute",
]
