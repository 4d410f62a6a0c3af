"""
Span attribute helpers - map OpenTelemetry spans to monitoring events

Two attribute conventions are recognized:
- Vercel AI SDK (ai.*), which takes priority
- OpenTelemetry GenAI semantic conventions (gen_ai.*)
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from opentelemetry.sdk.trace import ReadableSpan
from opentelemetry.trace import StatusCode

from llm_monitor.monitoring.events import EventType

AI_OPERATION_PREFIXES = (
    "ai.generateText",
    "ai.streamText",
    "ai.generateObject",
    "ai.streamObject",
    "ai.embed",
    "ai.embedMany",
    "ai.toolCall",
    "gen_ai.",
)

AI_SENTINEL_ATTRIBUTES = ("ai.operationId", "gen_ai.system", "gen_ai.request.model")

SUB_OPERATION_MARKERS = (".doGenerate", ".doStream", ".doEmbed")

TOOL_CALL_OPERATION = "ai.toolCall"

METADATA_PREFIX = "ai.telemetry.metadata."

# Checked in order against the model id when no provider attribute is set
_PROVIDER_HINTS = (
    (("gpt-",), ("openai",), "openai"),
    (("claude-",), ("anthropic",), "anthropic"),
    (("gemini-",), ("google",), "google"),
    (("deepseek-",), (), "deepseek"),
    ((), ("llama", "mistral"), "meta"),
)

UNKNOWN = "unknown"


@dataclass
class AISpanAttributes:
    """Normalized AI attributes read from one span"""
    operation_id: Optional[str] = None
    function_id: Optional[str] = None

    model_id: Optional[str] = None
    model_provider: Optional[str] = None

    prompt: Optional[str] = None
    prompt_messages: Optional[str] = None
    prompt_tools: Optional[str] = None

    response_text: Optional[str] = None
    response_object: Optional[str] = None
    response_tool_calls: Optional[str] = None
    response_finish_reason: Optional[str] = None
    response_id: Optional[str] = None
    response_model: Optional[str] = None

    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None

    ms_to_first_chunk: Optional[float] = None
    ms_to_finish: Optional[float] = None
    avg_completion_tokens_per_second: Optional[float] = None

    tool_call_name: Optional[str] = None
    tool_call_id: Optional[str] = None
    tool_call_args: Optional[str] = None
    tool_call_result: Optional[str] = None

    gen_ai_system: Optional[str] = None
    gen_ai_request_model: Optional[str] = None
    gen_ai_response_model: Optional[str] = None
    gen_ai_input_tokens: Optional[int] = None
    gen_ai_output_tokens: Optional[int] = None

    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def input_tokens(self) -> int:
        """Prompt tokens, ai.usage.* first, then gen_ai.usage.*"""
        if self.prompt_tokens is not None:
            return self.prompt_tokens
        return self.gen_ai_input_tokens or 0

    @property
    def output_tokens(self) -> int:
        """Completion tokens, ai.usage.* first, then gen_ai.usage.*"""
        if self.completion_tokens is not None:
            return self.completion_tokens
        return self.gen_ai_output_tokens or 0


def _attributes(span: ReadableSpan) -> Mapping[str, Any]:
    return span.attributes or {}


def _get_string(attrs: Mapping[str, Any], key: str) -> Optional[str]:
    value = attrs.get(key)
    return value if isinstance(value, str) else None


def _get_number(attrs: Mapping[str, Any], key: str) -> Optional[float]:
    value = attrs.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def is_ai_span(span: ReadableSpan) -> bool:
    """Name starts with a known AI prefix or a sentinel attribute is set"""
    if span.name.startswith(AI_OPERATION_PREFIXES):
        return True
    attrs = _attributes(span)
    return any(attrs.get(key) for key in AI_SENTINEL_ATTRIBUTES)


def is_top_level_ai_span(span: ReadableSpan) -> bool:
    """False for .doGenerate/.doStream/.doEmbed children; tool calls are always top level"""
    name = span.name
    is_sub_operation = any(marker in name for marker in SUB_OPERATION_MARKERS)
    is_tool_call = (
        _attributes(span).get("ai.operationId") == TOOL_CALL_OPERATION
        or name == TOOL_CALL_OPERATION
    )
    return not is_sub_operation or is_tool_call


def get_operation_type(span: ReadableSpan) -> Optional[str]:
    """ai.operationId, else the span name's first word when it has a known prefix"""
    operation_id = _get_string(_attributes(span), "ai.operationId")
    if operation_id:
        return operation_id

    if span.name.startswith(AI_OPERATION_PREFIXES):
        return span.name.split(" ")[0]

    return None


def extract_ai_attributes(span: ReadableSpan) -> AISpanAttributes:
    """Read every recognized AI attribute from a span"""
    attrs = _attributes(span)

    metadata = {
        key[len(METADATA_PREFIX):]: value
        for key, value in attrs.items()
        if key.startswith(METADATA_PREFIX)
    }

    return AISpanAttributes(
        operation_id=_get_string(attrs, "ai.operationId"),
        function_id=_get_string(attrs, "ai.telemetry.functionId") or _get_string(attrs, "resource.name"),
        model_id=_get_string(attrs, "ai.model.id"),
        model_provider=_get_string(attrs, "ai.model.provider"),
        prompt=_get_string(attrs, "ai.prompt"),
        prompt_messages=_get_string(attrs, "ai.prompt.messages"),
        prompt_tools=_get_string(attrs, "ai.prompt.tools"),
        response_text=_get_string(attrs, "ai.response.text"),
        response_object=_get_string(attrs, "ai.response.object"),
        response_tool_calls=_get_string(attrs, "ai.response.toolCalls"),
        response_finish_reason=_get_string(attrs, "ai.response.finishReason"),
        response_id=_get_string(attrs, "ai.response.id"),
        response_model=_get_string(attrs, "ai.response.model"),
        prompt_tokens=_get_number(attrs, "ai.usage.promptTokens"),
        completion_tokens=_get_number(attrs, "ai.usage.completionTokens"),
        ms_to_first_chunk=_get_number(attrs, "ai.response.msToFirstChunk"),
        ms_to_finish=_get_number(attrs, "ai.response.msToFinish"),
        avg_completion_tokens_per_second=_get_number(attrs, "ai.response.avgCompletionTokensPerSecond"),
        tool_call_name=_get_string(attrs, "ai.toolCall.name"),
        tool_call_id=_get_string(attrs, "ai.toolCall.id"),
        tool_call_args=_get_string(attrs, "ai.toolCall.args"),
        tool_call_result=_get_string(attrs, "ai.toolCall.result"),
        gen_ai_system=_get_string(attrs, "gen_ai.system"),
        gen_ai_request_model=_get_string(attrs, "gen_ai.request.model"),
        gen_ai_response_model=_get_string(attrs, "gen_ai.response.model"),
        gen_ai_input_tokens=_get_number(attrs, "gen_ai.usage.input_tokens"),
        gen_ai_output_tokens=_get_number(attrs, "gen_ai.usage.output_tokens"),
        metadata=metadata,
    )


def normalize_provider_name(provider: str) -> str:
    """Strip operation suffixes: "openai.responses" -> "openai" """
    if "." in provider:
        return provider.split(".")[0] or provider
    return provider


def normalize_model_name(model: str) -> str:
    """Strip path prefixes: "openai.responses/gpt-4o-mini" -> "gpt-4o-mini" """
    if "/" in model:
        return model.split("/")[-1] or model
    return model


def extract_provider(attrs: AISpanAttributes) -> str:
    """
    Provider from ai.model.provider or gen_ai.system, else inferred from
    the model id; "unknown" when nothing matches
    """
    if attrs.model_provider:
        return normalize_provider_name(attrs.model_provider)

    if attrs.gen_ai_system:
        return normalize_provider_name(attrs.gen_ai_system)

    model_id = attrs.model_id or attrs.gen_ai_request_model or ""
    for prefixes, fragments, provider in _PROVIDER_HINTS:
        if model_id.startswith(prefixes) or any(f in model_id for f in fragments):
            return provider

    return UNKNOWN


def extract_model(attrs: AISpanAttributes) -> str:
    """Response model first, then request model ids; normalized"""
    raw_model = (
        attrs.response_model
        or attrs.model_id
        or attrs.gen_ai_response_model
        or attrs.gen_ai_request_model
        or UNKNOWN
    )
    return normalize_model_name(raw_model)


def map_status_to_event_type(status_code: StatusCode, operation_type: Optional[str] = None) -> EventType:
    is_error = status_code == StatusCode.ERROR

    if operation_type and "toolCall" in operation_type:
        return EventType.TOOL_ERROR if is_error else EventType.TOOL_END

    return EventType.REQUEST_ERROR if is_error else EventType.REQUEST_END


def format_trace_id(trace_id: int) -> str:
    return format(trace_id, "032x")


def format_span_id(span_id: int) -> str:
    return format(span_id, "016x")


def generate_request_id(span: ReadableSpan) -> str:
    """Deterministic id from the first 8 hex chars of the trace and span ids"""
    ctx = span.get_span_context()
    return f"otel_{format_trace_id(ctx.trace_id)[:8]}_{format_span_id(ctx.span_id)[:8]}"


def extract_session_id(span: ReadableSpan) -> Optional[str]:
    attrs = _attributes(span)
    for key in (
        "ai.telemetry.metadata.sessionId",
        "ai.telemetry.metadata.session_id",
        "session.id",
        "sessionId",
    ):
        value = _get_string(attrs, key)
        if value:
            return value
    return None


def parse_json_attribute(value: Optional[str]) -> Any:
    """Decode a JSON-encoded attribute; None when absent or invalid"""
    if not value:
        return None
    try:
        return json.loads(value)
    except (TypeError, ValueError):
        return None


def ns_to_datetime(timestamp_ns: int) -> datetime:
    """Epoch nanoseconds to an aware UTC datetime"""
    return datetime.fromtimestamp(timestamp_ns / 1e9, tz=timezone.utc)


def calculate_duration_ms(start_ns: Optional[int], end_ns: Optional[int]) -> int:
    if start_ns is None or end_ns is None:
        return 0
    return round((end_ns - start_ns) / 1_000_000)


__all__ = [
    "AI_OPERATION_PREFIXES",
    "TOOL_CALL_OPERATION",
    "AISpanAttributes",
    "is_ai_span",
    "is_top_level_ai_span",
    "get_operation_type",
    "extract_ai_attributes",
    "extract_provider",
    "extract_model",
    "normalize_provider_name",
    "normalize_model_name",
    "map_status_to_event_type",
    "format_trace_id",
    "format_span_id",
    "generate_request_id",
    "extract_session_id",
    "parse_json_attribute",
    "ns_to_datetime",
    "calculate_duration_ms",
]
