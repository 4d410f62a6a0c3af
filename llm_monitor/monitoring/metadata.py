"""
Enhanced payload metadata - operational context for monitoring events

Design principles:
- All fields are optional (best-effort)
- No PII or business logic
- Lives in the event payload, not the core event schema
- Helpers are pure: each returns a new payload with one extra sub-key
  holding only the fields that were supplied
"""

import platform
from typing import Any, Dict, Mapping, Optional


def _compact(**fields: Any) -> Dict[str, Any]:
    return {key: value for key, value in fields.items() if value is not None}


def enrich_with_request_metadata(
    payload: Mapping[str, Any],
    streaming: Optional[bool] = None,
    request_size_bytes: Optional[int] = None,
    response_size_bytes: Optional[int] = None,
    prompt_version: Optional[str] = None,
    template_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Add request shaping metadata under payload["request"]"""
    return {
        **payload,
        "request": _compact(
            streaming=streaming,
            request_size_bytes=request_size_bytes,
            response_size_bytes=response_size_bytes,
            prompt_version=prompt_version,
            template_id=template_id,
        ),
    }


def enrich_with_timing(
    payload: Mapping[str, Any],
    queue_time: Optional[float] = None,
    network_time: Optional[float] = None,
    provider_latency: Optional[float] = None,
    tool_time_total: Optional[float] = None,
    time_to_first_token: Optional[float] = None,
) -> Dict[str, Any]:
    """Add a timing breakdown (all values in ms) under payload["timing"]"""
    return {
        **payload,
        "timing": _compact(
            queue_time=queue_time,
            network_time=network_time,
            provider_latency=provider_latency,
            tool_time_total=tool_time_total,
            time_to_first_token=time_to_first_token,
        ),
    }


def enrich_with_environment(
    payload: Mapping[str, Any],
    service_name: Optional[str] = None,
    service_version: Optional[str] = None,
    environment: Optional[str] = None,
    region: Optional[str] = None,
    zone: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Add deployment context under payload["environment"]

    The running interpreter version is always recorded as python_version.
    """
    return {
        **payload,
        "environment": _compact(
            service_name=service_name,
            service_version=service_version,
            environment=environment,
            region=region,
            zone=zone,
            python_version=platform.python_version(),
        ),
    }


def enrich_with_retry(
    payload: Mapping[str, Any],
    retry_count: Optional[int] = None,
    retry_reason: Optional[str] = None,
    fallback_model: Optional[str] = None,
) -> Dict[str, Any]:
    """Add retry/resilience metadata under payload["retry"]"""
    return {
        **payload,
        "retry": _compact(
            retry_count=retry_count,
            retry_reason=retry_reason,
            fallback_model=fallback_model,
        ),
    }


def enrich_with_sampling(
    payload: Mapping[str, Any],
    sampling_rate: Optional[float] = None,
    sampled: Optional[bool] = None,
    sampling_reason: Optional[str] = None,
) -> Dict[str, Any]:
    """Add sampling decision metadata under payload["sampling"]"""
    return {
        **payload,
        "sampling": _compact(
            sampling_rate=sampling_rate,
            sampled=sampled,
            sampling_reason=sampling_reason,
        ),
    }


def create_enhanced_payload(base: Mapping[str, Any], **metadata: Any) -> Dict[str, Any]:
    """Merge metadata sub-objects over a base payload"""
    return {**base, **metadata}


__all__ = [
    "enrich_with_request_metadata",
    "enrich_with_timing",
    "enrich_with_environment",
    "enrich_with_retry",
    "enrich_with_sampling",
    "create_enhanced_payload",
]
