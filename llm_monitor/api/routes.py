"""
Monitoring API Routes

Read-only dashboard queries over any store.

Endpoints (relative to the mount prefix):
- GET /stats?from&to - Overview statistics
- GET /metrics?from&to - Totals, per-provider rollups and time series
- GET /traces?limit&offset&requestId&query&provider&model&status&minCost&minLatency&from&to
- GET /events?requestId - Every event of one request

Optional store capabilities degrade gracefully: metrics fall back to stats
with empty series, trace listing to an empty page, event lookup to [].
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Query

from llm_monitor.api.errors import ValidationException
from llm_monitor.config import MonitorConfig
from llm_monitor.monitoring.events import MetricsData, PaginatedTraces, TraceFilters, parse_datetime

logger = logging.getLogger(__name__)


def _parse_time(value: Optional[str], field: str) -> Optional[datetime]:
    """ISO-8601 or epoch milliseconds"""
    if value is None or value == "":
        return None
    try:
        if value.isdigit():
            return parse_datetime(int(value))
        return parse_datetime(value)
    except ValueError:
        raise ValidationException(f"Invalid timestamp for '{field}': {value}", field=field)


def create_monitoring_router(store: Any, config: Optional[MonitorConfig] = None) -> APIRouter:
    """
    Build the dashboard query router for a store

    Args:
        store: Any object implementing the store contract
        config: Configuration (API page limits); defaults when None

    Returns:
        Router to mount under the dashboard prefix
    """
    config = config or MonitorConfig()
    api_config = config.api

    router = APIRouter(tags=["monitoring"])

    @router.get("/stats")
    async def get_stats(
        start: Optional[str] = Query(None, alias="from", description="Range start (ISO-8601 or epoch ms)"),
        end: Optional[str] = Query(None, alias="to", description="Range end (ISO-8601 or epoch ms)"),
    ) -> Dict[str, Any]:
        """Overview statistics over terminal events"""
        stats = await store.get_stats(_parse_time(start, "from"), _parse_time(end, "to"))
        return stats.to_dict()

    @router.get("/metrics")
    async def get_metrics(
        start: Optional[str] = Query(None, alias="from", description="Range start (ISO-8601 or epoch ms)"),
        end: Optional[str] = Query(None, alias="to", description="Range end (ISO-8601 or epoch ms)"),
    ) -> Dict[str, Any]:
        """Dashboard metrics; stats with empty series when the store has no metrics"""
        start_time = _parse_time(start, "from")
        end_time = _parse_time(end, "to")

        if getattr(store, "supports_metrics", False):
            metrics = await store.get_metrics(start_time, end_time)
        else:
            metrics = MetricsData(totals=await store.get_stats(start_time, end_time))
        return metrics.to_dict()

    @router.get("/traces")
    async def list_traces(
        limit: int = Query(api_config.default_limit, ge=1, description="Page size"),
        offset: int = Query(0, ge=0, description="Page offset"),
        request_id: Optional[str] = Query(None, alias="requestId", description="Request id substring"),
        query: Optional[str] = Query(None, description="Substring of request id, model or provider"),
        provider: Optional[str] = Query(None, description="Provider substring"),
        model: Optional[str] = Query(None, description="Model substring"),
        status: Optional[str] = Query(None, description="success or error"),
        min_cost: Optional[float] = Query(None, alias="minCost", description="Minimum cost (inclusive)"),
        min_latency: Optional[float] = Query(None, alias="minLatency", description="Minimum duration in ms (inclusive)"),
        start: Optional[str] = Query(None, alias="from", description="Range start (ISO-8601 or epoch ms)"),
        end: Optional[str] = Query(None, alias="to", description="Range end (ISO-8601 or epoch ms)"),
    ) -> Dict[str, Any]:
        """Filtered, newest-first page of trace summaries"""
        limit = min(limit, api_config.max_limit)

        if not getattr(store, "supports_traces", False):
            return PaginatedTraces(items=[], total=0, limit=limit, offset=offset).to_dict()

        filters = TraceFilters(
            request_id=request_id,
            query=query,
            model=model,
            provider=provider,
            min_cost=min_cost,
            min_latency=min_latency,
            status=status,
            start_time=_parse_time(start, "from"),
            end_time=_parse_time(end, "to"),
        )
        page = await store.list_traces(filters, limit=limit, offset=offset)
        return page.to_dict()

    @router.get("/events")
    async def get_events(
        request_id: Optional[str] = Query(None, alias="requestId", description="Request id"),
    ) -> List[Dict[str, Any]]:
        """Every event recorded for one request, oldest first"""
        if not request_id:
            raise ValidationException("requestId is required", field="requestId")

        if not getattr(store, "supports_events", False):
            return []

        events = await store.get_events(request_id)
        return [event.to_dict() for event in events]

    return router


__all__ = ["create_monitoring_router"]
