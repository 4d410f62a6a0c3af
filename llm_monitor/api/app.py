"""
Dashboard API application

Mounts the monitoring router at <base_path>/api with CORS and the
structured error handlers.
"""

import logging
from typing import Any, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from llm_monitor.api.errors import register_exception_handlers
from llm_monitor.api.routes import create_monitoring_router
from llm_monitor.config import MonitorConfig

logger = logging.getLogger(__name__)


def create_app(store: Any, config: Optional[MonitorConfig] = None) -> FastAPI:
    """
    Create the dashboard API application

    Args:
        store: Any object implementing the store contract
        config: Configuration; defaults when None

    Returns:
        FastAPI application
    """
    config = config or MonitorConfig()

    app = FastAPI(
        title="LLM Monitor API",
        description="Query API for LLM monitoring events, metrics and traces",
        version="0.1.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.cors_origins,
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    prefix = f"{config.api.base_path}/api"
    app.include_router(create_monitoring_router(store, config), prefix=prefix)
    logger.info(f"Monitoring API mounted at {prefix}")

    return app


__all__ = ["create_app"]
