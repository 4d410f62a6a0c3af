"""
Dashboard query API
"""

from llm_monitor.api.app import create_app
from llm_monitor.api.errors import (
    APIException,
    ErrorCode,
    ValidationException,
)
from llm_monitor.api.routes import create_monitoring_router

__all__ = [
    "create_app",
    "create_monitoring_router",
    "APIException",
    "ErrorCode",
    "ValidationException",
]
