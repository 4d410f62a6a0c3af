"""
API error handling

Structured exceptions and the JSON error envelope used by the dashboard API:
    {"success": false, "error": {"code", "message", "details"}}
"""

import logging
import traceback
from typing import Optional, Dict, Any
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from llm_monitor.exceptions import MonitorError, StoreConfigurationError

logger = logging.getLogger(__name__)


# ===== Error codes =====

class ErrorCode:
    """Standard error codes"""

    # Client errors
    BAD_REQUEST = "BAD_REQUEST"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"

    # Server errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    STORE_ERROR = "STORE_ERROR"


# ===== Exceptions =====

class APIException(Exception):
    """
    Base API exception

    Carries a structured error for the response envelope.
    """

    def __init__(
        self,
        message: str,
        code: str = ErrorCode.INTERNAL_ERROR,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class ValidationException(APIException):
    """Invalid or missing request parameter"""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        error_details = details or {}
        if field:
            error_details["field"] = field

        super().__init__(
            message=message,
            code=ErrorCode.VALIDATION_ERROR,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=error_details
        )


# ===== Response models =====

class ErrorDetail(BaseModel):
    """Error detail"""
    code: str
    message: str
    details: Optional[Dict[str, Any]] = None
    stack_trace: Optional[str] = None


class ErrorResponse(BaseModel):
    """Error response"""
    success: bool = False
    error: ErrorDetail


# ===== Handlers =====

def error_response(
    message: str,
    code: str = ErrorCode.INTERNAL_ERROR,
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
    details: Optional[Dict[str, Any]] = None,
    include_stack: bool = False
) -> JSONResponse:
    """
    Build an error response

    Args:
        message: Error message
        code: Error code
        status_code: HTTP status code
        details: Error details
        include_stack: Include the stack trace (DEBUG logging only)

    Returns:
        JSON response
    """
    error_detail = {
        "code": code,
        "message": message,
        "details": details
    }

    if include_stack and logger.isEnabledFor(logging.DEBUG):
        error_detail["stack_trace"] = traceback.format_exc()

    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(**error_detail)).model_dump(exclude_none=True)
    )


async def api_exception_handler(request: Request, exc: APIException) -> JSONResponse:
    """Handle APIException"""
    if exc.status_code >= 500:
        logger.error(f"API exception: {exc.message}", exc_info=True)
    else:
        logger.warning(f"API exception: {exc.code} - {exc.message}")

    return error_response(
        message=exc.message,
        code=exc.code,
        status_code=exc.status_code,
        details=exc.details,
        include_stack=exc.status_code >= 500
    )


async def store_configuration_handler(request: Request, exc: StoreConfigurationError) -> JSONResponse:
    """Handle a misconfigured store"""
    logger.error(f"Store configuration error: {exc.message}")

    return error_response(
        message=exc.message,
        code=ErrorCode.CONFIGURATION_ERROR,
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        details={"store": exc.store} if exc.store else None
    )


async def monitor_error_handler(request: Request, exc: MonitorError) -> JSONResponse:
    """Handle any other llm_monitor failure raised while answering a query"""
    logger.error(f"Store error: {exc}", exc_info=True)

    return error_response(
        message=str(exc),
        code=ErrorCode.STORE_ERROR,
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTPException"""
    logger.warning(f"HTTP exception: {exc.status_code} - {exc.detail}")

    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    code = ErrorCode.NOT_FOUND if exc.status_code == status.HTTP_404_NOT_FOUND else ErrorCode.BAD_REQUEST

    return error_response(
        message=detail,
        code=code,
        status_code=exc.status_code
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle any unhandled exception"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    return error_response(
        message="Internal server error",
        code=ErrorCode.INTERNAL_ERROR,
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        include_stack=True
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register every handler on an application"""
    app.add_exception_handler(APIException, api_exception_handler)
    app.add_exception_handler(StoreConfigurationError, store_configuration_handler)
    app.add_exception_handler(MonitorError, monitor_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)


__all__ = [
    "ErrorCode",
    "APIException",
    "ValidationException",
    "ErrorResponse",
    "ErrorDetail",
    "error_response",
    "api_exception_handler",
    "store_configuration_handler",
    "monitor_error_handler",
    "http_exception_handler",
    "global_exception_handler",
    "register_exception_handlers",
]
