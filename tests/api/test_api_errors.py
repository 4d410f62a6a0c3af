"""
API error handling tests
"""

from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient

from llm_monitor.api.errors import (
    APIException,
    ErrorCode,
    ValidationException,
    register_exception_handlers,
)
from llm_monitor.exceptions import MonitorError, StoreConfigurationError


def _app():
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/validation")
    async def validation():
        raise ValidationException("bad value", field="limit")

    @app.get("/store")
    async def store():
        raise StoreConfigurationError("Table 'events' does not exist", store="sqlite")

    @app.get("/query")
    async def query():
        raise MonitorError("query failed")

    @app.get("/missing")
    async def missing():
        raise HTTPException(status_code=404, detail="trace not found")

    @app.get("/crash")
    async def crash():
        raise RuntimeError("unexpected")

    return app


class TestExceptions:
    """Test exception payloads"""

    def test_validation_exception(self):
        exc = ValidationException("bad", field="from")

        assert exc.status_code == 400
        assert exc.code == ErrorCode.VALIDATION_ERROR
        assert exc.details == {"field": "from"}

    def test_api_exception_defaults(self):
        exc = APIException("boom")

        assert exc.status_code == 500
        assert exc.code == ErrorCode.INTERNAL_ERROR
        assert exc.details == {}


class TestHandlers:
    """Test the JSON error envelope"""

    def setup_method(self):
        self.client = TestClient(_app(), raise_server_exceptions=False)

    def test_validation_envelope(self):
        response = self.client.get("/validation")

        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "error": {
                "code": "VALIDATION_ERROR",
                "message": "bad value",
                "details": {"field": "limit"},
            },
        }

    def test_store_configuration_error(self):
        response = self.client.get("/store")

        assert response.status_code == 500
        error = response.json()["error"]
        assert error["code"] == "CONFIGURATION_ERROR"
        assert error["details"] == {"store": "sqlite"}
        assert "does not exist" in error["message"]

    def test_monitor_error(self):
        response = self.client.get("/query")

        assert response.status_code == 500
        error = response.json()["error"]
        assert error["code"] == "STORE_ERROR"
        assert error["message"] == "query failed"

    def test_http_exception(self):
        response = self.client.get("/missing")

        assert response.status_code == 404
        assert response.json()["error"] == {"code": "NOT_FOUND", "message": "trace not found"}

    def test_unhandled_exception(self):
        response = self.client.get("/crash")

        assert response.status_code == 500
        error = response.json()["error"]
        assert error["code"] == "INTERNAL_ERROR"
        assert error["message"] == "Internal server error"
        assert "unexpected" not in error["message"]
