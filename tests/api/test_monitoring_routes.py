"""
Dashboard API route tests
"""

import asyncio

import pytest
from fastapi.testclient import TestClient

from llm_monitor.api.app import create_app
from llm_monitor.config import MonitorConfig
from llm_monitor.monitoring.events import MonitoringStats, to_epoch_ms
from llm_monitor.stores.base import MonitoringStore
from llm_monitor.stores.memory import MemoryStore

API = "/monitor/api"


class StatsOnlyStore(MonitoringStore):
    """Store implementing only the required operations"""

    async def save_event(self, event):
        pass

    async def get_stats(self, start_time=None, end_time=None):
        return MonitoringStats(total_requests=7, total_cost=1.5)


@pytest.fixture
def store(sample_events):
    store = MemoryStore()

    async def fill():
        for event in sample_events:
            await store.save_event(event)

    asyncio.run(fill())
    return store


@pytest.fixture
def client(store):
    return TestClient(create_app(store))


class TestStatsEndpoint:
    """Test GET /stats"""

    def test_stats(self, client):
        response = client.get(f"{API}/stats")

        assert response.status_code == 200
        data = response.json()
        assert data["total_requests"] == 3
        assert data["total_cost"] == pytest.approx(0.3)
        assert data["error_rate"] == pytest.approx(100 / 3)

    def test_stats_epoch_range(self, client, base_time):
        start = int(to_epoch_ms(base_time)) + 150
        end = int(to_epoch_ms(base_time)) + 250

        response = client.get(f"{API}/stats", params={"from": str(start), "to": str(end)})

        assert response.json()["total_requests"] == 1

    def test_stats_iso_range(self, client):
        response = client.get(f"{API}/stats", params={"from": "2024-02-03T12:00:00.250Z"})

        assert response.json()["total_requests"] == 1

    def test_invalid_timestamp(self, client):
        response = client.get(f"{API}/stats", params={"from": "last tuesday"})

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["details"]["field"] == "from"


class TestMetricsEndpoint:
    """Test GET /metrics"""

    def test_metrics(self, client):
        response = client.get(f"{API}/metrics", params={"from": "2024-02-03T00:00:00Z"})

        data = response.json()
        assert data["totals"]["total_requests"] == 3
        assert len(data["by_provider"]) == 3
        assert data["time_series"]["requests"][0]["value"] == 3

    def test_metrics_fallback(self):
        """Stores without metrics report stats with empty series"""
        client = TestClient(create_app(StatsOnlyStore()))

        data = client.get(f"{API}/metrics").json()

        assert data["totals"]["total_requests"] == 7
        assert data["by_provider"] == []
        assert data["time_series"]["cost"] == []


class TestTracesEndpoint:
    """Test GET /traces"""

    def test_default_page(self, client):
        data = client.get(f"{API}/traces").json()

        assert data["total"] == 3
        assert data["limit"] == 50
        assert data["offset"] == 0
        assert [t["request_id"] for t in data["items"]] == ["req-c", "req-b", "req-a"]
        assert data["items"][0]["status"] == "error"

    def test_filters(self, client):
        data = client.get(f"{API}/traces", params={"provider": "OpenAI", "minLatency": "60"}).json()

        assert [t["request_id"] for t in data["items"]] == ["req-a"]

    def test_request_id_and_cost(self, client):
        data = client.get(f"{API}/traces", params={"requestId": "req-", "minCost": "0.15"}).json()

        assert [t["request_id"] for t in data["items"]] == ["req-b"]

    def test_limit_capped(self, store):
        capped = TestClient(create_app(store, MonitorConfig(api={"max_limit": 2})))

        data = capped.get(f"{API}/traces", params={"limit": "1000"}).json()

        assert data["limit"] == 2
        assert len(data["items"]) == 2

    def test_invalid_limit(self, client):
        response = client.get(f"{API}/traces", params={"limit": "0"})
        assert response.status_code == 422

    def test_traces_fallback(self):
        client = TestClient(create_app(StatsOnlyStore()))

        data = client.get(f"{API}/traces", params={"limit": "5"}).json()

        assert data == {"items": [], "total": 0, "limit": 5, "offset": 0}


class TestEventsEndpoint:
    """Test GET /events"""

    def test_events_for_request(self, client):
        data = client.get(f"{API}/events", params={"requestId": "req-b"}).json()

        assert [e["event_type"] for e in data] == ["tool.end", "request.end"]
        assert data[1]["payload"]["usage"]["input_tokens"] == 20

    def test_unknown_request(self, client):
        assert client.get(f"{API}/events", params={"requestId": "nope"}).json() == []

    def test_request_id_required(self, client):
        response = client.get(f"{API}/events")

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "VALIDATION_ERROR"

    def test_events_fallback(self):
        client = TestClient(create_app(StatsOnlyStore()))

        assert client.get(f"{API}/events", params={"requestId": "req-1"}).json() == []


class TestMountPath:
    """Test the configurable prefix"""

    def test_custom_base_path(self, store):
        client = TestClient(create_app(store, MonitorConfig(api={"base_path": "/llm/"})))

        assert client.get("/llm/api/stats").status_code == 200
        assert client.get(f"{API}/stats").status_code == 404
