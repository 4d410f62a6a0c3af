"""
Pytest fixtures for monitoring core tests
"""

import pytest

from llm_monitor.monitoring.monitor import MonitorContext
from llm_monitor.stores.memory import MemoryStore


class FakeTimer:
    """Deterministic timer; tests advance it by hand"""

    def __init__(self):
        self.wall = 1000.0
        self.cpu = 50.0
        self.memory = 10_000

    def wall_ms(self):
        return self.wall

    def cpu_ms(self):
        return self.cpu

    def memory_bytes(self):
        return self.memory

    def advance(self, wall=0.0, cpu=0.0, memory=0):
        self.wall += wall
        self.cpu += cpu
        self.memory += memory


@pytest.fixture
def fake_timer():
    return FakeTimer()


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def context():
    """Fresh per-request context"""
    return MonitorContext(
        request_id="req-123",
        provider="openai",
        model="gpt-4o",
        messages=[{"role": "user", "content": "Email me at john.doe@example.com"}],
        options={"temperature": 0.2, "session_id": "sess-1"},
    )

