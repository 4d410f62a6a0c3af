"""
Pytest fixtures for store tests
"""

import asyncio

import pytest

from llm_monitor.stores.file import FileStore
from llm_monitor.stores.memory import MemoryStore
from llm_monitor.stores.sqlite import SQLiteStore


@pytest.fixture(params=["memory", "file", "sqlite"])
def any_store(request, temp_dir):
    """Every built-in store, empty"""
    if request.param == "memory":
        yield MemoryStore()
    elif request.param == "file":
        yield FileStore(temp_dir / "events.jsonl")
    else:
        store = SQLiteStore(temp_dir / "monitoring.db")
        yield store
        store.close()


@pytest.fixture
def filled_store(any_store, sample_events):
    """Every built-in store, holding the sample events"""
    async def fill():
        for event in sample_events:
            await any_store.save_event(event)

    asyncio.run(fill())
    return any_store
