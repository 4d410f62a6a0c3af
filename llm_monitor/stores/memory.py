"""In-memory store for development and testing"""

from datetime import datetime
from typing import List, Optional

from llm_monitor.monitoring.aggregation import DEFAULT_BUCKET_SIZE_MS
from llm_monitor.monitoring.events import Event
from llm_monitor.stores.base import EventLogStore


class MemoryStore(EventLogStore):
    """
    Memory Store - keeps events in a list for the life of the process

    Usage:
        store = MemoryStore()
        await store.save_event(event)
        stats = await store.get_stats()
    """

    def __init__(self, bucket_size_ms: int = DEFAULT_BUCKET_SIZE_MS):
        super().__init__(bucket_size_ms)
        self.events: List[Event] = []

    async def save_event(self, event: Event) -> None:
        self.events.append(event)

    async def _load_events(
        self,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        terminal_only: bool = False,
    ) -> List[Event]:
        return list(self.events)

    def clear(self) -> None:
        """Drop every stored event"""
        self.events = []

    def __len__(self) -> int:
        return len(self.events)


__all__ = ["MemoryStore"]
