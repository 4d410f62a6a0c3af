"""
File Store - append-only JSON lines persistence

One event per line, in to_dict() form. Reads scan the whole file, so this
store suits local development and small deployments.
"""

import asyncio
import json
import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

from llm_monitor.monitoring.aggregation import DEFAULT_BUCKET_SIZE_MS
from llm_monitor.monitoring.events import Event
from llm_monitor.stores.base import EventLogStore

logger = logging.getLogger(__name__)

DEFAULT_FILE_PATH = "monitoring.jsonl"


class FileStore(EventLogStore):
    """
    File Store - events as line-delimited JSON

    Usage:
        store = FileStore("./data/monitoring.jsonl")
        await store.save_event(event)
        page = await store.list_traces(limit=20)
    """

    def __init__(
        self,
        path: Union[str, Path] = DEFAULT_FILE_PATH,
        bucket_size_ms: int = DEFAULT_BUCKET_SIZE_MS,
    ):
        """
        Initialize FileStore

        Args:
            path: JSONL file; parent directories are created on demand
            bucket_size_ms: Time series bucket width
        """
        super().__init__(bucket_size_ms)
        self.path = Path(path)
        self._write_lock = threading.Lock()

    async def save_event(self, event: Event) -> None:
        await asyncio.to_thread(self._append, event)

    def _append(self, event: Event) -> None:
        json_line = json.dumps(event.to_dict(), ensure_ascii=False, default=str)

        with self._write_lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'a', encoding='utf-8') as f:
                f.write(json_line + '\n')

    async def _load_events(
        self,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        terminal_only: bool = False,
    ) -> List[Event]:
        return await asyncio.to_thread(self._read_all)

    def _read_all(self) -> List[Event]:
        if not self.path.exists():
            return []

        events = []
        with open(self.path, 'r', encoding='utf-8') as f:
            for line_number, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    events.append(Event.from_dict(json.loads(line)))
                except (json.JSONDecodeError, KeyError, ValueError) as e:
                    logger.warning(f"Skipping malformed line {line_number} in {self.path}: {e}")
        return events


__all__ = ["FileStore", "DEFAULT_FILE_PATH"]
