"""
Stores - pluggable persistence for monitoring events

Components:
- MonitoringStore: capability-flagged store contract
- MemoryStore: process-local list
- FileStore: append-only JSON lines
- SQLiteStore: single indexed table
"""

from typing import Any

from llm_monitor.monitoring.aggregation import DEFAULT_BUCKET_SIZE_MS
from llm_monitor.stores.base import DEFAULT_METRICS_WINDOW, EventLogStore, MonitoringStore
from llm_monitor.stores.file import DEFAULT_FILE_PATH, FileStore
from llm_monitor.stores.memory import MemoryStore
from llm_monitor.stores.sqlite import DEFAULT_TABLE_NAME, SQLiteStore
from llm_monitor.exceptions import StoreConfigurationError

DEFAULT_SQLITE_PATH = "./data/monitoring.db"


def create_store(store_config: Any, bucket_size_ms: int = DEFAULT_BUCKET_SIZE_MS) -> MonitoringStore:
    """
    Build a store from a StoreConfig

    Args:
        store_config: Object with type, path, table_name and create_tables
        bucket_size_ms: Time series bucket width

    Returns:
        Configured store
    """
    store_type = store_config.type

    if store_type == "memory":
        return MemoryStore(bucket_size_ms=bucket_size_ms)

    if store_type == "file":
        return FileStore(
            store_config.path or DEFAULT_FILE_PATH,
            bucket_size_ms=bucket_size_ms,
        )

    if store_type == "sqlite":
        return SQLiteStore(
            store_config.path or DEFAULT_SQLITE_PATH,
            table_name=store_config.table_name or DEFAULT_TABLE_NAME,
            create_tables=store_config.create_tables,
            bucket_size_ms=bucket_size_ms,
        )

    raise StoreConfigurationError(f"Unknown store type: {store_type}", store=store_type)


__all__ = [
    "DEFAULT_METRICS_WINDOW",
    "DEFAULT_SQLITE_PATH",
    "MonitoringStore",
    "EventLogStore",
    "MemoryStore",
    "FileStore",
    "SQLiteStore",
    "create_store",
]
