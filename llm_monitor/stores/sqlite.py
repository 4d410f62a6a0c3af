"""
SQLite Store - table-backed persistence

Design principles:
- One row per event, payload stored as JSON text
- Blocking queries run in a worker thread (asyncio.to_thread)
- Thread-local connections for database files; an in-memory database
  shares one connection so every thread sees the same data
- Time range and terminal-type restriction pushed into SQL, remaining
  aggregation delegated to the in-process engine
- A missing table is a setup mistake and raises StoreConfigurationError
  at first use when table creation is disabled
"""

import asyncio
import json
import re
import sqlite3
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from llm_monitor.exceptions import StoreConfigurationError
from llm_monitor.monitoring.aggregation import DEFAULT_BUCKET_SIZE_MS
from llm_monitor.monitoring.events import (
    TERMINAL_EVENT_TYPES,
    Event,
    parse_datetime,
    to_epoch_ms,
)
from llm_monitor.stores.base import EventLogStore

DEFAULT_TABLE_NAME = "monitoring_events"

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class SQLiteStore(EventLogStore):
    """
    SQLite Store - events in a single indexed table

    Usage:
        store = SQLiteStore("./data/monitoring.db")
        await store.save_event(event)
        events = await store.get_events("req-123")
    """

    def __init__(
        self,
        db_path: Union[str, Path],
        table_name: str = DEFAULT_TABLE_NAME,
        create_tables: bool = True,
        bucket_size_ms: int = DEFAULT_BUCKET_SIZE_MS,
    ):
        """
        Initialize SQLiteStore

        Args:
            db_path: Path to SQLite database file
            table_name: Events table
            create_tables: Create the table and indexes if missing
            bucket_size_ms: Time series bucket width
        """
        super().__init__(bucket_size_ms)
        if not _IDENTIFIER.match(table_name):
            raise StoreConfigurationError(
                f"Invalid table name: {table_name!r}", store="sqlite"
            )

        self.db_path = Path(db_path)
        if str(db_path) != ":memory:":
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.table_name = table_name
        self.create_tables = create_tables
        self._local = threading.local()
        self._connections: List[sqlite3.Connection] = []
        self._shared: Optional[sqlite3.Connection] = None
        self._ready = False
        self._init_lock = threading.Lock()
        self._conn_lock = threading.RLock()

    @property
    def in_memory(self) -> bool:
        return str(self.db_path) == ":memory:"

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(
            str(self.db_path),
            check_same_thread=False
        )
        conn.row_factory = sqlite3.Row
        with self._conn_lock:
            self._connections.append(conn)
        return conn

    def _get_connection(self) -> sqlite3.Connection:
        """Get thread-local connection (shared for :memory:)"""
        if self.in_memory:
            with self._conn_lock:
                if self._shared is None:
                    self._shared = self._connect()
            return self._shared

        if not hasattr(self._local, "conn"):
            self._local.conn = self._connect()
        return self._local.conn

    def _ensure_table(self) -> sqlite3.Connection:
        conn = self._get_connection()
        if self._ready:
            return conn

        with self._init_lock:
            if not self._ready:
                if self.create_tables:
                    self._init_db(conn)
                elif not self._table_exists(conn):
                    raise StoreConfigurationError(
                        f"Table '{self.table_name}' does not exist in {self.db_path}. "
                        f"Create it or enable create_tables.",
                        store="sqlite",
                    )
                self._ready = True
        return conn

    def _table_exists(self, conn: sqlite3.Connection) -> bool:
        cursor = conn.execute(
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name = ?",
            (self.table_name,),
        )
        return cursor.fetchone() is not None

    def _init_db(self, conn: sqlite3.Connection) -> None:
        """Initialize database schema"""
        table = self.table_name
        conn.execute(f"""
            CREATE TABLE IF NOT EXISTS {table} (
                id TEXT PRIMARY KEY,
                event_type TEXT NOT NULL,
                request_id TEXT NOT NULL,
                session_id TEXT,
                transaction_id TEXT,
                time TEXT NOT NULL,
                time_ms REAL NOT NULL,
                duration REAL,
                cost REAL,
                cpu_time REAL,
                allocations INTEGER,
                payload TEXT NOT NULL,
                created_at TEXT NOT NULL,
                provider TEXT NOT NULL,
                model TEXT NOT NULL
            )
        """)
        conn.execute(f"""
            CREATE INDEX IF NOT EXISTS idx_{table}_request_id
            ON {table}(request_id)
        """)
        conn.execute(f"""
            CREATE INDEX IF NOT EXISTS idx_{table}_session_id
            ON {table}(session_id)
        """)
        conn.execute(f"""
            CREATE INDEX IF NOT EXISTS idx_{table}_time_ms
            ON {table}(time_ms)
        """)
        conn.commit()

    async def save_event(self, event: Event) -> None:
        await asyncio.to_thread(self._insert, event)

    def _insert(self, event: Event) -> None:
        conn = self._ensure_table()
        conn.execute(f"""
            INSERT OR REPLACE INTO {self.table_name}
            (id, event_type, request_id, session_id, transaction_id, time, time_ms,
             duration, cost, cpu_time, allocations, payload, created_at, provider, model)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            event.id, event.event_type.value, event.request_id, event.session_id,
            event.transaction_id, event.time.isoformat(), event.timestamp_ms,
            event.duration, event.cost, event.cpu_time, event.allocations,
            json.dumps(event.payload, ensure_ascii=False, default=str),
            event.created_at.isoformat(), event.provider, event.model
        ))
        conn.commit()

    async def _load_events(
        self,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        terminal_only: bool = False,
    ) -> List[Event]:
        return await asyncio.to_thread(self._select_range, start_time, end_time, terminal_only)

    def _select_range(
        self,
        start_time: Optional[datetime],
        end_time: Optional[datetime],
        terminal_only: bool,
    ) -> List[Event]:
        conn = self._ensure_table()

        clauses: List[str] = []
        params: List[Any] = []
        if start_time is not None:
            clauses.append("time_ms >= ?")
            params.append(to_epoch_ms(start_time))
        if end_time is not None:
            clauses.append("time_ms <= ?")
            params.append(to_epoch_ms(end_time))
        if terminal_only:
            clauses.append(f"event_type IN ({', '.join('?' for _ in TERMINAL_EVENT_TYPES)})")
            params.extend(t.value for t in TERMINAL_EVENT_TYPES)

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        cursor = conn.execute(
            f"SELECT * FROM {self.table_name} {where} ORDER BY time_ms ASC",
            params,
        )
        return [self._row_to_event(dict(row)) for row in cursor.fetchall()]

    async def get_events(self, request_id: str) -> List[Event]:
        return await asyncio.to_thread(self._select_request, request_id)

    def _select_request(self, request_id: str) -> List[Event]:
        conn = self._ensure_table()
        cursor = conn.execute(f"""
            SELECT * FROM {self.table_name}
            WHERE request_id = ?
            ORDER BY time_ms ASC
        """, (request_id,))
        return [self._row_to_event(dict(row)) for row in cursor.fetchall()]

    @staticmethod
    def _row_to_event(row: Dict[str, Any]) -> Event:
        return Event(
            id=row["id"],
            event_type=row["event_type"],
            request_id=row["request_id"],
            time=parse_datetime(row["time"]),
            provider=row["provider"],
            model=row["model"],
            payload=json.loads(row["payload"]) if row["payload"] else {},
            created_at=parse_datetime(row["created_at"]),
            session_id=row["session_id"],
            transaction_id=row["transaction_id"],
            duration=row["duration"],
            cost=row["cost"],
            cpu_time=row["cpu_time"],
            allocations=row["allocations"],
        )

    def close(self) -> None:
        """Close every connection opened by this store"""
        with self._conn_lock:
            connections, self._connections = self._connections, []
            self._local = threading.local()
            self._shared = None
            self._ready = False

        for conn in connections:
            conn.close()


__all__ = ["SQLiteStore", "DEFAULT_TABLE_NAME"]
