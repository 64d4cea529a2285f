"""SQLite-backed key-value store.

Values live in a single table as JSON text:

    kv(key TEXT PRIMARY KEY, value TEXT NOT NULL, updated_at TIMESTAMP)

Every write is committed before the call returns, so a value written by
one migration step is durable before the next step starts.
"""

import asyncio
import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import aiosqlite
import structlog

from stowage.core.errors import StorageIOError, TransientStorageError
from stowage.core.retry import retry_transient
from stowage.storage.base import BaseStore

log = structlog.get_logger()

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS kv (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""


def _translate_error(e: Exception, key: Optional[str] = None) -> StorageIOError:
    """Map a sqlite error onto the stowage error hierarchy."""
    if isinstance(e, sqlite3.OperationalError) and "locked" in str(e).lower():
        return TransientStorageError("Database is locked", key=key, cause=e)
    return StorageIOError(f"SQLite operation failed: {e}", key=key, cause=e)


class SqliteStore(BaseStore):
    """Key-value store persisted in a SQLite file.

    aiosqlite connections are not safe for concurrent use, so the store
    holds one connection and serializes access with a lock. WAL mode is
    enabled for durability with low write latency.

    Usage:
        store = SqliteStore("./data/general.db", name="general")
        await store.connect()
        await store.set_string("username", "ada")
        await store.close()
    """

    def __init__(self, db_path: str, name: str = "sqlite", busy_timeout_ms: int = 5000):
        """Initialize the store.

        Args:
            db_path: Path to the SQLite database file, or ":memory:".
            name: Store name used in log context.
            busy_timeout_ms: How long SQLite waits on a locked database.
        """
        self.name = name
        self._db_path = db_path
        self._busy_timeout_ms = busy_timeout_ms
        self._connection: Optional[aiosqlite.Connection] = None
        self._lock = asyncio.Lock()
        self._log = log.bind(component="sqlite_store", store=name)

    @property
    def db_path(self) -> str:
        return self._db_path

    @property
    def is_connected(self) -> bool:
        return self._connection is not None

    async def connect(self) -> None:
        """Open the database and create the kv table."""
        async with self._lock:
            if self._connection is not None:
                return

            conn: Optional[aiosqlite.Connection] = None
            try:
                if self._db_path != ":memory:":
                    Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
                conn = await aiosqlite.connect(self._db_path)
                await conn.execute("PRAGMA journal_mode=WAL")
                await conn.execute("PRAGMA synchronous=NORMAL")
                await conn.execute(f"PRAGMA busy_timeout={int(self._busy_timeout_ms)}")
                await conn.executescript(SCHEMA_SQL)
                await conn.commit()
            except (sqlite3.Error, OSError) as e:
                if conn is not None:
                    await conn.close()
                raise StorageIOError(f"Cannot open {self._db_path}: {e}", cause=e) from e

            self._connection = conn

        self._log.info("sqlite_store_connected", db_path=self._db_path)

    async def close(self) -> None:
        """Close the connection."""
        async with self._lock:
            if self._connection is not None:
                await self._connection.close()
                self._connection = None
        self._log.info("sqlite_store_closed")

    async def __aenter__(self) -> "SqliteStore":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def _require_connection(self) -> aiosqlite.Connection:
        if self._connection is None:
            raise StorageIOError(f"Store {self.name!r} is not connected")
        return self._connection

    @retry_transient()
    async def _fetchone(self, sql: str, params: tuple, key: Optional[str] = None) -> Optional[tuple]:
        conn = self._require_connection()
        async with self._lock:
            try:
                async with conn.execute(sql, params) as cursor:
                    return await cursor.fetchone()
            except sqlite3.Error as e:
                raise _translate_error(e, key) from e

    @retry_transient()
    async def _fetchall(self, sql: str, params: tuple = ()) -> list[tuple]:
        conn = self._require_connection()
        async with self._lock:
            try:
                async with conn.execute(sql, params) as cursor:
                    return list(await cursor.fetchall())
            except sqlite3.Error as e:
                raise _translate_error(e) from e

    @retry_transient()
    async def _execute(self, sql: str, params: tuple, key: Optional[str] = None) -> int:
        """Execute a write and commit it. Returns the affected row count."""
        conn = self._require_connection()
        async with self._lock:
            try:
                cursor = await conn.execute(sql, params)
                await conn.commit()
                return cursor.rowcount
            except sqlite3.Error as e:
                raise _translate_error(e, key) from e

    async def _read(self, key: str) -> tuple[bool, Any]:
        row = await self._fetchone("SELECT value FROM kv WHERE key = ?", (key,), key=key)
        if row is None:
            return False, None
        try:
            return True, json.loads(row[0])
        except json.JSONDecodeError as e:
            raise StorageIOError(f"Corrupt value for key {key!r}", key=key, cause=e) from e

    async def _write(self, key: str, value: Any) -> None:
        await self._execute(
            "INSERT OR REPLACE INTO kv (key, value, updated_at) VALUES (?, ?, ?)",
            (key, json.dumps(value), datetime.now(timezone.utc).isoformat()),
            key=key,
        )

    async def remove(self, key: str) -> bool:
        return await self._execute("DELETE FROM kv WHERE key = ?", (key,), key=key) > 0

    async def contains_key(self, key: str) -> bool:
        row = await self._fetchone("SELECT 1 FROM kv WHERE key = ?", (key,), key=key)
        return row is not None

    async def keys(self) -> list[str]:
        rows = await self._fetchall("SELECT key FROM kv ORDER BY key")
        return [row[0] for row in rows]

    async def clear(self) -> bool:
        await self._execute("DELETE FROM kv", ())
        return True
