"""SQLite storage backend (the default, local-first medium)."""

import json
from pathlib import Path

import aiosqlite

from memorai.core.logging import get_logger
from memorai.infrastructure.storage.base import Record, created_at_key, not_open_error, translate_errors

logger = get_logger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS memories (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    data TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_memories_created_at ON memories (created_at);
"""


class SQLiteMemoryStore:
    """Memory records stored as JSON documents in a single SQLite table."""

    backend = "sqlite"

    def __init__(self, path: Path | str):
        self.path = Path(path)
        self._conn: aiosqlite.Connection | None = None

    def _connection(self, operation: str) -> aiosqlite.Connection:
        if self._conn is None:
            raise not_open_error(self, operation)
        return self._conn

    @translate_errors("open", aiosqlite.Error, OSError)
    async def open(self) -> None:
        if self._conn is not None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = await aiosqlite.connect(self.path)
        # WAL lets readers proceed while a bulk import is writing
        await self._conn.execute("PRAGMA journal_mode=WAL")
        await self._conn.executescript(SCHEMA)
        await self._conn.commit()
        logger.info(f"SQLite store opened at {self.path}")

    async def close(self) -> None:
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
            logger.info("SQLite store closed")

    @translate_errors("put", aiosqlite.Error)
    async def put(self, record_id: str, record: Record) -> None:
        conn = self._connection("put")
        await conn.execute(
            "INSERT OR REPLACE INTO memories (id, created_at, data) VALUES (?, ?, ?)",
            (record_id, created_at_key(record), json.dumps(record)),
        )
        await conn.commit()

    @translate_errors("get", aiosqlite.Error)
    async def get(self, record_id: str) -> Record | None:
        conn = self._connection("get")
        async with conn.execute("SELECT data FROM memories WHERE id = ?", (record_id,)) as cursor:
            row = await cursor.fetchone()
        return json.loads(row[0]) if row else None

    @translate_errors("delete", aiosqlite.Error)
    async def delete(self, record_id: str) -> bool:
        conn = self._connection("delete")
        cursor = await conn.execute("DELETE FROM memories WHERE id = ?", (record_id,))
        await conn.commit()
        return cursor.rowcount > 0

    @translate_errors("scan", aiosqlite.Error)
    async def scan(self) -> list[Record]:
        conn = self._connection("scan")
        async with conn.execute("SELECT data FROM memories ORDER BY created_at, rowid") as cursor:
            rows = await cursor.fetchall()
        return [json.loads(row[0]) for row in rows]
