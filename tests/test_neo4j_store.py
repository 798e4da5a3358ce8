"""Tests for the Neo4j store against a fake driver."""

import json
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import pytest
from neo4j.exceptions import ServiceUnavailable

from memorai.core.errors import StorageError
from memorai.infrastructure.storage.neo4j import Neo4jMemoryStore


class FakeResult:
    def __init__(self, rows: list[dict]):
        self.rows = rows

    async def single(self):
        return self.rows[0] if self.rows else None

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for row in self.rows:
            yield row


def store_with_session(*results: FakeResult | Exception) -> tuple[Neo4jMemoryStore, AsyncMock]:
    session = MagicMock()
    session.run = AsyncMock(side_effect=list(results))

    @asynccontextmanager
    async def open_session():
        yield session

    store = Neo4jMemoryStore("bolt://localhost:7687", "neo4j", "secret")
    store.driver = MagicMock()
    store.driver.session.side_effect = open_session
    return store, session.run


RECORD = {"id": "abc", "text": "hello", "created_at": "2026-01-01T00:00:00Z"}


class TestNeo4jMemoryStore:
    async def test_put_serializes_record(self):
        store, run = store_with_session(FakeResult([]))
        await store.put("abc", RECORD)

        kwargs = run.await_args.kwargs
        assert kwargs["id"] == "abc"
        assert kwargs["created_at"] == "2026-01-01T00:00:00.000000+00:00"
        assert json.loads(kwargs["data"]) == RECORD

    async def test_get_found_and_missing(self):
        store, _ = store_with_session(FakeResult([{"data": json.dumps(RECORD)}]), FakeResult([]))
        assert await store.get("abc") == RECORD
        assert await store.get("missing") is None

    async def test_delete_reports_count(self):
        store, _ = store_with_session(FakeResult([{"deleted": 1}]), FakeResult([{"deleted": 0}]))
        assert await store.delete("abc") is True
        assert await store.delete("abc") is False

    async def test_scan_returns_all_records(self):
        rows = [{"data": json.dumps(RECORD)}, {"data": json.dumps({**RECORD, "id": "def"})}]
        store, _ = store_with_session(FakeResult(rows))
        assert [r["id"] for r in await store.scan()] == ["abc", "def"]

    async def test_driver_errors_become_storage_errors(self):
        store, _ = store_with_session(ServiceUnavailable("connection lost"))
        with pytest.raises(StorageError) as exc_info:
            await store.get("abc")

        assert exc_info.value.details.model_dump()["backend"] == "neo4j"
        assert exc_info.value.details.model_dump()["record_id"] == "abc"
        assert isinstance(exc_info.value.__cause__, ServiceUnavailable)

    async def test_operations_before_open_fail_cleanly(self):
        store = Neo4jMemoryStore("bolt://localhost:7687", "neo4j", "secret")
        with pytest.raises(StorageError, match="not open"):
            await store.scan()
