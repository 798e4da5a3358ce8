"""Tests for domain models and settings."""

from pathlib import Path

import pytest
from pydantic import ValidationError as PydanticValidationError

from memorai.core.config import Settings
from memorai.domain.models import BulkFailure, BulkImportOutcome, Memory, MemoryCreate, MemoryFilter


class TestMemoryCreate:
    def test_comma_separated_tags(self):
        assert MemoryCreate(text="x", tags="a, b ,a,,").tags == ["a", "b"]

    def test_none_tags_and_blank_source(self):
        memory = MemoryCreate(text="x", tags=None, source="  ")
        assert memory.tags == []
        assert memory.source == "unspecified"


class TestMemory:
    def test_record_round_trip_keeps_identity(self):
        memory = Memory(text="hello", tags=["t"], embedding=[0.5, 0.25])
        restored = Memory.from_record(memory.to_record())

        assert restored.id == memory.id
        assert restored.created_at == memory.created_at
        assert restored.embedding == [0.5, 0.25]

    def test_frozen(self):
        memory = Memory(text="hello", embedding=[1.0])
        with pytest.raises(PydanticValidationError):
            memory.text = "changed"  # type: ignore[misc]


class TestMemoryFilter:
    def test_matches_tag_and_source(self):
        memory = Memory(text="x", tags=["a", "b"], source="cli", embedding=[1.0])

        assert MemoryFilter().is_empty
        assert MemoryFilter(tag="a").matches(memory)
        assert not MemoryFilter(tag="c").matches(memory)
        assert MemoryFilter(tag="b", source="cli").matches(memory)
        assert not MemoryFilter(source="web").matches(memory)


def test_bulk_outcome_totals_serialized():
    outcome = BulkImportOutcome(failed=[BulkFailure(index=0, reason="empty")])
    dumped = outcome.model_dump()
    assert dumped["created"] == 0
    assert dumped["failed_count"] == 1


class TestSettings:
    def test_env_prefix(self, monkeypatch, tmp_path):
        monkeypatch.setenv("MEMORAI_PORT", "9999")
        monkeypatch.setenv("MEMORAI_DATA_DIR", str(tmp_path))
        monkeypatch.setenv("MEMORAI_STORAGE_BACKEND", "neo4j")

        configured = Settings(_env_file=None)
        assert configured.port == 9999
        assert configured.sqlite_path == Path(tmp_path) / "memorai.sqlite3"
        assert configured.storage_backend == "neo4j"

    def test_api_url_uses_localhost_for_wildcard_host(self):
        assert Settings(_env_file=None, host="0.0.0.0", port=8484).api_url == "http://localhost:8484"
