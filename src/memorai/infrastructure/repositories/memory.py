from __future__ import annotations

from collections import Counter
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError

from memorai.core.base import ErrorLevel, StorageErrorDetails, ValidationErrorDetails
from memorai.core.decorators import with_error_handling
from memorai.core.errors import StorageError, ValidationError
from memorai.core.logging import get_logger
from memorai.domain.models import (
    Memory,
    MemoryDraft,
    MemoryFilter,
    MemoryPage,
    MemoryStats,
    SourceCount,
    TagCount,
    utc_now,
)
from memorai.infrastructure.storage import MemoryStore, Record

logger = get_logger(__name__)


def parse_memory_id(memory_id: UUID | str) -> UUID | None:
    """Ids are opaque to callers; anything that is not a UUID simply matches nothing."""
    if isinstance(memory_id, UUID):
        return memory_id
    try:
        return UUID(str(memory_id))
    except ValueError:
        return None


class MemoryRepository:
    """Durable CRUD over memory records; owns record identity and timestamps."""

    def __init__(self, store: MemoryStore, dimensions: int):
        self.store = store
        self.dimensions = dimensions

    def _check_dimensions(self, embedding: list[float]) -> None:
        if len(embedding) != self.dimensions:
            raise ValidationError(
                message=f"Embedding has {len(embedding)} dimensions, expected {self.dimensions}",
                details=ValidationErrorDetails(
                    source="memory_repository",
                    operation="create",
                    field="embedding",
                    actual_value=len(embedding),
                    constraint=f"len == {self.dimensions}",
                ),
            )

    def _record_to_memory(self, record: Record) -> Memory:
        try:
            return Memory.from_record(record)
        except PydanticValidationError as e:
            logger.error("Failed to convert stored record to Memory", record_id=record.get("id"))
            raise StorageError(
                message=f"Stored record {record.get('id')} is corrupt: {e}",
                details=StorageErrorDetails(
                    source="memory_repository",
                    operation="_record_to_memory",
                    backend=self.store.backend,
                    record_id=str(record.get("id")),
                ),
            ) from e

    @with_error_handling(error_level=ErrorLevel.ERROR, reraise=True)
    async def create(self, memory: MemoryDraft | Memory) -> Memory:
        """Persist a memory, assigning ``id`` and timestamps when it has none."""
        if not isinstance(memory, Memory):
            now = utc_now()
            memory = Memory(**memory.model_dump(), created_at=now, updated_at=now)

        self._check_dimensions(memory.embedding)
        await self.store.put(str(memory.id), memory.to_record())

        logger.debug(f"Stored memory {memory.id}")
        return memory

    async def get(self, memory_id: UUID | str) -> Memory | None:
        parsed = parse_memory_id(memory_id)
        if parsed is None:
            return None
        record = await self.store.get(str(parsed))
        return self._record_to_memory(record) if record else None

    @with_error_handling(error_level=ErrorLevel.ERROR, reraise=True)
    async def delete(self, memory_id: UUID | str) -> bool:
        """Delete a memory. Returns False when there was nothing to delete."""
        parsed = parse_memory_id(memory_id)
        if parsed is None:
            return False
        deleted = await self.store.delete(str(parsed))
        logger.debug(f"Delete memory {parsed}: {'removed' if deleted else 'not found'}")
        return deleted

    @with_error_handling(error_level=ErrorLevel.ERROR, reraise=True)
    async def all(self) -> list[Memory]:
        """Every stored memory, oldest first."""
        records = await self.store.scan()
        return sorted((self._record_to_memory(record) for record in records), key=lambda m: m.created_at)

    async def matching(self, memory_filter: MemoryFilter | None = None) -> list[Memory]:
        """Every memory passing ``memory_filter``, newest first."""
        memories = await self.all()
        if memory_filter is not None and not memory_filter.is_empty:
            memories = [m for m in memories if memory_filter.matches(m)]
        return sorted(memories, key=lambda m: m.created_at, reverse=True)

    @with_error_handling(error_level=ErrorLevel.ERROR, reraise=True)
    async def list(
        self,
        memory_filter: MemoryFilter | None = None,
        page: int = 1,
        per_page: int = 20,
    ) -> MemoryPage:
        """One page of matching memories, newest first (1-based ``page``)."""
        for name, value in (("page", page), ("per_page", per_page)):
            if value < 1:
                raise ValidationError(
                    message=f"{name} must be >= 1",
                    details=ValidationErrorDetails(
                        source="memory_repository",
                        operation="list",
                        field=name,
                        actual_value=value,
                        constraint=">= 1",
                    ),
                )

        memories = await self.matching(memory_filter)
        offset = (page - 1) * per_page
        return MemoryPage(
            items=[m.to_view() for m in memories[offset : offset + per_page]],
            total=len(memories),
            page=page,
            per_page=per_page,
        )

    async def stats(self) -> MemoryStats:
        memories = await self.all()
        tag_counts = Counter(tag for m in memories for tag in m.tags)
        source_counts = Counter(m.source for m in memories)

        def by_count(item: tuple[str, int]) -> tuple[int, str]:
            return (-item[1], item[0])

        return MemoryStats(
            total_memories=len(memories),
            distinct_tags=len(tag_counts),
            distinct_sources=len(source_counts),
            tags=[TagCount(tag=t, count=c) for t, c in sorted(tag_counts.items(), key=by_count)],
            sources=[SourceCount(source=s, count=c) for s, c in sorted(source_counts.items(), key=by_count)],
        )
