"""Memory service facade wiring ingestion, search, profiles and storage."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Self
from uuid import UUID

from memorai.core.base import ErrorDetails
from memorai.core.errors import NotFoundError
from memorai.core.logging import get_logger
from memorai.domain.models import (
    BulkImportOutcome,
    Memory,
    MemoryCreate,
    MemoryFilter,
    MemoryPage,
    MemoryStats,
    Profile,
    SearchResult,
)
from memorai.infrastructure.repositories import MemoryRepository, parse_memory_id
from memorai.services.ingestion import IngestionPipeline
from memorai.services.profile import ProfileBuilder
from memorai.services.query import QueryEngine
from memorai.services.similarity_index import SimilarityIndex

if TYPE_CHECKING:
    from memorai.core.config import Settings
    from memorai.infrastructure.storage import MemoryStore
    from memorai.services import EmbeddingGateway

logger = get_logger(__name__)


class MemoryService:
    """Single entry point for the HTTP and MCP surfaces.

    Owns the similarity index and keeps it in step with the repository:
    every add upserts, every delete removes, and ``open`` rebuilds it from
    storage before traffic is served.
    """

    def __init__(
        self,
        store: MemoryStore,
        gateway: EmbeddingGateway,
        settings: Settings,
    ):
        self.store = store
        self.gateway = gateway
        self.settings = settings

        self.repository = MemoryRepository(store, dimensions=gateway.dimensions)
        self.index = SimilarityIndex(gateway.dimensions)
        self.ingestion = IngestionPipeline(
            gateway,
            self.repository,
            self.index,
            concurrency=settings.bulk_concurrency,
        )
        self.query_engine = QueryEngine(
            gateway,
            self.repository,
            self.index,
            default_limit=settings.search_default_limit,
            max_limit=settings.search_max_limit,
        )
        self.profile_builder = ProfileBuilder(
            gateway,
            self.repository,
            char_budget=settings.profile_char_budget,
            max_memories=settings.profile_max_memories,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> Self:
        """Build the configured storage backend and Ollama gateway (not yet opened)."""
        from memorai.infrastructure.embeddings import create_embedding_gateway
        from memorai.infrastructure.storage import create_memory_store

        return cls(create_memory_store(settings), create_embedding_gateway(settings), settings)

    async def open(self) -> None:
        """Open storage and load every stored vector into the index."""
        await self.store.open()
        await self.rebuild_index()

    async def close(self) -> None:
        await self.gateway.close()
        await self.store.close()

    async def rebuild_index(self) -> int:
        """Reload the index from storage, oldest memory first."""
        return self.index.rebuild(await self.repository.all())

    async def add(self, item: MemoryCreate) -> Memory:
        return await self.ingestion.add(item)

    async def add_many(self, items: Sequence[MemoryCreate]) -> BulkImportOutcome:
        return await self.ingestion.add_many(items)

    async def search(
        self,
        query_text: str,
        limit: int | None = None,
        memory_filter: MemoryFilter | None = None,
    ) -> list[SearchResult]:
        return await self.query_engine.search(query_text, limit=limit, memory_filter=memory_filter)

    async def get(self, memory_id: UUID | str) -> Memory:
        """Fetch one memory.

        Raises:
            NotFoundError: If no memory has this id
        """
        memory = await self.repository.get(memory_id)
        if memory is None:
            raise NotFoundError(
                message=f"Memory {memory_id} not found",
                details=ErrorDetails(source="memory_service", operation="get", memory_id=str(memory_id)),
            )
        return memory

    async def list(
        self,
        memory_filter: MemoryFilter | None = None,
        page: int = 1,
        per_page: int | None = None,
    ) -> MemoryPage:
        """Newest-first page; ``per_page`` defaults and caps come from settings."""
        if per_page is None:
            per_page = self.settings.list_default_per_page
        per_page = min(per_page, self.settings.list_max_per_page)
        return await self.repository.list(memory_filter, page=page, per_page=per_page)

    async def delete(self, memory_id: UUID | str) -> bool:
        """Remove a memory from storage and the index. Deleting twice is a no-op."""
        deleted = await self.repository.delete(memory_id)
        parsed = parse_memory_id(memory_id)
        if parsed is not None:
            self.index.remove(parsed)
        if deleted:
            logger.info(f"Deleted memory {parsed}")
        return deleted

    async def stats(self) -> MemoryStats:
        return await self.repository.stats()

    async def profile(self, memory_filter: MemoryFilter | None = None) -> Profile:
        return await self.profile_builder.build(memory_filter)
