"""Turning raw text into embedded, persisted and indexed memories."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from typing import TYPE_CHECKING
from uuid import UUID

from memorai.core.base import ApplicationError, ValidationErrorDetails
from memorai.core.errors import ValidationError
from memorai.core.logging import get_logger
from memorai.domain.models import BulkFailure, BulkImportOutcome, Memory, MemoryCreate, MemoryDraft

if TYPE_CHECKING:
    from memorai.infrastructure.repositories import MemoryRepository
    from memorai.services import EmbeddingGateway
    from memorai.services.similarity_index import SimilarityIndex

logger = get_logger(__name__)


class IngestionPipeline:
    """Embeds new memories, stores them and makes them searchable."""

    def __init__(
        self,
        gateway: EmbeddingGateway,
        repository: MemoryRepository,
        index: SimilarityIndex,
        concurrency: int = 4,
    ):
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self.gateway = gateway
        self.repository = repository
        self.index = index
        self.concurrency = concurrency

    async def add(self, item: MemoryCreate) -> Memory:
        """Embed, persist and index a single memory.

        Nothing is stored when embedding fails; the gateway error propagates
        after the gateway has logged it.

        Raises:
            ValidationError: If the text is empty or whitespace
        """
        if not item.text.strip():
            raise ValidationError(
                message="Text cannot be empty",
                details=ValidationErrorDetails(
                    source="ingestion",
                    operation="add",
                    field="text",
                    constraint="non-empty",
                ),
            )

        embedding = await self.gateway.embed(item.text)
        draft = MemoryDraft(**item.model_dump(), embedding=embedding)
        memory = await self.repository.create(draft)
        self.index.upsert(memory.id, memory.embedding)

        logger.info(f"Stored memory {memory.id}", tags=memory.tags, source=memory.source)
        return memory

    async def add_many(self, items: Sequence[MemoryCreate]) -> BulkImportOutcome:
        """Add every item, at most ``concurrency`` at a time.

        A failing item is recorded with its input index and never stops the
        others. Both result lists are in input order.
        """
        if not items:
            return BulkImportOutcome()

        semaphore = asyncio.Semaphore(self.concurrency)

        async def run(position: int, item: MemoryCreate) -> UUID | str:
            async with semaphore:
                try:
                    memory = await self.add(item)
                except Exception as e:
                    reason = e.message if isinstance(e, ApplicationError) else f"{type(e).__name__}: {e}"
                    logger.warning(f"Bulk item {position} failed: {reason}", index=position)
                    return reason
                return memory.id

        results = await asyncio.gather(*(run(position, item) for position, item in enumerate(items)))

        outcome = BulkImportOutcome()
        for index, result in enumerate(results):
            if isinstance(result, UUID):
                outcome.succeeded.append(result)
            else:
                outcome.failed.append(BulkFailure(index=index, reason=result))

        logger.info(
            f"Bulk import finished: {outcome.created} created, {outcome.failed_count} failed",
            total=len(items),
        )
        return outcome
