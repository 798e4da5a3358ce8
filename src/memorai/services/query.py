"""Semantic search over stored memories."""

from __future__ import annotations

from typing import TYPE_CHECKING

from memorai.core.base import ValidationErrorDetails
from memorai.core.errors import ValidationError
from memorai.core.logging import get_logger
from memorai.domain.models import MemoryFilter, SearchResult

if TYPE_CHECKING:
    from memorai.infrastructure.repositories import MemoryRepository
    from memorai.services import EmbeddingGateway
    from memorai.services.similarity_index import SimilarityIndex

logger = get_logger(__name__)


class QueryEngine:
    """Embeds a query, ranks the index and hydrates the winners."""

    def __init__(
        self,
        gateway: EmbeddingGateway,
        repository: MemoryRepository,
        index: SimilarityIndex,
        default_limit: int = 10,
        max_limit: int = 100,
    ):
        self.gateway = gateway
        self.repository = repository
        self.index = index
        self.default_limit = default_limit
        self.max_limit = max_limit

    def _resolve_limit(self, limit: int | None) -> int:
        if limit is None:
            return self.default_limit
        if limit <= 0:
            raise ValidationError(
                message="limit must be a positive integer",
                details=ValidationErrorDetails(
                    source="query_engine",
                    operation="search",
                    field="limit",
                    actual_value=limit,
                    constraint="> 0",
                ),
            )
        return min(limit, self.max_limit)

    async def search(
        self,
        query_text: str,
        limit: int | None = None,
        memory_filter: MemoryFilter | None = None,
    ) -> list[SearchResult]:
        """Memories most similar to ``query_text``, best first.

        Args:
            query_text: Free text to search for
            limit: Maximum number of results; defaults to ``default_limit`` and is capped at ``max_limit``
            memory_filter: Restrict candidates to memories with this tag and/or source

        Raises:
            ValidationError: On blank query text or a non-positive limit
        """
        if not query_text or not query_text.strip():
            raise ValidationError(
                message="Query text cannot be empty",
                details=ValidationErrorDetails(
                    source="query_engine",
                    operation="search",
                    field="q",
                    constraint="non-empty",
                ),
            )
        k = self._resolve_limit(limit)

        query_vector = await self.gateway.embed(query_text)

        candidate_ids = None
        if memory_filter is not None and not memory_filter.is_empty:
            candidate_ids = [m.id for m in await self.repository.matching(memory_filter)]
            if not candidate_ids:
                return []

        ranked = self.index.top_k(query_vector, k, candidate_ids=candidate_ids)

        hydrated = []
        for memory_id, score in ranked:
            memory = await self.repository.get(memory_id)
            if memory is None:
                # deleted between ranking and hydration
                continue
            hydrated.append((memory, score))

        hydrated.sort(key=lambda pair: (pair[1], pair[0].created_at), reverse=True)
        logger.debug(f"Search returned {len(hydrated)} of {len(ranked)} ranked memories", limit=k)
        return [SearchResult(memory=memory.to_view(), score=score) for memory, score in hydrated]
