"""Memory API endpoints."""

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, Field

from memorai.api.dependencies import get_memory_service
from memorai.core.logging import get_logger
from memorai.domain.models import (
    BulkImportOutcome,
    MemoryCreate,
    MemoryFilter,
    MemoryPage,
    MemoryStats,
    MemoryView,
    Profile,
    SearchResult,
)
from memorai.services.memory_service import MemoryService

logger = get_logger(__name__)
router = APIRouter()


class BulkCreateRequest(BaseModel):
    """Request model for importing many memories at once."""

    memories: list[MemoryCreate] = Field(default_factory=list)


def memory_filter(
    tag: str | None = Query(None, description="Only memories carrying this tag"),
    source: str | None = Query(None, description="Only memories from this source"),
) -> MemoryFilter:
    return MemoryFilter(tag=tag, source=source)


@router.post(
    "/memories",
    response_model=MemoryView,
    status_code=status.HTTP_201_CREATED,
    operation_id="add_memory",
)
async def create_memory(
    request: MemoryCreate,
    memory_service: MemoryService = Depends(get_memory_service),
) -> MemoryView:
    """Store a new memory. Its text is embedded so it can be found by meaning later."""
    memory = await memory_service.add(request)
    return memory.to_view()


@router.get("/memories", response_model=MemoryPage, operation_id="list_memories")
async def list_memories(
    page: int = Query(1, description="1-based page number"),
    per_page: int | None = Query(None, description="Items per page (capped at 100)"),
    filters: MemoryFilter = Depends(memory_filter),
    memory_service: MemoryService = Depends(get_memory_service),
) -> MemoryPage:
    """List stored memories, newest first."""
    return await memory_service.list(filters, page=page, per_page=per_page)


@router.post("/memories/bulk", response_model=BulkImportOutcome, operation_id="bulk_import")
async def bulk_create(
    request: BulkCreateRequest,
    memory_service: MemoryService = Depends(get_memory_service),
) -> BulkImportOutcome:
    """Store many memories; per-item failures are reported, not raised."""
    return await memory_service.add_many(request.memories)


@router.get("/memories/{memory_id}", response_model=MemoryView, operation_id="get_memory")
async def get_memory(
    memory_id: str,
    memory_service: MemoryService = Depends(get_memory_service),
) -> MemoryView:
    """Fetch a single memory by id."""
    memory = await memory_service.get(memory_id)
    return memory.to_view()


@router.delete(
    "/memories/{memory_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    operation_id="delete_memory",
)
async def delete_memory(
    memory_id: str,
    memory_service: MemoryService = Depends(get_memory_service),
) -> Response:
    """Delete a memory. Succeeds whether or not it existed."""
    await memory_service.delete(memory_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/search", response_model=list[SearchResult], operation_id="search_memories")
async def search(
    q: str = Query(..., description="Free text to search for by meaning"),
    limit: int | None = Query(None, description="Maximum results (default 10, capped at 100)"),
    filters: MemoryFilter = Depends(memory_filter),
    memory_service: MemoryService = Depends(get_memory_service),
) -> list[SearchResult]:
    """Semantic search: memories most similar in meaning to ``q``, best first."""
    return await memory_service.search(q, limit=limit, memory_filter=filters)


@router.get("/stats", response_model=MemoryStats, operation_id="memory_stats")
async def stats(memory_service: MemoryService = Depends(get_memory_service)) -> MemoryStats:
    """Totals plus per-tag and per-source counts."""
    return await memory_service.stats()


@router.get("/profile", response_model=Profile, operation_id="generate_profile")
async def get_profile(
    filters: MemoryFilter = Depends(memory_filter),
    memory_service: MemoryService = Depends(get_memory_service),
) -> Profile:
    """Generate a third-person profile summary from stored memories."""
    return await memory_service.profile(filters)
