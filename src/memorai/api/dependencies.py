"""API dependencies."""

from fastapi import HTTPException

from memorai.services.memory_service import MemoryService

# Set by the application lifespan
memory_service: MemoryService | None = None


async def get_memory_service() -> MemoryService:
    """The process-wide memory service, or 503 while it is not initialized."""
    if memory_service is None:
        raise HTTPException(status_code=503, detail="Services not initialized")
    return memory_service
