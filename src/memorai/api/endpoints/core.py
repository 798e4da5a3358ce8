"""Core API endpoints."""

from fastapi import APIRouter

from memorai import __version__
from memorai.domain.models import utc_now

router = APIRouter()


@router.get("/health", operation_id="health")
async def health_check():
    """Liveness check; does not touch storage or the embedding service."""
    return {
        "status": "ok",
        "service": "memorai",
        "version": __version__,
        "timestamp": utc_now().isoformat(),
    }
