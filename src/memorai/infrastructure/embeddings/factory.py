"""Construction of the embedding gateway from settings."""

from __future__ import annotations

from typing import TYPE_CHECKING

from memorai.core.base import ErrorDetails
from memorai.core.errors import ServiceError
from memorai.core.logging import get_logger
from memorai.infrastructure.embeddings.ollama import OllamaGateway

if TYPE_CHECKING:
    import httpx

    from memorai.core.config import Settings
    from memorai.services import EmbeddingGateway

logger = get_logger(__name__)


def validate_embedding_gateway(gateway: EmbeddingGateway) -> None:
    """Fail fast on a gateway that cannot produce usable vectors.

    Raises:
        ServiceError: If the gateway reports a non-positive dimension
    """
    if gateway.dimensions <= 0:
        raise ServiceError(
            message=f"Embedding gateway reports invalid dimensions: {gateway.dimensions}",
            details=ErrorDetails(source="embedding_factory", operation="validate_embedding_gateway"),
        )


def create_embedding_gateway(settings: Settings, client: httpx.AsyncClient | None = None) -> OllamaGateway:
    """Build the Ollama gateway described by ``settings``."""
    gateway = OllamaGateway(settings, client=client)
    validate_embedding_gateway(gateway)
    logger.info(
        f"Using embedding model '{gateway.embed_model}' with {gateway.dimensions} dimensions",
        ollama_url=gateway.base_url,
        chat_model=gateway.chat_model,
    )
    return gateway
