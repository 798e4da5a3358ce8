"""Embedding and generation service clients."""

from memorai.infrastructure.embeddings.factory import create_embedding_gateway, validate_embedding_gateway
from memorai.infrastructure.embeddings.ollama import OllamaGateway

__all__ = ["OllamaGateway", "create_embedding_gateway", "validate_embedding_gateway"]
