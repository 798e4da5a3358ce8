"""Service layer interfaces and implementations."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class EmbeddingGateway(Protocol):
    """External embedding/generation service."""

    dimensions: int

    async def embed(self, text: str) -> list[float]:
        """Embedding vector of exactly ``dimensions`` floats for ``text``."""
        ...

    async def generate(self, prompt: str) -> str:
        """Free text generated from ``prompt``."""
        ...

    async def close(self) -> None: ...


__all__ = ["EmbeddingGateway"]
