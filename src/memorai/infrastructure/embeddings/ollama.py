"""Ollama embedding and generation gateway."""

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from memorai.core.base import AIServiceErrorDetails, ErrorLevel, ValidationErrorDetails
from memorai.core.circuit_breaker import CircuitBreaker, RetryWithCircuitBreaker
from memorai.core.config import Settings
from memorai.core.decorators import with_error_handling
from memorai.core.errors import InvalidResponse, ServiceError, ServiceUnreachable, ValidationError
from memorai.core.logging import get_logger

logger = get_logger(__name__)

SERVICE_NAME = "ollama"


class OllamaGateway:
    """Talks to the Ollama HTTP API for embeddings (``/api/embed``) and
    completions (``/api/generate``).

    Each attempt is bounded by a timeout; connection failures and timeouts
    (``ServiceUnreachable``) are retried with exponential backoff behind a
    circuit breaker. Non-success statuses (``ServiceError``) and malformed
    payloads (``InvalidResponse``) surface immediately.
    """

    def __init__(
        self,
        settings: Settings,
        client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the gateway.

        Args:
            settings: Application settings (URL, models, timeouts, retry policy)
            client: Optional pre-built HTTP client; the gateway closes only clients it created
            sleep: Awaitable used for backoff between retries
        """
        self.base_url = settings.ollama_url.rstrip("/")
        self.embed_model = settings.embed_model
        self.chat_model = settings.chat_model
        self.dimensions = settings.embedding_dimensions
        self.embed_timeout = settings.embed_timeout
        self.generate_timeout = settings.generate_timeout
        self.max_embed_chars = settings.max_embed_chars
        self.max_prompt_chars = settings.max_prompt_chars

        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=httpx.Timeout(settings.embed_timeout))

        self._circuit_breaker = CircuitBreaker(
            name=SERVICE_NAME,
            failure_threshold=settings.circuit_failure_threshold,
            recovery_timeout=settings.circuit_recovery_timeout,
            expected_exception_types=(ServiceUnreachable,),
        )
        self._retry_handler = RetryWithCircuitBreaker(
            circuit_breaker=self._circuit_breaker,
            max_attempts=settings.max_retries,
            initial_delay=settings.retry_initial_delay,
            backoff_factor=settings.retry_backoff_factor,
            max_delay=settings.retry_max_delay,
            retryable_exceptions=(ServiceUnreachable,),
            sleep=sleep,
        )

    def _details(self, operation: str, model: str, **extra: Any) -> AIServiceErrorDetails:
        return AIServiceErrorDetails(
            source="OllamaGateway",
            operation=operation,
            service_name=SERVICE_NAME,
            endpoint=f"{self.base_url}/api/{operation}",
            model_name=model,
            **extra,
        )

    @staticmethod
    def _prepare(text: str, cap: int, operation: str) -> str:
        """Reject blank input; cut anything over ``cap`` characters to its prefix."""
        if not text or not text.strip():
            raise ValidationError(
                message=f"Cannot {operation} empty text",
                details=ValidationErrorDetails(
                    source="OllamaGateway",
                    operation=operation,
                    field="text",
                    constraint="non-empty",
                ),
            )
        if len(text) > cap:
            logger.debug(f"Truncating {operation} input from {len(text)} to {cap} characters")
            return text[:cap]
        return text

    async def _post(self, operation: str, model: str, payload: dict[str, Any], timeout: float) -> dict[str, Any]:
        """Single attempt; maps transport failures onto the gateway error taxonomy."""
        url = f"{self.base_url}/api/{operation}"
        started = time.perf_counter()
        try:
            async with asyncio.timeout(timeout):
                response = await self.client.post(url, json=payload, timeout=timeout)
        except (TimeoutError, httpx.TimeoutException) as e:
            raise ServiceUnreachable(
                message=f"Ollama {operation} request timed out after {timeout}s",
                details=self._details(operation, model),
            ) from e
        except httpx.TransportError as e:
            raise ServiceUnreachable(
                message=f"Failed to connect to Ollama at {self.base_url}: {e}",
                details=self._details(operation, model),
            ) from e

        latency_ms = (time.perf_counter() - started) * 1000
        if response.is_error:
            raise ServiceError(
                message=f"Ollama {operation} request failed ({response.status_code}): {response.text[:500]}",
                details=self._details(operation, model, status_code=response.status_code, latency_ms=latency_ms),
            )

        try:
            data = response.json()
        except ValueError as e:
            raise InvalidResponse(
                message=f"Ollama {operation} response is not valid JSON",
                details=self._details(operation, model, status_code=response.status_code),
            ) from e
        if not isinstance(data, dict):
            raise InvalidResponse(
                message=f"Ollama {operation} response is not a JSON object",
                details=self._details(operation, model, status_code=response.status_code),
            )

        logger.debug(f"Ollama {operation} completed in {latency_ms:.1f}ms", model=model)
        return data

    def _parse_embedding(self, data: dict[str, Any]) -> list[float]:
        embeddings = data.get("embeddings")
        if not isinstance(embeddings, list) or not embeddings or not isinstance(embeddings[0], list):
            raise InvalidResponse(
                message="No embedding returned from Ollama",
                details=self._details("embed", self.embed_model),
            )

        vector = embeddings[0]
        if len(vector) != self.dimensions:
            raise InvalidResponse(
                message=f"Ollama returned a {len(vector)}-dimension embedding, expected {self.dimensions}",
                details=self._details(
                    "embed",
                    self.embed_model,
                    expected_dimensions=self.dimensions,
                    actual_dimensions=len(vector),
                ),
            )
        try:
            return [float(x) for x in vector]
        except (TypeError, ValueError) as e:
            raise InvalidResponse(
                message="Ollama embedding contains non-numeric values",
                details=self._details("embed", self.embed_model),
            ) from e

    @with_error_handling(error_level=ErrorLevel.ERROR)
    async def embed(self, text: str) -> list[float]:
        """Generate an embedding vector for ``text``."""
        text = self._prepare(text, self.max_embed_chars, "embed")
        data = await self._retry_handler.call_async(
            self._post,
            "embed",
            self.embed_model,
            {"model": self.embed_model, "input": text},
            self.embed_timeout,
        )
        return self._parse_embedding(data)

    @with_error_handling(error_level=ErrorLevel.ERROR)
    async def generate(self, prompt: str) -> str:
        """Generate a completion for ``prompt`` (non-streaming)."""
        prompt = self._prepare(prompt, self.max_prompt_chars, "generate")
        data = await self._retry_handler.call_async(
            self._post,
            "generate",
            self.chat_model,
            {"model": self.chat_model, "prompt": prompt, "stream": False},
            self.generate_timeout,
        )
        text = data.get("response")
        if not isinstance(text, str):
            raise InvalidResponse(
                message="Ollama generate response has no 'response' text",
                details=self._details("generate", self.chat_model),
            )
        return text.strip()

    def circuit_state(self) -> dict[str, Any]:
        return self._circuit_breaker.get_state()

    async def close(self) -> None:
        """Close the HTTP client if the gateway created it."""
        if self._owns_client:
            await self.client.aclose()
