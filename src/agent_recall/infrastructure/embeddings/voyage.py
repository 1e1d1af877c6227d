"""Voyage AI embedding service."""

import time
from typing import Any

import voyageai

from agent_recall.core.base import EmbeddingErrorDetails, ErrorLevel
from agent_recall.core.circuit_breaker import CircuitBreaker
from agent_recall.core.config import settings
from agent_recall.core.decorators import with_error_handling
from agent_recall.core.errors import ConfigurationError, EmbeddingProviderError, ServiceError
from agent_recall.core.logging import get_logger

logger = get_logger(__name__)


class VoyageEmbeddingService:
    """Embeds text with the Voyage AI API.

    Every call goes to the provider; there is no cache and no retry. A
    vector of unexpected length is returned unchanged and only logged, so
    callers decide what to do with it.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        dimensions: int | None = None,
        timeout: float | None = None,
        client: Any | None = None,
        circuit_breaker: CircuitBreaker | None = None,
    ) -> None:
        """Initialize the Voyage embedding service.

        Args:
            api_key: Optional key override (defaults to settings.voyage_api_key)
            model: Optional model override (defaults to settings.embedding_model)
            dimensions: Expected vector length (defaults to settings.embedding_dimensions)
            timeout: Request timeout in seconds
            client: Pre-built ``voyageai.AsyncClient``; mostly for tests

        Raises:
            ConfigurationError: If no client is given and no API key is configured
        """
        self.model = model or settings.embedding_model
        self.dimensions = dimensions or settings.embedding_dimensions

        if client is None:
            key = api_key or settings.voyage_api_key.get_secret_value()
            if not key:
                raise ConfigurationError(
                    message="Voyage API key not found in settings",
                    details={"source": "VoyageEmbeddingService", "operation": "initialization"},
                )
            client = voyageai.AsyncClient(
                api_key=key,
                max_retries=0,
                timeout=timeout or settings.embedding_timeout_seconds,
            )
        self.client = client

        self._circuit_breaker = circuit_breaker or CircuitBreaker(
            name="voyage_api",
            failure_threshold=3,
            recovery_timeout=30.0,
        )

    def get_model_dimensions(self) -> int:
        return self.dimensions

    def _details(self, operation: str, text: str, **extra: Any) -> EmbeddingErrorDetails:
        return EmbeddingErrorDetails(
            source="VoyageEmbeddingService",
            operation=operation,
            service_name="Voyage AI",
            endpoint="/embeddings",
            model_name=self.model,
            text_length=len(text),
            **extra,
        )

    async def _call_voyage_api(self, text: str) -> list[float]:
        response = await self.client.embed(texts=[text], model=self.model)
        embeddings = getattr(response, "embeddings", None)
        if not embeddings or not embeddings[0]:
            raise EmbeddingProviderError(
                message="Voyage API returned no embedding",
                details=self._details("embed", text, status_code=200),
            )
        return [float(value) for value in embeddings[0]]

    @with_error_handling(error_level=ErrorLevel.WARNING, reraise=True)
    async def embed(self, text: str) -> list[float]:
        """Generate an embedding vector for ``text``.

        Raises:
            EmbeddingProviderError: If the text is blank, the provider fails,
                returns nothing, or the circuit is open
        """
        if not text or not text.strip():
            raise EmbeddingProviderError(
                message="Cannot embed empty text",
                details=self._details("embed", text or ""),
            )

        started = time.perf_counter()
        try:
            vector = await self._circuit_breaker.call_async(self._call_voyage_api, text)
        except EmbeddingProviderError:
            raise
        except ServiceError as e:
            raise EmbeddingProviderError(
                message=f"Embedding provider unavailable: {e.message}",
                details=self._details("embed", text, status_code=503),
            ) from e
        except Exception as e:
            raise EmbeddingProviderError(
                message=f"Embedding request failed: {e!s}",
                details=self._details(
                    "embed",
                    text,
                    latency_ms=(time.perf_counter() - started) * 1000,
                ),
            ) from e

        if len(vector) != self.dimensions:
            logger.warning(
                "Embedding dimension mismatch",
                model=self.model,
                expected_dimensions=self.dimensions,
                actual_dimensions=len(vector),
            )

        return vector
