from types import SimpleNamespace

import pytest
from structlog.testing import capture_logs

from agent_recall.core.circuit_breaker import CircuitBreaker, CircuitState
from agent_recall.core.errors import ConfigurationError, EmbeddingProviderError
from agent_recall.infrastructure.embeddings import VoyageEmbeddingService


class FakeVoyageClient:
    def __init__(self, embeddings=None, error: Exception | None = None):
        self.embeddings = embeddings
        self.error = error
        self.calls: list[dict] = []

    async def embed(self, texts, model):
        self.calls.append({"texts": texts, "model": model})
        if self.error is not None:
            raise self.error
        return SimpleNamespace(embeddings=self.embeddings)


def service_with(client: FakeVoyageClient, dimensions: int = 3, breaker: CircuitBreaker | None = None):
    return VoyageEmbeddingService(model="voyage-test", dimensions=dimensions, client=client, circuit_breaker=breaker)


@pytest.mark.asyncio
async def test_embed_returns_vector():
    client = FakeVoyageClient(embeddings=[[0.1, 0.2, 0.3]])

    vector = await service_with(client).embed("hello")

    assert vector == [0.1, 0.2, 0.3]
    assert client.calls == [{"texts": ["hello"], "model": "voyage-test"}]


@pytest.mark.asyncio
async def test_every_call_reaches_the_provider():
    client = FakeVoyageClient(embeddings=[[0.1, 0.2, 0.3]])
    service = service_with(client)

    await service.embed("hello")
    await service.embed("hello")

    assert len(client.calls) == 2


@pytest.mark.asyncio
async def test_dimension_mismatch_is_logged_and_returned():
    client = FakeVoyageClient(embeddings=[[0.1, 0.2]])

    with capture_logs() as logs:
        vector = await service_with(client, dimensions=3).embed("hello")

    assert vector == [0.1, 0.2]
    mismatch = [entry for entry in logs if entry["event"] == "Embedding dimension mismatch"]
    assert mismatch[0]["log_level"] == "warning"
    assert (mismatch[0]["expected_dimensions"], mismatch[0]["actual_dimensions"]) == (3, 2)


@pytest.mark.asyncio
async def test_empty_response_raises():
    client = FakeVoyageClient(embeddings=[])

    with pytest.raises(EmbeddingProviderError):
        await service_with(client).embed("hello")


@pytest.mark.asyncio
async def test_upstream_error_is_wrapped():
    client = FakeVoyageClient(error=ConnectionError("connection reset"))

    with pytest.raises(EmbeddingProviderError) as exc_info:
        await service_with(client).embed("hello")

    assert isinstance(exc_info.value.__cause__, ConnectionError)
    assert exc_info.value.details.model_name == "voyage-test"


@pytest.mark.asyncio
async def test_blank_text_is_rejected_without_a_call():
    client = FakeVoyageClient(embeddings=[[0.1, 0.2, 0.3]])

    with pytest.raises(EmbeddingProviderError):
        await service_with(client).embed("   ")
    assert client.calls == []


@pytest.mark.asyncio
async def test_open_circuit_fails_fast():
    client = FakeVoyageClient(error=TimeoutError("read timeout"))
    breaker = CircuitBreaker(name="voyage_test", failure_threshold=2, recovery_timeout=60.0)
    service = service_with(client, breaker=breaker)

    for _ in range(2):
        with pytest.raises(EmbeddingProviderError):
            await service.embed("hello")
    assert breaker.state == CircuitState.OPEN

    with pytest.raises(EmbeddingProviderError) as exc_info:
        await service.embed("hello")
    assert len(client.calls) == 2
    assert "unavailable" in exc_info.value.message


@pytest.mark.asyncio
async def test_circuit_recovers_after_timeout():
    now = [0.0]
    client = FakeVoyageClient(error=TimeoutError("read timeout"))
    breaker = CircuitBreaker(name="voyage_test", failure_threshold=1, recovery_timeout=10.0, clock=lambda: now[0])
    service = service_with(client, breaker=breaker)

    with pytest.raises(EmbeddingProviderError):
        await service.embed("hello")
    assert breaker.state == CircuitState.OPEN

    now[0] = 11.0
    client.error = None
    client.embeddings = [[1.0, 0.0, 0.0]]

    assert await service.embed("hello") == [1.0, 0.0, 0.0]
    assert breaker.state == CircuitState.CLOSED


def test_missing_api_key_is_a_configuration_error(monkeypatch):
    from pydantic import SecretStr

    from agent_recall.core.config import settings

    monkeypatch.setattr(settings, "voyage_api_key", SecretStr(""))

    with pytest.raises(ConfigurationError):
        VoyageEmbeddingService()
