"""Shared fixtures: in-process doubles for the engine's collaborators."""

from datetime import UTC, datetime, timedelta

import pytest

from agent_recall.core.config import MemorySettings
from agent_recall.core.errors import EmbeddingProviderError
from agent_recall.domain.models import (
    AgentConfig,
    ChatMessage,
    GenerationParams,
    InstructionSources,
    MemoryChunk,
    RuleApplicationConfig,
)
from agent_recall.infrastructure.repositories import InMemoryMemoryStore, InMemoryVectorIndex
from agent_recall.services.composer import PromptComposer
from agent_recall.services.similarity import SimilaritySearchEngine

DIMENSIONS = 3
FIXED_NOW = datetime(2024, 1, 15, 12, 0, tzinfo=UTC)


class FakeEmbedder:
    """Returns preset vectors per text, or a default one."""

    def __init__(self, vectors: dict[str, list[float]] | None = None, default: list[float] | None = None):
        self.vectors = dict(vectors or {})
        self.default = default or [1.0, 0.0, 0.0]
        self.fail = False
        self.calls: list[str] = []

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.fail:
            raise EmbeddingProviderError("embedding service down")
        return list(self.vectors.get(text, self.default))


class FakeDirectory:
    def __init__(self):
        self.agents: dict[str, AgentConfig] = {}
        self.sessions: dict[str, list[str]] = {}
        self.instructions: dict[str, InstructionSources] = {}

    def add_agent(self, agent: AgentConfig, *session_ids: str, instructions: InstructionSources | None = None):
        self.agents[agent.id] = agent
        self.sessions[agent.id] = list(session_ids)
        if instructions is not None:
            self.instructions[agent.id] = instructions

    async def get_agent(self, agent_id: str) -> AgentConfig:
        return self.agents[agent_id]

    async def get_instruction_sources(self, agent: AgentConfig) -> InstructionSources:
        return self.instructions.get(agent.id, InstructionSources())

    async def list_session_ids(self, agent_id: str) -> list[str]:
        return list(self.sessions.get(agent_id, []))


class FakeChatModel:
    def __init__(self, reply: str = "Hi there!"):
        self.reply = reply
        self.error: Exception | None = None
        self.calls: list[tuple[list[ChatMessage], GenerationParams]] = []

    async def generate(self, messages: list[ChatMessage], params: GenerationParams) -> str:
        self.calls.append((messages, params))
        if self.error is not None:
            raise self.error
        return self.reply


class FakeSummarizer:
    def __init__(self, summary: str = "summary of the conversation"):
        self.summary = summary
        self.error: Exception | None = None
        self.calls: list[tuple[list[str], int]] = []

    async def summarize(self, texts: list[str], max_length: int) -> str:
        self.calls.append((texts, max_length))
        if self.error is not None:
            raise self.error
        return self.summary


def make_chunk(session_id: str, text: str, vector: list[float] | None, minutes_ago: int = 0) -> MemoryChunk:
    return MemoryChunk(
        session_id=session_id,
        chunk=text,
        vector=vector,
        created_at=FIXED_NOW - timedelta(minutes=minutes_ago),
    )


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def directory() -> FakeDirectory:
    return FakeDirectory()


@pytest.fixture
def store(embedder: FakeEmbedder, directory: FakeDirectory) -> InMemoryMemoryStore:
    return InMemoryMemoryStore(embedder, directory, dimensions=DIMENSIONS)


@pytest.fixture
def index(store: InMemoryMemoryStore) -> InMemoryVectorIndex:
    return InMemoryVectorIndex(store)


@pytest.fixture
def memory_settings() -> MemorySettings:
    return MemorySettings(retrieval_timeout_seconds=1.0)


@pytest.fixture
def search(store, directory, index) -> SimilaritySearchEngine:
    return SimilaritySearchEngine(store, directory, index)


@pytest.fixture
def composer() -> PromptComposer:
    return PromptComposer(RuleApplicationConfig(), clock=lambda: FIXED_NOW)
