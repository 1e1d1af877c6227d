"""Service layer interfaces.

Collaborators the engine talks to are described as protocols so that the
Neo4j / Voyage implementations and in-process test doubles are
interchangeable.
"""

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from agent_recall.domain.models import (
    AgentConfig,
    ChatMessage,
    GenerationParams,
    InstructionSources,
    MemoryChunk,
    SimilarityResult,
)


@runtime_checkable
class EmbeddingService(Protocol):
    """Turns text into a vector of the configured dimension."""

    async def embed(self, text: str) -> list[float]:
        ...


@runtime_checkable
class MemoryStore(Protocol):
    """Append-only log of memory chunks."""

    async def save(self, session_id: str, chunk_text: str, vector: list[float] | None = None) -> MemoryChunk:
        ...

    async def load_for_session(self, session_id: str, limit: int | None = None) -> list[MemoryChunk]:
        ...

    async def load_for_sessions(self, session_ids: Sequence[str], limit: int | None = None) -> list[MemoryChunk]:
        ...

    async def load_for_agent(self, agent_id: str, limit: int | None = None) -> list[MemoryChunk]:
        ...


@runtime_checkable
class VectorIndex(Protocol):
    """Accelerated nearest-neighbour lookup over stored chunk vectors."""

    async def available(self) -> bool:
        ...

    async def query(
        self,
        vector: list[float],
        session_ids: Sequence[str],
        top_k: int,
        threshold: float,
    ) -> list[SimilarityResult]:
        ...


@runtime_checkable
class AgentDirectory(Protocol):
    """Agent, session and instruction lookups owned by the wider platform."""

    async def get_agent(self, agent_id: str) -> AgentConfig:
        ...

    async def get_instruction_sources(self, agent: AgentConfig) -> InstructionSources:
        ...

    async def list_session_ids(self, agent_id: str) -> list[str]:
        ...


@runtime_checkable
class ChatModel(Protocol):
    async def generate(self, messages: list[ChatMessage], params: GenerationParams) -> str:
        ...


@runtime_checkable
class Summarizer(Protocol):
    async def summarize(self, texts: list[str], max_length: int) -> str:
        """Compress related memories into one text of at most ``max_length`` characters."""
        ...


__all__ = [
    "AgentDirectory",
    "ChatModel",
    "EmbeddingService",
    "MemoryStore",
    "Summarizer",
    "VectorIndex",
]
