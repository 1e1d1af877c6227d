"""Behaviour shared by every memory store backend."""

from abc import ABC, abstractmethod
from collections.abc import Sequence

from agent_recall.core.config import settings
from agent_recall.core.errors import EmbeddingProviderError
from agent_recall.core.logging import get_logger
from agent_recall.domain.models import MemoryChunk
from agent_recall.services import AgentDirectory, EmbeddingService

logger = get_logger(__name__)


class BaseMemoryStore(ABC):
    """Append-only chunk log.

    Subclasses persist and load chunks; embedding on save and agent-scope
    resolution are handled here so every backend behaves the same.
    """

    def __init__(
        self,
        embeddings: EmbeddingService,
        directory: AgentDirectory,
        dimensions: int | None = None,
    ):
        self.embeddings = embeddings
        self.directory = directory
        self.dimensions = dimensions or settings.embedding_dimensions

    @abstractmethod
    async def _persist(self, chunk: MemoryChunk) -> MemoryChunk:
        ...

    @abstractmethod
    async def load_for_sessions(self, session_ids: Sequence[str], limit: int | None = None) -> list[MemoryChunk]:
        """Chunks of all given sessions, deduplicated by id, newest first."""

    async def _vector_for(self, session_id: str, chunk_text: str, vector: list[float] | None) -> list[float] | None:
        if vector is None:
            try:
                vector = await self.embeddings.embed(chunk_text)
            except EmbeddingProviderError as e:
                logger.warning(
                    "Saving memory chunk without vector",
                    session_id=session_id,
                    reason=e.message,
                )
                return None

        if len(vector) != self.dimensions:
            logger.warning(
                "Dropping vector with unexpected dimension",
                session_id=session_id,
                expected_dimensions=self.dimensions,
                actual_dimensions=len(vector),
            )
            return None
        return vector

    async def save(self, session_id: str, chunk_text: str, vector: list[float] | None = None) -> MemoryChunk:
        """Persist a new chunk, embedding it first when no vector is given.

        Embedding failures never fail the save: the chunk is stored without
        a vector and is simply invisible to similarity search.
        """
        chunk = MemoryChunk(
            session_id=session_id,
            chunk=chunk_text,
            vector=await self._vector_for(session_id, chunk_text, vector),
        )
        stored = await self._persist(chunk)
        logger.debug(
            "Saved memory chunk",
            session_id=session_id,
            chunk_id=str(stored.id),
            embedded=stored.vector is not None,
        )
        return stored

    async def load_for_session(self, session_id: str, limit: int | None = None) -> list[MemoryChunk]:
        return await self.load_for_sessions([session_id], limit=limit)

    async def load_for_agent(self, agent_id: str, limit: int | None = None) -> list[MemoryChunk]:
        """Union of the chunks of every session the agent owns."""
        session_ids = await self.directory.list_session_ids(agent_id)
        if not session_ids:
            return []
        return await self.load_for_sessions(session_ids, limit=limit)
