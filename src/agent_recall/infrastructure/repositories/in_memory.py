"""Process-local memory store and vector index.

Used when no graph database is provisioned, and as the store in tests.
"""

import asyncio
from collections.abc import Sequence

from agent_recall.core.logging import get_logger
from agent_recall.domain.models import MemoryChunk, SimilarityResult
from agent_recall.domain.models.memory import recency_key
from agent_recall.infrastructure.repositories.base import BaseMemoryStore
from agent_recall.services import AgentDirectory, EmbeddingService
from agent_recall.services.similarity import rank, score_chunks

logger = get_logger(__name__)


class InMemoryMemoryStore(BaseMemoryStore):
    def __init__(
        self,
        embeddings: EmbeddingService,
        directory: AgentDirectory,
        dimensions: int | None = None,
    ):
        super().__init__(embeddings, directory, dimensions)
        self._chunks: dict[str, list[MemoryChunk]] = {}
        self._lock = asyncio.Lock()

    async def _persist(self, chunk: MemoryChunk) -> MemoryChunk:
        async with self._lock:
            self._chunks.setdefault(chunk.session_id, []).append(chunk)
        return chunk

    async def add(self, chunk: MemoryChunk) -> MemoryChunk:
        """Insert a fully-formed chunk as-is (imports and fixtures)."""
        return await self._persist(chunk)

    async def load_for_sessions(self, session_ids: Sequence[str], limit: int | None = None) -> list[MemoryChunk]:
        async with self._lock:
            unique = {
                chunk.id: chunk
                for session_id in dict.fromkeys(session_ids)
                for chunk in self._chunks.get(session_id, [])
            }
        chunks = sorted(unique.values(), key=recency_key, reverse=True)
        return chunks[:limit] if limit is not None else chunks

    async def delete_session(self, session_id: str) -> int:
        """Drop every chunk owned by a session; mirrors the session cascade."""
        async with self._lock:
            removed = self._chunks.pop(session_id, [])
        logger.info("Removed session chunks", session_id=session_id, count=len(removed))
        return len(removed)


class InMemoryVectorIndex:
    """Exact cosine search over an ``InMemoryMemoryStore``.

    Scores with the same function as the scanning fallback, so both paths
    agree to the bit on scores and therefore on ordering.
    """

    def __init__(self, store: InMemoryMemoryStore):
        self.store = store

    async def available(self) -> bool:
        return True

    async def query(
        self,
        vector: list[float],
        session_ids: Sequence[str],
        top_k: int,
        threshold: float,
    ) -> list[SimilarityResult]:
        if not vector or top_k <= 0:
            return []

        chunks = await self.store.load_for_sessions(session_ids)
        return rank(score_chunks(vector, chunks, threshold), top_k)
