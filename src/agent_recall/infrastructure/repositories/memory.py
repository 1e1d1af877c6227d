from collections.abc import Sequence

from neo4j import AsyncDriver, AsyncSession

from agent_recall.core.base import ErrorLevel
from agent_recall.core.decorators import with_error_handling, with_session
from agent_recall.core.errors import ProcessingError
from agent_recall.core.logging import get_logger
from agent_recall.domain.models import MemoryChunk
from agent_recall.infrastructure.neo4j.queries import MemoryQueries
from agent_recall.infrastructure.repositories.base import BaseMemoryStore
from agent_recall.services import AgentDirectory, EmbeddingService

logger = get_logger(__name__)


class Neo4jMemoryStore(BaseMemoryStore):
    """Chunks stored as ``(:ChatSession)-[:HAS_MEMORY]->(:MemoryChunk)``.

    Removing a session's chunks is part of deleting the session, which the
    platform does with ``DETACH DELETE``; the store itself never deletes.
    """

    def __init__(
        self,
        driver: AsyncDriver,
        embeddings: EmbeddingService,
        directory: AgentDirectory,
        dimensions: int | None = None,
    ):
        super().__init__(embeddings, directory, dimensions)
        self.driver = driver

    @with_error_handling(error_level=ErrorLevel.ERROR, reraise=True)
    @with_session()
    async def _persist(self, session: AsyncSession, chunk: MemoryChunk) -> MemoryChunk:
        query, _ = MemoryQueries.save_chunk()
        result = await session.run(query, session_id=chunk.session_id, properties=chunk.to_neo4j_properties())

        record = await result.single()
        if not record:
            raise ProcessingError(
                message="Failed to store memory chunk",
                details={
                    "source": "neo4j_memory_store",
                    "operation": "save",
                    "session_id": chunk.session_id,
                },
            )
        return chunk

    @with_error_handling(error_level=ErrorLevel.ERROR, reraise=True)
    @with_session()
    async def load_for_sessions(
        self,
        session: AsyncSession,
        session_ids: Sequence[str],
        limit: int | None = None,
    ) -> list[MemoryChunk]:
        if not session_ids:
            return []

        query, _ = MemoryQueries.load_for_sessions(limited=limit is not None)
        params: dict = {"session_ids": list(dict.fromkeys(session_ids))}
        if limit is not None:
            params["limit"] = limit

        result = await session.run(query, **params)
        chunks: list[MemoryChunk] = []
        seen: set[str] = set()
        async for record in result:
            node = dict(record["m"])
            if node["id"] in seen:
                continue
            seen.add(node["id"])
            chunks.append(MemoryChunk.from_neo4j_record(node))

        logger.debug(f"Loaded {len(chunks)} chunks for {len(params['session_ids'])} sessions")
        return chunks
