"""Neo4j-backed vector index for chunk similarity search."""

from collections.abc import Sequence

from neo4j import AsyncDriver

from agent_recall.core.config import settings
from agent_recall.core.constants import (
    VECTOR_INDEX_GROWTH_FACTOR,
    VECTOR_INDEX_MIN_CANDIDATES,
    VECTOR_INDEX_OVERFETCH_FACTOR,
)
from agent_recall.core.logging import get_logger
from agent_recall.domain.models import MemoryChunk, SimilarityResult
from agent_recall.infrastructure.neo4j.driver import vector_index_online
from agent_recall.infrastructure.neo4j.queries import VectorIndexQueries
from agent_recall.services.similarity import rank

logger = get_logger(__name__)


class Neo4jVectorIndex:
    """Approximate nearest-neighbour search through ``db.index.vector.queryNodes``.

    The index knows nothing about sessions, so other agents' chunks can
    crowd the nearest neighbours. Lookups are repeated with a wider
    candidate count until the scope yields ``top_k`` hits, the candidates
    drop below the threshold, or the index has nothing more to return.

    Errors are raised to the caller; the search engine treats any failure
    here as "index unavailable" and scans instead.
    """

    def __init__(self, driver: AsyncDriver, index_name: str | None = None):
        self.driver = driver
        self.index_name = index_name or settings.vector_index_name
        self._online = False

    async def available(self) -> bool:
        if not self._online:
            self._online = await vector_index_online(self.driver, self.index_name)
        return self._online

    async def _nearest(self, vector: list[float], k: int) -> list[tuple[MemoryChunk, float]]:
        query, _ = VectorIndexQueries.query_nearest()
        async with self.driver.session() as session:
            result = await session.run(query, index_name=self.index_name, k=k, embedding=vector)
            return [
                (
                    MemoryChunk.from_neo4j_record(dict(record["m"])),
                    min(1.0, max(-1.0, float(record["similarity"]))),
                )
                async for record in result
            ]

    async def query(
        self,
        vector: list[float],
        session_ids: Sequence[str],
        top_k: int,
        threshold: float,
    ) -> list[SimilarityResult]:
        if not session_ids or top_k <= 0:
            return []

        scope = set(session_ids)
        k = max(top_k * VECTOR_INDEX_OVERFETCH_FACTOR, VECTOR_INDEX_MIN_CANDIDATES)
        lookups = 0
        try:
            while True:
                lookups += 1
                rows = await self._nearest(vector, k)
                results = [
                    SimilarityResult(chunk=chunk, score=score)
                    for chunk, score in rows
                    if chunk.session_id in scope and score >= threshold
                ]
                exhausted = len(rows) < k
                below_threshold = bool(rows) and rows[-1][1] < threshold
                if len(results) >= top_k or exhausted or below_threshold:
                    break
                k *= VECTOR_INDEX_GROWTH_FACTOR
        except Exception:
            # Force a fresh availability check on the next search
            self._online = False
            raise

        logger.debug(
            "Vector index query",
            index_name=self.index_name,
            k=k,
            lookups=lookups,
            results=len(results),
        )
        return rank(results, top_k)
