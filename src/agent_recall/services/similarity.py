"""Similarity search over stored memory chunks."""

from collections.abc import Sequence

import numpy as np

from agent_recall.core.base import EmbeddingErrorDetails
from agent_recall.core.config import settings
from agent_recall.core.errors import DimensionMismatchError
from agent_recall.core.logging import get_logger
from agent_recall.domain.models import MemoryChunk, SearchScope, SimilarityResult
from agent_recall.services import AgentDirectory, MemoryStore, VectorIndex

logger = get_logger(__name__)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity in [-1, 1]; 0.0 when either vector has zero norm.

    Raises:
        DimensionMismatchError: If the vectors differ in length
    """
    if len(a) != len(b):
        raise DimensionMismatchError(
            message=f"Cannot compare vectors of length {len(a)} and {len(b)}",
            details=EmbeddingErrorDetails(
                source="similarity",
                operation="cosine_similarity",
                service_name="similarity_search",
                expected_dimensions=len(a),
                actual_dimensions=len(b),
            ),
        )

    vec_a = np.asarray(a, dtype=np.float64)
    vec_b = np.asarray(b, dtype=np.float64)
    denominator = np.linalg.norm(vec_a) * np.linalg.norm(vec_b)
    if denominator == 0:
        return 0.0
    return float(np.clip(np.dot(vec_a, vec_b) / denominator, -1.0, 1.0))


def rank(results: list[SimilarityResult], top_k: int) -> list[SimilarityResult]:
    """Score descending, newer first on ties, capped at ``top_k``."""
    return sorted(results, key=lambda result: result.ordering_key)[:top_k]


def score_chunks(
    query_vector: list[float],
    chunks: Sequence[MemoryChunk],
    threshold: float,
) -> list[SimilarityResult]:
    """Score every embedded chunk, skipping those with a foreign dimension.

    Every exact search path scores through here so equal data yields
    bit-identical scores.
    """
    results: list[SimilarityResult] = []
    for chunk in chunks:
        if chunk.vector is None:
            continue
        try:
            score = cosine_similarity(query_vector, chunk.vector)
        except DimensionMismatchError as e:
            logger.warning(
                "Skipping chunk with mismatched vector",
                chunk_id=str(chunk.id),
                session_id=chunk.session_id,
                reason=e.message,
            )
            continue
        if score >= threshold:
            results.append(SimilarityResult(chunk=chunk, score=score))
    return results


class SimilaritySearchEngine:
    """Ranks stored chunks against a query vector.

    Tries the vector index first and falls back to a full scan of the
    scope when the index is missing or fails. Both paths return the same
    ordering for the same data, except when ``fallback_scan_limit`` is set:
    the scan then only considers the newest that many chunks of the scope,
    while the index still sees all of them.
    """

    def __init__(
        self,
        store: MemoryStore,
        directory: AgentDirectory,
        index: VectorIndex | None = None,
        fallback_scan_limit: int | None = None,
    ):
        self.store = store
        self.directory = directory
        self.index = index
        if fallback_scan_limit is None:
            fallback_scan_limit = settings.memory.fallback_scan_limit
        self.fallback_scan_limit = fallback_scan_limit

    async def _session_ids(self, scope: SearchScope) -> list[str]:
        if scope.session_ids is not None:
            return list(dict.fromkeys(scope.session_ids))
        return await self.directory.list_session_ids(scope.agent_id)

    async def _search_index(
        self,
        query_vector: list[float],
        session_ids: list[str],
        top_k: int,
        threshold: float,
    ) -> list[SimilarityResult] | None:
        if self.index is None:
            return None
        try:
            if not await self.index.available():
                logger.debug("Vector index not available, scanning")
                return None
            results = await self.index.query(query_vector, session_ids, top_k, threshold)
        except Exception as e:
            logger.warning(
                "Vector index query failed, scanning instead",
                error=str(e),
                error_type=type(e).__name__,
            )
            return None
        return rank(results, top_k)

    async def _scan(
        self,
        query_vector: list[float],
        session_ids: list[str],
        top_k: int,
        threshold: float,
    ) -> list[SimilarityResult]:
        chunks = await self.store.load_for_sessions(session_ids, limit=self.fallback_scan_limit)
        return rank(score_chunks(query_vector, chunks, threshold), top_k)

    async def find_similar(
        self,
        query_vector: list[float],
        scope: SearchScope,
        top_k: int,
        threshold: float,
    ) -> list[SimilarityResult]:
        """Up to ``top_k`` chunks in scope scoring at least ``threshold``.

        An empty query vector yields no results rather than an error.
        """
        if not query_vector or top_k <= 0:
            return []

        session_ids = await self._session_ids(scope)
        if not session_ids:
            return []

        results = await self._search_index(query_vector, session_ids, top_k, threshold)
        path = "index"
        if results is None:
            results = await self._scan(query_vector, session_ids, top_k, threshold)
            path = "scan"

        logger.debug("Similarity search finished", path=path, sessions=len(session_ids), results=len(results))
        return results
