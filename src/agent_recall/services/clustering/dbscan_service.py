import numpy as np
from sklearn.cluster import DBSCAN

from agent_recall.domain.models import MemoryChunk


class DBSCANGroupingService:
    """Groups chunks whose vectors lie close together in cosine distance.

    ``eps`` is a cosine *distance*, so a similarity threshold of 0.85
    corresponds to ``eps=0.15``.
    """

    def __init__(self, eps: float = 0.15, min_samples: int = 2):
        self.eps = eps
        self.min_samples = min_samples

    @classmethod
    def for_similarity(cls, threshold: float, min_samples: int = 2) -> "DBSCANGroupingService":
        return cls(eps=max(1.0 - threshold, 1e-6), min_samples=min_samples)

    def labels(self, embeddings: list[list[float]]) -> list[int]:
        """Cluster label per embedding; -1 marks noise."""
        if len(embeddings) < self.min_samples:
            return [-1] * len(embeddings)
        clusterer = DBSCAN(eps=self.eps, min_samples=self.min_samples, metric="cosine")
        clusterer.fit(np.asarray(embeddings, dtype=np.float64))
        return [int(label) for label in clusterer.labels_]

    def group(self, chunks: list[MemoryChunk]) -> list[list[MemoryChunk]]:
        """Clusters of embedded chunks, in order of first appearance.

        Chunks without a vector, with a foreign dimension, or classified as
        noise are left out.
        """
        embedded = [chunk for chunk in chunks if chunk.vector is not None]
        if not embedded:
            return []
        dimension = len(embedded[0].vector)
        embedded = [chunk for chunk in embedded if len(chunk.vector) == dimension]

        groups: dict[int, list[MemoryChunk]] = {}
        for chunk, label in zip(embedded, self.labels([c.vector for c in embedded]), strict=True):
            if label >= 0:
                groups.setdefault(label, []).append(chunk)
        return list(groups.values())
