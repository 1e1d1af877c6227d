from .driver import create_neo4j_driver, ensure_vector_index, vector_index_online
from .queries import MemoryQueries, VectorIndexQueries
from .vector_index import Neo4jVectorIndex

__all__ = [
    "MemoryQueries",
    "Neo4jVectorIndex",
    "VectorIndexQueries",
    "create_neo4j_driver",
    "ensure_vector_index",
    "vector_index_online",
]
