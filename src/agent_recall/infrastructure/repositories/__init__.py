from .base import BaseMemoryStore
from .in_memory import InMemoryMemoryStore, InMemoryVectorIndex
from .memory import Neo4jMemoryStore

__all__ = ["BaseMemoryStore", "InMemoryMemoryStore", "InMemoryVectorIndex", "Neo4jMemoryStore"]
