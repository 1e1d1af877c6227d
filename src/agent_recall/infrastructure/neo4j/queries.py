"""Cypher queries for memory chunks and their vector index.

All Cypher used by the engine lives here.
"""

import re
from typing import Any, LiteralString, cast

from agent_recall.core.constants import (
    CHAT_SESSION_LABEL,
    HAS_MEMORY_RELATIONSHIP,
    MEMORY_CHUNK_LABEL,
)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _checked_identifier(name: str) -> str:
    # Index names cannot be parameterized in DDL
    if not _IDENTIFIER.match(name):
        raise ValueError(f"Invalid Neo4j identifier: {name!r}")
    return name


class MemoryQueries:
    """Queries over the append-only chunk log."""

    @staticmethod
    def save_chunk() -> tuple[LiteralString, dict[str, Any]]:
        """Create a chunk and attach it to its (possibly new) session node."""
        query = f"""
            MERGE (s:{CHAT_SESSION_LABEL} {{id: $session_id}})
            CREATE (m:{MEMORY_CHUNK_LABEL})
            SET m = $properties
            MERGE (s)-[:{HAS_MEMORY_RELATIONSHIP}]->(m)
            RETURN m
            """
        return cast(LiteralString, query), {}

    @staticmethod
    def load_for_sessions(limited: bool) -> tuple[LiteralString, dict[str, Any]]:
        """Chunks of the given sessions, newest first.

        Args:
            limited: Whether the query takes a ``$limit`` parameter
        """
        query = f"""
            MATCH (m:{MEMORY_CHUNK_LABEL})
            WHERE m.session_id IN $session_ids
            RETURN m
            ORDER BY m.created_at DESC, m.id DESC
            """
        if limited:
            query += "LIMIT $limit\n"
        return cast(LiteralString, query), {}


class VectorIndexQueries:
    """Queries for the Neo4j vector index over chunk vectors."""

    @staticmethod
    def check_vector_index() -> tuple[LiteralString, dict[str, Any]]:
        query = """
            SHOW INDEXES
            YIELD name, type, state, options
            WHERE name = $index_name AND type = 'VECTOR'
            RETURN state, options
            """
        return cast(LiteralString, query), {}

    @staticmethod
    def create_vector_index(index_name: str, dimensions: int) -> tuple[LiteralString, dict[str, Any]]:
        """Create the cosine vector index on ``MemoryChunk.vector``."""
        name = _checked_identifier(index_name)
        query = f"""
            CREATE VECTOR INDEX {name} IF NOT EXISTS
            FOR (m:{MEMORY_CHUNK_LABEL}) ON m.vector
            OPTIONS {{indexConfig: {{
              `vector.dimensions`: {int(dimensions)},
              `vector.similarity_function`: 'cosine'
            }}}}
            """
        return cast(LiteralString, query), {}

    @staticmethod
    def query_nearest() -> tuple[LiteralString, dict[str, Any]]:
        """The $k nearest embedded chunks across the whole index, best first.

        The index reports cosine similarity normalized to [0, 1] as
        ``(1 + cos) / 2``; it is mapped back to [-1, 1]. Scope and threshold
        are applied by the caller, which widens $k when too few rows survive.
        """
        query = """
            CALL db.index.vector.queryNodes($index_name, $k, $embedding)
            YIELD node, score
            RETURN node AS m, (2 * score) - 1 AS similarity
            ORDER BY similarity DESC
            """
        return cast(LiteralString, query), {}
