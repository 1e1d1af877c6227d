#!/usr/bin/env python3
"""Create the memory chunk vector index and report chunk counts.

Run once per database before enabling the accelerated search path.
Searches keep working without the index; they scan instead.
"""

import asyncio
import sys

from agent_recall.core.config import settings
from agent_recall.core.constants import MEMORY_CHUNK_LABEL
from agent_recall.core.errors import ServiceError
from agent_recall.core.logging import get_logger, setup_logging
from agent_recall.infrastructure.neo4j import create_neo4j_driver, ensure_vector_index

setup_logging()
logger = get_logger(__name__)


async def count_chunks(driver) -> tuple[int, int]:
    """Total chunks and chunks carrying a vector."""
    query = f"""
    MATCH (m:{MEMORY_CHUNK_LABEL})
    RETURN count(m) AS total, count(m.vector) AS embedded
    """
    async with driver.session() as session:
        result = await session.run(query)
        record = await result.single()
    return record["total"], record["embedded"]


async def main() -> int:
    import argparse

    parser = argparse.ArgumentParser(description="Provision the memory chunk vector index in Neo4j")
    parser.add_argument("--index-name", default=settings.vector_index_name, help="Vector index name")
    parser.add_argument(
        "--dimensions",
        type=int,
        default=settings.embedding_dimensions,
        help="Embedding dimension the index is built for",
    )
    args = parser.parse_args()

    try:
        async with create_neo4j_driver() as driver:
            online = await ensure_vector_index(driver, args.index_name, args.dimensions)
            total, embedded = await count_chunks(driver)
    except ServiceError as e:
        logger.error(f"Provisioning failed: {e.message}")
        return 1

    logger.info(
        "Vector index provisioning finished",
        index_name=args.index_name,
        online=bool(online),
        chunks=total,
        embedded_chunks=embedded,
    )
    return 0 if online else 2


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
