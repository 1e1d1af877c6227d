"""Neo4j driver and schema management."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from neo4j import AsyncDriver, AsyncGraphDatabase
from neo4j.exceptions import Neo4jError, ServiceUnavailable

from agent_recall.core.base import DatabaseErrorDetails, ErrorLevel
from agent_recall.core.config import settings
from agent_recall.core.decorators import with_error_handling
from agent_recall.core.errors import ServiceError
from agent_recall.core.logging import get_logger
from agent_recall.infrastructure.neo4j.queries import VectorIndexQueries

logger = get_logger(__name__)


@asynccontextmanager
async def create_neo4j_driver(
    uri: str | None = None,
    user: str | None = None,
    password: str | None = None,
    max_connection_pool_size: int = 50,
    max_connection_lifetime: int = 3600,
) -> AsyncIterator[AsyncDriver]:
    """Open a verified Neo4j driver for the lifetime of the block.

    Raises:
        ServiceError: If the database cannot be reached
    """
    uri = uri or settings.neo4j_uri
    logger.info("Creating Neo4j driver", uri=uri, pool_size=max_connection_pool_size)

    driver = AsyncGraphDatabase.driver(
        uri,
        auth=(user or settings.neo4j_user, password or settings.neo4j_password.get_secret_value()),
        max_connection_pool_size=max_connection_pool_size,
        max_connection_lifetime=max_connection_lifetime,
    )
    try:
        try:
            await driver.verify_connectivity()
        except ServiceUnavailable as e:
            raise ServiceError(
                message=f"Neo4j unavailable at {uri}",
                details=DatabaseErrorDetails(
                    source="neo4j_driver",
                    operation="verify_connectivity",
                    service_name="neo4j",
                    endpoint=uri,
                ),
            ) from e
        logger.info("Neo4j connection established")
        yield driver
    finally:
        await driver.close()
        logger.info("Neo4j driver closed")


@with_error_handling(error_level=ErrorLevel.WARNING, reraise=False)
async def ensure_vector_index(
    driver: AsyncDriver,
    index_name: str | None = None,
    dimensions: int | None = None,
) -> bool:
    """Create the chunk vector index if missing and report whether it is online.

    Provisioning is best effort: on failure the error is logged, None is
    returned, and searches fall back to scanning.
    """
    index_name = index_name or settings.vector_index_name
    dimensions = dimensions or settings.embedding_dimensions

    async with driver.session() as session:
        query, _ = VectorIndexQueries.create_vector_index(index_name, dimensions)
        await session.run(query)

        query, _ = VectorIndexQueries.check_vector_index()
        result = await session.run(query, index_name=index_name)
        record = await result.single()

    if record is None:
        logger.warning("Vector index missing after creation", index_name=index_name)
        return False

    online = record["state"] == "ONLINE"
    logger.info("Vector index checked", index_name=index_name, state=record["state"], dimensions=dimensions)
    return online


async def vector_index_online(driver: AsyncDriver, index_name: str) -> bool:
    """Whether the named vector index exists and is ONLINE."""
    query, _ = VectorIndexQueries.check_vector_index()
    try:
        async with driver.session() as session:
            result = await session.run(query, index_name=index_name)
            record = await result.single()
    except Neo4jError as e:
        logger.warning("Could not inspect vector index", index_name=index_name, error=str(e))
        return False
    return record is not None and record["state"] == "ONLINE"
