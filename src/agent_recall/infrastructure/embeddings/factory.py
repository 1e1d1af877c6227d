"""Construction of the configured embedding service."""

from agent_recall.core.base import ErrorLevel, ServiceErrorDetails
from agent_recall.core.decorators import with_error_handling
from agent_recall.core.errors import ServiceError
from agent_recall.core.logging import get_logger
from agent_recall.infrastructure.embeddings.voyage import VoyageEmbeddingService

logger = get_logger(__name__)


def validate_embedding_service(service: VoyageEmbeddingService) -> None:
    """Check that the service reports a usable vector dimension.

    Raises:
        ServiceError: If validation fails
    """
    dimensions = service.get_model_dimensions()
    if dimensions <= 0:
        raise ServiceError(
            message=f"Invalid embedding dimensions: {dimensions}",
            details=ServiceErrorDetails(
                source="embedding_factory",
                operation="validate",
                service_name=type(service).__name__,
                endpoint="get_model_dimensions",
            ),
        )

    logger.debug(f"Embedding service validation passed: {dimensions} dimensions")


@with_error_handling(error_level=ErrorLevel.ERROR, reraise=True)
def create_embedding_service(
    api_key: str | None = None,
    model: str | None = None,
    dimensions: int | None = None,
) -> VoyageEmbeddingService:
    """Create and validate the Voyage embedding service.

    Example:
        ```python
        embedder = create_embedding_service()
        store = Neo4jMemoryStore(driver, embedder, directory)
        ```
    """
    service = VoyageEmbeddingService(api_key=api_key, model=model, dimensions=dimensions)
    validate_embedding_service(service)
    logger.info("Embedding service ready", model=service.model, dimensions=service.dimensions)
    return service
