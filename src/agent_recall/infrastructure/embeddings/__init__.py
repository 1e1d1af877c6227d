from .factory import create_embedding_service, validate_embedding_service
from .voyage import VoyageEmbeddingService

__all__ = ["VoyageEmbeddingService", "create_embedding_service", "validate_embedding_service"]
