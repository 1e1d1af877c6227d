"""Configuration management."""

from typing import Literal

from pydantic import BaseModel, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from agent_recall.core import constants
from agent_recall.domain.models.prompts import RuleApplicationConfig


class MemorySettings(BaseModel):
    """Consolidation cadence and retrieval defaults."""

    save_interval: int = Field(
        default=constants.DEFAULT_SAVE_INTERVAL,
        gt=0,
        description="Save a chunk every N messages",
    )
    summarize_interval: int = Field(
        default=constants.DEFAULT_SUMMARIZE_INTERVAL,
        gt=0,
        description="Summarize every N chunk saves",
    )
    chunk_message_count: int = Field(
        default=constants.DEFAULT_CHUNK_MESSAGE_COUNT,
        gt=0,
        description="Messages per saved chunk",
    )
    max_memory_length: int = Field(
        default=constants.DEFAULT_MAX_MEMORY_LENGTH,
        gt=0,
        description="Upper bound for summary length in characters",
    )
    summarize_window: int = Field(
        default=constants.DEFAULT_SUMMARIZE_INTERVAL,
        gt=1,
        description="Most recent chunks considered for summarization",
    )
    summarize_grouping: Literal["recency", "similarity"] = "recency"
    group_similarity_threshold: float = Field(default=constants.DEFAULT_GROUP_SIMILARITY_THRESHOLD, gt=0.0, le=1.0)

    retrieval_top_k: int = Field(default=constants.DEFAULT_TOP_K, gt=0)
    retrieval_threshold: float = Field(default=constants.DEFAULT_SIMILARITY_THRESHOLD, ge=-1.0, le=1.0)
    retrieval_timeout_seconds: float = Field(default=constants.DEFAULT_RETRIEVAL_TIMEOUT_SECONDS, gt=0.0)
    # Scans only the newest N chunks, so a capped scan can miss older
    # matches the index would still find
    fallback_scan_limit: int | None = Field(
        default=None,
        gt=0,
        description="Cap on chunks scanned when the index is unavailable",
    )


class Settings(BaseSettings):
    # API Keys
    voyage_api_key: SecretStr = SecretStr("")

    # Embeddings
    embedding_model: str = constants.DEFAULT_EMBEDDING_MODEL
    embedding_dimensions: int = Field(default=constants.DEFAULT_EMBEDDING_DIMENSIONS, gt=0)
    embedding_timeout_seconds: float = 10.0

    # Neo4j
    neo4j_uri: str = "bolt://localhost:7687"
    neo4j_user: str = "neo4j"
    neo4j_password: SecretStr = SecretStr("password")
    vector_index_name: str = constants.DEFAULT_VECTOR_INDEX_NAME

    # App config
    debug: bool = False

    memory: MemorySettings = Field(default_factory=MemorySettings)
    rule_application: RuleApplicationConfig = Field(default_factory=RuleApplicationConfig)

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        env_nested_delimiter="__",  # Allows MEMORY__SAVE_INTERVAL=20
    )


settings = Settings()
