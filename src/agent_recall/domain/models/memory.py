"""Memory chunk models."""

from datetime import UTC, datetime
from typing import Any, Self
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

SCORE_TIE_DECIMALS = 9


def utc_now() -> datetime:
    return datetime.now(UTC)


class MemoryChunk(BaseModel):
    """A persisted excerpt of a conversation, optionally embedded.

    Chunks are append-only: they are created once and never updated.
    """

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    session_id: str
    chunk: str
    vector: list[float] | None = None
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def dimensions(self) -> int | None:
        return len(self.vector) if self.vector is not None else None

    def to_neo4j_properties(self) -> dict[str, Any]:
        """Neo4j-compatible property dict (string id, epoch-second timestamp)."""
        return {
            "id": str(self.id),
            "session_id": self.session_id,
            "chunk": self.chunk,
            "vector": self.vector,
            "created_at": self.created_at.timestamp(),
        }

    @classmethod
    def from_neo4j_record(cls, record: dict[str, Any]) -> Self:
        data = dict(record)
        if isinstance(data.get("created_at"), int | float):
            data["created_at"] = datetime.fromtimestamp(data["created_at"], UTC)
        return cls.model_validate(data)


def recency_key(chunk: MemoryChunk) -> tuple[float, str]:
    """Sort key placing newer chunks first when used with ``reverse=True``."""
    return (chunk.created_at.timestamp(), str(chunk.id))


class SimilarityResult(BaseModel):
    """A chunk paired with its cosine similarity to the query."""

    model_config = ConfigDict(frozen=True)

    chunk: MemoryChunk
    score: float = Field(ge=-1.0, le=1.0)

    @property
    def ordering_key(self) -> tuple[float, float, str]:
        # score desc, then created_at desc, then id for a total order.
        # Scores are rounded so float noise between backends still ties.
        return (-round(self.score, SCORE_TIE_DECIMALS), -self.chunk.created_at.timestamp(), str(self.chunk.id))


class SearchScope(BaseModel):
    """The set of chunks a search may consider: explicit sessions or an agent."""

    model_config = ConfigDict(frozen=True)

    session_ids: tuple[str, ...] | None = None
    agent_id: str | None = None

    @model_validator(mode="after")
    def exactly_one(self) -> Self:
        if (self.session_ids is None) == (self.agent_id is None):
            raise ValueError("SearchScope needs exactly one of session_ids or agent_id")
        return self

    @classmethod
    def for_sessions(cls, *session_ids: str) -> Self:
        return cls(session_ids=tuple(session_ids))

    @classmethod
    def for_agent(cls, agent_id: str) -> Self:
        return cls(agent_id=agent_id)
