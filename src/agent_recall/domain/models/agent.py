"""Agent persona configuration as consumed by the engine."""

from typing import Any

from pydantic import BaseModel, Field, field_validator

from agent_recall.domain.rules import normalize_rules


class AgentConfig(BaseModel):
    """Per-agent settings: generation parameters, persona and own instructions.

    ``behavior_rules`` accepts any supported rule payload and is stored
    normalized, so the rest of the engine only ever sees ``list[str]``.
    """

    id: str
    name: str = ""
    model: str | None = None
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int | None = Field(default=None, gt=0)
    system_prompt: str | None = None
    behavior_rules: list[str] = Field(default_factory=list)

    # Persona fields that turn into config-derived rules
    language: str | None = None
    response_length: str | None = None
    age: int | None = Field(default=None, ge=0)
    gender: str | None = None
    personality: str | None = None
    sentiment: str | None = None
    interests: list[str] = Field(default_factory=list)

    @field_validator("behavior_rules", mode="before")
    @classmethod
    def normalize_behavior_rules(cls, value: Any) -> list[str]:
        return normalize_rules(value)
