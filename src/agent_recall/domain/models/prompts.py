"""Prompt source and rule-application models.

A ``RuleApplicationConfig`` describes, once per process, which origins may
contribute to the system prompt and to the behavior rules, in what order,
and how the pieces are joined. Per turn, the caller supplies the actual text
for each origin as ``InstructionSources``; the composer combines the two.
"""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from agent_recall.core.constants import DEFAULT_PROMPT_SEPARATOR, DEFAULT_RULE_SEPARATOR


class PromptOrigin(str, Enum):
    """Where a prompt or rule set comes from."""

    MAIN = "main"
    AGENT_TYPE = "agent_type"
    ARCHETYPE = "archetype"
    CLIENT_CONFIG = "client_config"
    CLIENT_USER = "client_user"


class PromptRole(str, Enum):
    SYSTEM = "system"
    USER = "user"


class PromptMergeOptions(BaseModel):
    """How system prompt sources are joined."""

    model_config = ConfigDict(frozen=True)

    separator: str = DEFAULT_PROMPT_SEPARATOR
    embed_time_at: Literal["start", "end", "none"] = "start"
    time_format: Literal["iso", "readable"] = "iso"


class RulesTransformOptions(BaseModel):
    """How the merged behavior rules are rendered."""

    model_config = ConfigDict(frozen=True)

    format: Literal["numbered", "bulleted", "plain"] = "numbered"
    separator: str = DEFAULT_RULE_SEPARATOR
    header: str | None = None
    role: PromptRole = PromptRole.SYSTEM
    deduplicate: bool = False


class SourceSlot(BaseModel):
    """One configured contributor to the prompt or the rules."""

    model_config = ConfigDict(frozen=True)

    origin: PromptOrigin
    priority: int
    role: PromptRole = PromptRole.SYSTEM
    required: bool = False


class PromptSource(BaseModel):
    """A slot paired with the text it contributes for one turn.

    For rule sources ``text`` is the raw rule payload: a JSON string,
    a list of strings, or a ``{"rules": [...]}`` mapping.
    """

    model_config = ConfigDict(frozen=True)

    origin: PromptOrigin
    priority: int
    role: PromptRole = PromptRole.SYSTEM
    required: bool = False
    text: Any = None

    @classmethod
    def from_slot(cls, slot: SourceSlot, text: Any) -> "PromptSource":
        return cls(origin=slot.origin, priority=slot.priority, role=slot.role, required=slot.required, text=text)


def _default_slots() -> tuple[SourceSlot, ...]:
    return (
        SourceSlot(origin=PromptOrigin.MAIN, priority=0),
        SourceSlot(origin=PromptOrigin.AGENT_TYPE, priority=10),
        SourceSlot(origin=PromptOrigin.ARCHETYPE, priority=20),
        SourceSlot(origin=PromptOrigin.CLIENT_CONFIG, priority=30),
        SourceSlot(origin=PromptOrigin.CLIENT_USER, priority=40),
    )


class RuleApplicationConfig(BaseModel):
    """Static, process-wide description of how instructions are composed.

    Built once at start-up (usually from ``settings.rule_application``)
    and never mutated afterwards.
    """

    model_config = ConfigDict(frozen=True)

    system_prompt_sources: tuple[SourceSlot, ...] = Field(default_factory=_default_slots)
    behavior_rule_sources: tuple[SourceSlot, ...] = Field(default_factory=_default_slots)
    prompt_merge: PromptMergeOptions = Field(default_factory=PromptMergeOptions)
    rules_transform: RulesTransformOptions = Field(default_factory=RulesTransformOptions)

    @field_validator("system_prompt_sources", "behavior_rule_sources")
    @classmethod
    def unique_origins(cls, slots: tuple[SourceSlot, ...]) -> tuple[SourceSlot, ...]:
        origins = [slot.origin for slot in slots]
        if len(origins) != len(set(origins)):
            raise ValueError("each origin may be configured at most once per source list")
        return slots


class InstructionSources(BaseModel):
    """Per-turn texts for each origin.

    Missing origins contribute nothing. The agent's own ``system_prompt``
    and ``behavior_rules`` fill ``CLIENT_CONFIG`` when it is not given here.
    """

    prompts: dict[PromptOrigin, str | None] = Field(default_factory=dict)
    rules: dict[PromptOrigin, Any] = Field(default_factory=dict)
