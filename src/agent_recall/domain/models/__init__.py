from .agent import AgentConfig
from .conversation import ChatMessage, GenerationParams, MessageRole
from .memory import MemoryChunk, SearchScope, SimilarityResult
from .prompts import (
    InstructionSources,
    PromptMergeOptions,
    PromptOrigin,
    PromptRole,
    PromptSource,
    RuleApplicationConfig,
    RulesTransformOptions,
    SourceSlot,
)

__all__ = [
    "AgentConfig",
    "ChatMessage",
    "GenerationParams",
    "InstructionSources",
    "MemoryChunk",
    "MessageRole",
    "PromptMergeOptions",
    "PromptOrigin",
    "PromptRole",
    "PromptSource",
    "RuleApplicationConfig",
    "RulesTransformOptions",
    "SearchScope",
    "SimilarityResult",
    "SourceSlot",
]
