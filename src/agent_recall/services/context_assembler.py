"""Builds the ordered message list sent to the chat model for one turn.

A turn moves through four states:

    COLLECTING_MEMORY -> COMPOSING_INSTRUCTIONS -> ASSEMBLING_MESSAGES -> DONE

Memory collection is allowed to fail or time out (the turn then proceeds
without memories); composition errors are configuration errors and
propagate.
"""

import asyncio
from collections.abc import Sequence
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from agent_recall.core.config import MemorySettings, settings
from agent_recall.core.errors import EmbeddingProviderError
from agent_recall.core.logging import get_logger
from agent_recall.domain.models import (
    AgentConfig,
    ChatMessage,
    InstructionSources,
    MessageRole,
    PromptRole,
    SearchScope,
    SimilarityResult,
)
from agent_recall.services import EmbeddingService
from agent_recall.services.composer import PromptComposer, render_memory_context
from agent_recall.services.similarity import SimilaritySearchEngine

logger = get_logger(__name__)


class AssemblyState(str, Enum):
    COLLECTING_MEMORY = "collecting_memory"
    COMPOSING_INSTRUCTIONS = "composing_instructions"
    ASSEMBLING_MESSAGES = "assembling_messages"
    DONE = "done"


class AssembledContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    messages: list[ChatMessage]
    memories: list[SimilarityResult] = Field(default_factory=list)
    states: list[AssemblyState] = Field(default_factory=list)


class ContextAssembler:
    def __init__(
        self,
        embeddings: EmbeddingService,
        search: SimilaritySearchEngine,
        composer: PromptComposer,
        config: MemorySettings | None = None,
    ):
        self.embeddings = embeddings
        self.search = search
        self.composer = composer
        self.config = config or settings.memory

    async def _retrieve(self, agent_id: str, user_message: str, top_k: int, threshold: float) -> list[SimilarityResult]:
        query_vector = await self.embeddings.embed(user_message)
        return await self.search.find_similar(query_vector, SearchScope.for_agent(agent_id), top_k, threshold)

    async def collect_memories(
        self,
        agent_id: str,
        user_message: str,
        top_k: int | None = None,
        threshold: float | None = None,
    ) -> list[SimilarityResult]:
        """Memories relevant to ``user_message``; empty on any failure or timeout."""
        top_k = top_k if top_k is not None else self.config.retrieval_top_k
        threshold = threshold if threshold is not None else self.config.retrieval_threshold

        try:
            async with asyncio.timeout(self.config.retrieval_timeout_seconds):
                return await self._retrieve(agent_id, user_message, top_k, threshold)
        except TimeoutError:
            logger.warning(
                "Memory retrieval timed out",
                agent_id=agent_id,
                timeout=self.config.retrieval_timeout_seconds,
            )
        except EmbeddingProviderError as e:
            logger.warning("Memory retrieval skipped, embedding failed", agent_id=agent_id, reason=e.message)
        except Exception as e:
            logger.warning("Memory retrieval failed", agent_id=agent_id, error=str(e), error_type=type(e).__name__)
        return []

    async def assemble(
        self,
        agent: AgentConfig,
        history: Sequence[ChatMessage],
        user_message: str,
        instructions: InstructionSources | None = None,
        top_k: int | None = None,
        threshold: float | None = None,
    ) -> AssembledContext:
        """Ordered messages: system prompt, memory block, rules block, history, user message.

        Blocks with no text are left out.

        Raises:
            MissingRequiredPromptSourceError: If a required source is empty
            InvalidRuleFormatError: If a rule payload cannot be normalized
        """
        states = [AssemblyState.COLLECTING_MEMORY]
        memories = await self.collect_memories(agent.id, user_message, top_k, threshold)

        states.append(AssemblyState.COMPOSING_INSTRUCTIONS)
        composed = self.composer.compose(agent, instructions)
        memory_block = render_memory_context([result.chunk.chunk for result in memories])

        states.append(AssemblyState.ASSEMBLING_MESSAGES)
        rules_role = MessageRole.USER if composed.rules_role == PromptRole.USER else MessageRole.SYSTEM
        messages: list[ChatMessage] = []
        if composed.system_prompt:
            messages.append(ChatMessage.system(composed.system_prompt))
        if memory_block:
            messages.append(ChatMessage.system(memory_block))
        if composed.behavior_rules:
            messages.append(ChatMessage(role=rules_role, content=composed.behavior_rules))
        messages.extend(history)
        messages.append(ChatMessage.user(user_message))

        states.append(AssemblyState.DONE)
        logger.debug("Assembled context", agent_id=agent.id, memories=len(memories), messages=len(messages))
        return AssembledContext(messages=messages, memories=memories, states=states)
