"""Memory consolidation at the tail of a chat turn.

Every ``save_interval`` messages the latest exchange is saved as a chunk.
Every ``summarize_interval`` chunk saves, the most recent chunks of the
session are compressed into summary chunks. Summaries are added alongside
the chunks they summarize; nothing is deleted.

Consolidation is best effort. Failures are logged and never reach the
caller.
"""

from collections.abc import Sequence

from pydantic import BaseModel, ConfigDict, Field

from agent_recall.core.base import ErrorLevel
from agent_recall.core.config import MemorySettings, settings
from agent_recall.core.decorators import with_error_handling
from agent_recall.core.logging import get_logger
from agent_recall.domain.models import ChatMessage, GenerationParams, MemoryChunk
from agent_recall.services import ChatModel, MemoryStore, Summarizer
from agent_recall.services.clustering import DBSCANGroupingService

logger = get_logger(__name__)

SUMMARIZATION_SYSTEM_PROMPT = (
    "You are a memory summarization assistant. Combine related memories into concise summaries."
)


def summarization_prompt(texts: Sequence[str], max_length: int) -> str:
    numbered = "\n".join(f"{position}. {text}" for position, text in enumerate(texts, start=1))
    return (
        f"Summarize these related memories into a single, concise memory (max {max_length} characters).\n"
        "Remove redundancy and combine related information.\n"
        "Return ONLY the summarized memory, no additional text.\n"
        "\n"
        f"Memories:\n{numbered}"
    )


class ChatModelSummarizer:
    """Summarizer backed by the platform's chat model."""

    def __init__(self, model: ChatModel, params: GenerationParams | None = None):
        self.model = model
        self.params = params or GenerationParams(temperature=0.3)

    async def summarize(self, texts: list[str], max_length: int) -> str:
        messages = [
            ChatMessage.system(SUMMARIZATION_SYSTEM_PROMPT),
            ChatMessage.user(summarization_prompt(texts, max_length)),
        ]
        return (await self.model.generate(messages, self.params)).strip()


class ConsolidationOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    message_count: int
    saved_chunk: MemoryChunk | None = None
    summaries: list[MemoryChunk] = Field(default_factory=list)


class ConsolidationScheduler:
    def __init__(
        self,
        store: MemoryStore,
        summarizer: Summarizer,
        config: MemorySettings | None = None,
    ):
        self.store = store
        self.summarizer = summarizer
        self.config = config or settings.memory
        self.grouping = DBSCANGroupingService.for_similarity(self.config.group_similarity_threshold)

    def should_save_chunk(self, message_count: int) -> bool:
        return message_count > 0 and message_count % self.config.save_interval == 0

    def update_count(self, message_count: int) -> int:
        """Chunk saves the session has had after ``message_count`` messages."""
        return message_count // self.config.save_interval

    def should_summarize(self, update_count: int) -> bool:
        return update_count > 0 and update_count % self.config.summarize_interval == 0

    def build_chunk_text(self, messages: Sequence[ChatMessage]) -> str:
        recent = messages[-self.config.chunk_message_count:]
        return "\n".join(message.as_line() for message in recent)

    def _groups(self, chunks: list[MemoryChunk]) -> list[list[MemoryChunk]]:
        if self.config.summarize_grouping == "similarity":
            return self.grouping.group(chunks)
        return [chunks]

    async def summarize_session(self, session_id: str) -> list[MemoryChunk]:
        """Compress the session's most recent chunks into summary chunks."""
        recent = await self.store.load_for_session(session_id, limit=self.config.summarize_window)
        # Oldest first so summaries read in conversation order
        recent.reverse()

        summaries: list[MemoryChunk] = []
        for group in self._groups(recent):
            if len(group) < 2:
                continue
            summary = await self.summarizer.summarize([chunk.chunk for chunk in group], self.config.max_memory_length)
            summary = summary.strip()[: self.config.max_memory_length]
            if not summary:
                logger.warning("Summarizer returned nothing", session_id=session_id, group_size=len(group))
                continue
            summaries.append(await self.store.save(session_id, summary))

        logger.info(
            "Summarized session memories",
            session_id=session_id,
            considered=len(recent),
            summaries=len(summaries),
        )
        return summaries

    @with_error_handling(error_level=ErrorLevel.WARNING, reraise=False, operation="consolidate_turn")
    async def on_turn_recorded(self, session_id: str, messages: Sequence[ChatMessage]) -> ConsolidationOutcome | None:
        """Run whatever consolidation this message count calls for.

        Returns None when consolidation failed; the failure has been logged.
        """
        message_count = len(messages)
        if not self.should_save_chunk(message_count):
            return ConsolidationOutcome(message_count=message_count)

        saved = await self.store.save(session_id, self.build_chunk_text(messages))
        logger.info("Saved conversation chunk", session_id=session_id, message_count=message_count)

        summaries: list[MemoryChunk] = []
        if self.should_summarize(self.update_count(message_count)):
            summaries = await self.summarize_session(session_id)

        return ConsolidationOutcome(message_count=message_count, saved_chunk=saved, summaries=summaries)
