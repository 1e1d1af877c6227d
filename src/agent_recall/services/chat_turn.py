"""End-to-end handling of one chat turn."""

from collections.abc import Sequence

from pydantic import BaseModel, ConfigDict

from agent_recall.core.logging import bind_turn_context, get_logger
from agent_recall.domain.models import ChatMessage, GenerationParams
from agent_recall.services import AgentDirectory, ChatModel
from agent_recall.services.consolidation import ConsolidationOutcome, ConsolidationScheduler
from agent_recall.services.context_assembler import AssembledContext, ContextAssembler

logger = get_logger(__name__)


class ChatTurnResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    reply: str
    context: AssembledContext
    consolidation: ConsolidationOutcome | None = None


class ChatTurnService:
    """Assemble context, call the model, then consolidate memory.

    Model errors propagate unchanged. Consolidation runs after the reply
    exists and cannot fail the turn.
    """

    def __init__(
        self,
        directory: AgentDirectory,
        assembler: ContextAssembler,
        model: ChatModel,
        consolidation: ConsolidationScheduler,
    ):
        self.directory = directory
        self.assembler = assembler
        self.model = model
        self.consolidation = consolidation

    async def respond(
        self,
        agent_id: str,
        session_id: str,
        history: Sequence[ChatMessage],
        user_message: str,
    ) -> ChatTurnResult:
        with bind_turn_context(session_id=session_id, agent_id=agent_id):
            agent = await self.directory.get_agent(agent_id)
            instructions = await self.directory.get_instruction_sources(agent)

            context = await self.assembler.assemble(agent, history, user_message, instructions)
            params = GenerationParams(model=agent.model, temperature=agent.temperature, max_tokens=agent.max_tokens)
            reply = await self.model.generate(context.messages, params)

            transcript = [*history, ChatMessage.user(user_message), ChatMessage.assistant(reply)]
            outcome = await self.consolidation.on_turn_recorded(session_id, transcript)

            logger.info("Chat turn completed", memories=len(context.memories), messages=len(transcript))
            return ChatTurnResult(reply=reply, context=context, consolidation=outcome)
