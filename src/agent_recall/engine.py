"""Wiring of the engine's services.

``build_engine`` assembles a ``ChatTurnService`` from its collaborators.
With a Neo4j driver, chunks live in the graph and searches use its vector
index; without one, an in-process store and numpy index are used.
"""

from dataclasses import dataclass

from neo4j import AsyncDriver

from agent_recall.core.config import Settings, settings
from agent_recall.core.logging import get_logger
from agent_recall.infrastructure.embeddings import create_embedding_service
from agent_recall.infrastructure.neo4j import Neo4jVectorIndex, ensure_vector_index
from agent_recall.infrastructure.repositories import (
    BaseMemoryStore,
    InMemoryMemoryStore,
    InMemoryVectorIndex,
    Neo4jMemoryStore,
)
from agent_recall.services import AgentDirectory, ChatModel, EmbeddingService, Summarizer, VectorIndex
from agent_recall.services.chat_turn import ChatTurnService
from agent_recall.services.composer import Clock, PromptComposer, utc_clock
from agent_recall.services.consolidation import ChatModelSummarizer, ConsolidationScheduler
from agent_recall.services.context_assembler import ContextAssembler
from agent_recall.services.similarity import SimilaritySearchEngine

logger = get_logger(__name__)


@dataclass(frozen=True)
class Engine:
    """The wired services, for callers that need more than ``respond``."""

    store: BaseMemoryStore
    index: VectorIndex
    search: SimilaritySearchEngine
    composer: PromptComposer
    assembler: ContextAssembler
    consolidation: ConsolidationScheduler
    chat: ChatTurnService


async def build_engine(
    directory: AgentDirectory,
    model: ChatModel,
    driver: AsyncDriver | None = None,
    embeddings: EmbeddingService | None = None,
    summarizer: Summarizer | None = None,
    config: Settings | None = None,
    clock: Clock = utc_clock,
) -> Engine:
    config = config or settings
    embeddings = embeddings or create_embedding_service()
    summarizer = summarizer or ChatModelSummarizer(model)

    store: BaseMemoryStore
    index: VectorIndex
    if driver is not None:
        await ensure_vector_index(driver, config.vector_index_name, config.embedding_dimensions)
        store = Neo4jMemoryStore(driver, embeddings, directory, config.embedding_dimensions)
        index = Neo4jVectorIndex(driver, config.vector_index_name)
    else:
        logger.warning("No Neo4j driver given, memories are kept in process memory only")
        store = InMemoryMemoryStore(embeddings, directory, config.embedding_dimensions)
        index = InMemoryVectorIndex(store)

    search = SimilaritySearchEngine(store, directory, index, config.memory.fallback_scan_limit)
    composer = PromptComposer(config.rule_application, clock=clock)
    assembler = ContextAssembler(embeddings, search, composer, config.memory)
    consolidation = ConsolidationScheduler(store, summarizer, config.memory)
    chat = ChatTurnService(directory, assembler, model, consolidation)

    logger.info("Engine ready", backend="neo4j" if driver is not None else "in_memory")
    return Engine(
        store=store,
        index=index,
        search=search,
        composer=composer,
        assembler=assembler,
        consolidation=consolidation,
        chat=chat,
    )
