"""Engine-wide constants and defaults."""

# Embeddings
DEFAULT_EMBEDDING_MODEL = "voyage-large-2"
DEFAULT_EMBEDDING_DIMENSIONS = 1536

# Graph storage
MEMORY_CHUNK_LABEL = "MemoryChunk"
CHAT_SESSION_LABEL = "ChatSession"
HAS_MEMORY_RELATIONSHIP = "HAS_MEMORY"
DEFAULT_VECTOR_INDEX_NAME = "memory_chunk_vectors"

# The vector index ranks the whole graph, not one scope. The first lookup
# asks for max(top_k * OVERFETCH, MIN_CANDIDATES) neighbours and each retry
# multiplies that by GROWTH until the scope yields top_k hits or the index
# runs dry.
VECTOR_INDEX_OVERFETCH_FACTOR = 3
VECTOR_INDEX_MIN_CANDIDATES = 50
VECTOR_INDEX_GROWTH_FACTOR = 4

# Consolidation cadence
DEFAULT_SAVE_INTERVAL = 10
DEFAULT_SUMMARIZE_INTERVAL = 10
DEFAULT_CHUNK_MESSAGE_COUNT = 5
DEFAULT_MAX_MEMORY_LENGTH = 500
DEFAULT_GROUP_SIMILARITY_THRESHOLD = 0.85

# Retrieval
DEFAULT_TOP_K = 5
DEFAULT_SIMILARITY_THRESHOLD = 0.5
DEFAULT_RETRIEVAL_TIMEOUT_SECONDS = 10.0

# Composition
DEFAULT_PROMPT_SEPARATOR = "\n\n---\n\n"
DEFAULT_RULE_SEPARATOR = "\n"
MEMORY_CONTEXT_HEADER = "Relevant context from previous conversations:"
CURRENT_TIME_PREFIX = "Current time:"
