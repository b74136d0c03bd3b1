"""Application-wide constants for generation, retrieval, indexing and quotas.

This is the single source of truth for all tunable parameters.
Modify values here to change behavior across the entire application.
"""

# ============================================================================
# Generation Backend (Ollama)
# ============================================================================

DEFAULT_OLLAMA_URL = "http://localhost:11434"
DEFAULT_LLM_MODEL = "mistral:7b-instruct"
DEFAULT_EMBEDDING_MODEL = "nomic-embed-text"
DEFAULT_OLLAMA_TIMEOUT = 60  # Seconds, longer than any mode deadline below

# Error bodies from the backend are cut to this many characters
BACKEND_ERROR_BODY_LIMIT = 500

# ============================================================================
# Response Modes
# ============================================================================

# Fast mode: greetings, thanks, navigation and account questions
LLM_FAST_MAX_TOKENS = 60
LLM_FAST_TEMPERATURE = 0.5
LLM_FAST_TOP_K = 20
LLM_FAST_TOP_P = 0.85

# Standard mode: identity questions and knowledge questions without context
LLM_STANDARD_MAX_TOKENS = 120
LLM_STANDARD_TEMPERATURE = 0.6
LLM_STANDARD_TOP_K = 30
LLM_STANDARD_TOP_P = 0.9

# Deep mode: knowledge questions answered from retrieved documentation
LLM_DEEP_MAX_TOKENS = 180
LLM_DEEP_TEMPERATURE = 0.7
LLM_DEEP_TOP_K = 40
LLM_DEEP_TOP_P = 0.95

# Shared by all modes
LLM_REPEAT_PENALTY = 1.1
LLM_NUM_CONTEXT = 2048  # Reduced context window for speed

# Per-request deadlines (seconds) by mode
MODE_TIMEOUT_FAST = 30
MODE_TIMEOUT_STANDARD = 60
MODE_TIMEOUT_DEEP = 90

# Prompt template markers the model sometimes echoes back
RESPONSE_STOP_MARKERS = ["\n\nUser:", "\nUser:", "\n\nAssistant:", "\nAssistant:"]

# ============================================================================
# Prompt Sanitization
# ============================================================================

PROMPT_MAX_LENGTH = 2000  # Characters, not bytes
PROMPT_MAX_CONTROL_CHARS = 5

# ============================================================================
# Retrieval (ChromaDB)
# ============================================================================

DEFAULT_CHROMA_URL = "http://localhost:8000"
DEFAULT_CHROMA_TENANT = "default_tenant"
DEFAULT_CHROMA_DATABASE = "default_database"
DEFAULT_COLLECTION_NAME = "livinglands_docs"
CHROMA_REQUEST_TIMEOUT = 30

# Maximum cosine distance for a document to count as relevant.
# 0 = identical, 2 = opposite. 1.0 is permissive and favors recall.
# For high precision use 0.5-0.7, for more results use 0.8-1.2.
DEFAULT_RELEVANCE_THRESHOLD = 1.0

RAG_MAX_RESULTS = 5
RAG_QUERY_TIMEOUT = 5  # Seconds, capped at 80% of the request deadline

# Retrieved snippets are cut to this many characters inside the prompt
RAG_SNIPPET_MAX_CHARS = 500

# ============================================================================
# Document Indexing
# ============================================================================

INDEX_CHUNK_SIZE = 500  # Characters
INDEX_CHUNK_OVERLAP = 50  # Characters
INDEX_BATCH_SIZE = 25
INDEX_FILE_EXTENSIONS = frozenset({".md", ".mdx", ".txt"})

# ============================================================================
# Rate Limiting (Redis)
# ============================================================================

DEFAULT_REDIS_URL = "redis://localhost:6379/0"
RATE_LIMIT_PER_MINUTE = 5
RATE_LIMIT_WINDOW_SECONDS = 60
RATE_LIMIT_KEY_PREFIX = "rate_limit:"
