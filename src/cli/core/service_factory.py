"""Factory for creating service instances.

Centralizes service initialization to reduce code duplication
and improve testability.
"""

from src.lib.config import Config, get_config
from src.lib.logging import get_logger
from src.lib.personality import load_personality
from src.services.llm.base import LLMConfig
from src.services.llm.generator import ResponseGenerator
from src.services.llm.ollama import OllamaClient
from src.services.orchestrator import QueryOrchestrator
from src.services.rag.ingestor import DocumentIndexer
from src.services.rag.retriever import RAGService
from src.services.rag.vector_db import ChromaHTTPClient
from src.services.rate_limiter import RateLimiter

logger = get_logger(__name__)


class ServiceFactory:
    """Factory for creating commonly-used service instances.

    Services built by one factory share backend clients; call aclose()
    when done.
    """

    def __init__(self, config: Config | None = None):
        self.config = config or get_config()
        self._ollama: OllamaClient | None = None
        self._vector_db: ChromaHTTPClient | None = None
        self._rag: RAGService | None = None
        self._rate_limiter: RateLimiter | None = None

    def create_ollama_client(self) -> OllamaClient:
        if self._ollama is None:
            logger.debug("creating_ollama_client", url=self.config.ollama_url)
            self._ollama = OllamaClient(
                self.config.ollama_url, timeout=self.config.ollama_timeout_seconds
            )
        return self._ollama

    def create_vector_db(self) -> ChromaHTTPClient:
        if self._vector_db is None:
            logger.debug("creating_vector_db_client", url=self.config.chroma_url)
            self._vector_db = ChromaHTTPClient(
                self.config.chroma_url,
                tenant=self.config.chroma_tenant,
                database=self.config.chroma_database,
            )
        return self._vector_db

    def create_rag_service(self) -> RAGService:
        """Create the RAG service (one per factory, so the collection id is cached once)."""
        if self._rag is None:
            self._rag = RAGService(
                vector_db=self.create_vector_db(),
                ollama_client=self.create_ollama_client(),
                embed_model=self.config.embedding_model,
                collection_name=self.config.collection_name,
                relevance_threshold=self.config.relevance_threshold,
            )
        return self._rag

    def create_indexer(self) -> DocumentIndexer:
        return DocumentIndexer(self.create_rag_service())

    def create_generator(self) -> ResponseGenerator:
        """Create the response generator.

        Raises:
            FileNotFoundError: If the personality file is missing
            ValueError: If the personality file is invalid
        """
        personality = load_personality(self.config.personality_file)
        return ResponseGenerator(
            client=self.create_ollama_client(),
            model=self.config.llm_model,
            personality=personality,
            config=LLMConfig.from_app_config(self.config),
        )

    def create_rate_limiter(self) -> RateLimiter:
        if self._rate_limiter is None:
            self._rate_limiter = RateLimiter.from_url(
                self.config.redis_url, requests_per_minute=self.config.rate_limit_per_minute
            )
        return self._rate_limiter

    def create_orchestrator(self, with_rate_limiter: bool = True) -> QueryOrchestrator:
        return QueryOrchestrator(
            rag_service=self.create_rag_service(),
            generator=self.create_generator(),
            rate_limiter=self.create_rate_limiter() if with_rate_limiter else None,
            rag_max_results=self.config.rag_max_results,
            rag_timeout_seconds=self.config.rag_timeout_seconds,
        )

    async def aclose(self) -> None:
        """Close every backend client created so far."""
        if self._ollama is not None:
            await self._ollama.aclose()
        if self._vector_db is not None:
            await self._vector_db.aclose()
        if self._rate_limiter is not None:
            await self._rate_limiter.aclose()
