"""RAG retrieval service.

Owns the lazily resolved vector collection, embeds questions through the
generation backend and filters nearest neighbours by cosine distance.
"""

import asyncio

from src.lib.constants import DEFAULT_COLLECTION_NAME, DEFAULT_RELEVANCE_THRESHOLD, RAG_MAX_RESULTS
from src.lib.logging import get_logger
from src.lib.text_utils import metadata_source, truncate_text
from src.models.document import Document
from src.services.llm.base import LLMError
from src.services.llm.ollama import OllamaClient
from src.services.rag.vector_db import (
    ChromaHTTPClient,
    CollectionExistsError,
    CollectionNotFoundError,
    VectorDBError,
)

logger = get_logger(__name__)


class RAGError(Exception):
    """Retrieval or document storage failed."""

    pass


class RAGService:
    """Retrieval-augmented generation backend access.

    The collection id is resolved at most once per instance, even when
    several first queries race: readers check the cached id without
    locking, and resolution runs under an exclusive lock with a re-check.
    """

    def __init__(
        self,
        vector_db: ChromaHTTPClient,
        ollama_client: OllamaClient,
        embed_model: str,
        collection_name: str = DEFAULT_COLLECTION_NAME,
        relevance_threshold: float = DEFAULT_RELEVANCE_THRESHOLD,
    ):
        """Initialize RAG service.

        Args:
            vector_db: Chroma REST client
            ollama_client: Generation backend client used for embeddings
            embed_model: Embedding model name
            collection_name: Collection to read and write
            relevance_threshold: Maximum cosine distance (0 identical, 2 opposite)
        """
        self.vector_db = vector_db
        self.ollama = ollama_client
        self.embed_model = embed_model
        self.collection_name = collection_name
        self.relevance_threshold = relevance_threshold

        self._collection_id: str | None = None
        self._collection_lock = asyncio.Lock()

        logger.info(
            "rag_service_initialized",
            collection=collection_name,
            embedding_model=embed_model,
            relevance_threshold=relevance_threshold,
        )

    @property
    def collection_id(self) -> str | None:
        return self._collection_id

    def set_relevance_threshold(self, threshold: float) -> None:
        """Set the maximum distance for documents to count as relevant.

        Args:
            threshold: 0 (exact match) to 2 (opposite)
        """
        self.relevance_threshold = threshold
        logger.info("relevance_threshold_updated", threshold=threshold)

    async def ensure_collection(self) -> str:
        """Resolve and cache the collection id (get, else create).

        Returns:
            Collection id

        Raises:
            RAGError: If the backend fails
        """
        collection_id = self._collection_id
        if collection_id is not None:
            return collection_id

        async with self._collection_lock:
            # Another caller may have resolved it while we waited
            if self._collection_id is None:
                try:
                    self._collection_id = await self._resolve_collection()
                except VectorDBError as e:
                    raise RAGError(f"failed to ensure collection exists: {e}") from e
            return self._collection_id

    async def _resolve_collection(self) -> str:
        collection_id = await self.vector_db.get_collection(self.collection_name)
        if collection_id is not None:
            logger.debug("collection_retrieved", collection=self.collection_name, id=collection_id)
            return collection_id

        try:
            collection_id = await self.vector_db.create_collection(self.collection_name)
        except CollectionExistsError:
            # Lost a create race with another process; fetch theirs once
            collection_id = await self.vector_db.get_collection(self.collection_name)
            if collection_id is None:
                raise VectorDBError(
                    f"collection {self.collection_name} reported as existing but not found"
                )
            logger.debug("collection_retrieved_after_race", collection=self.collection_name)
            return collection_id

        logger.info("collection_created", collection=self.collection_name, id=collection_id)
        return collection_id

    async def query(self, question: str, n_results: int = RAG_MAX_RESULTS) -> list[str]:
        """Retrieve the most relevant document texts for a question.

        Args:
            question: User question
            n_results: Number of nearest neighbours to request

        Returns:
            Texts within the relevance threshold, in backend ranking order

        Raises:
            RAGError: On backend failures (an empty or missing collection is not an error)
        """
        collection_id = await self.ensure_collection()

        try:
            embedding = await self.ollama.embed(self.embed_model, question)
        except LLMError as e:
            raise RAGError(f"failed to generate question embedding: {e}") from e

        if not embedding:
            logger.warning("empty_question_embedding", model=self.embed_model)
            return []

        try:
            result = await self.vector_db.query(collection_id, embedding, n_results)
        except CollectionNotFoundError:
            logger.debug("collection_not_found_returning_empty", collection=self.collection_name)
            return []
        except VectorDBError as e:
            raise RAGError(f"chromadb query failed: {e}") from e

        contexts: list[str] = []
        filtered_count = 0

        for i, document in enumerate(result.documents):
            if not document:
                continue

            distance = result.distances[i] if i < len(result.distances) else 0.0
            metadata = result.metadatas[i] if i < len(result.metadatas) else None

            if distance > self.relevance_threshold:
                filtered_count += 1
                logger.debug(
                    "document_filtered_low_relevance",
                    distance=distance,
                    threshold=self.relevance_threshold,
                    source=metadata_source(metadata),
                    doc_preview=truncate_text(document, 80),
                )
                continue

            contexts.append(document)
            logger.info(
                "document_accepted_for_context",
                distance=distance,
                threshold=self.relevance_threshold,
                source=metadata_source(metadata),
                doc_preview=truncate_text(document, 100),
            )

        logger.info(
            "rag_query_complete",
            results=len(contexts),
            filtered=filtered_count,
            threshold=self.relevance_threshold,
        )
        return contexts

    async def add_documents(self, documents: list[Document]) -> int:
        """Embed documents one by one and store them as a single batch.

        Documents whose embedding fails are logged and skipped.

        Args:
            documents: Documents to add

        Returns:
            Number of documents stored

        Raises:
            RAGError: If no document could be embedded or the write fails
        """
        if not documents:
            return 0

        collection_id = await self.ensure_collection()

        ids: list[str] = []
        embeddings: list[list[float]] = []
        texts: list[str] = []
        metadatas: list[dict] = []

        for document in documents:
            try:
                embedding = await self.ollama.embed(self.embed_model, document.text)
            except LLMError as e:
                logger.error("document_embedding_failed", doc_id=document.id, error=str(e))
                continue

            if not embedding:
                logger.error("document_embedding_empty", doc_id=document.id)
                continue

            ids.append(document.id)
            embeddings.append(embedding)
            texts.append(document.text)
            metadatas.append(dict(document.metadata))

        if not embeddings:
            raise RAGError("failed to generate embeddings for any documents")

        try:
            await self.vector_db.add(collection_id, ids, embeddings, texts, metadatas)
        except VectorDBError as e:
            raise RAGError(f"chromadb add failed: {e}") from e

        logger.info(
            "documents_added",
            count=len(ids),
            skipped=len(documents) - len(ids),
            collection=self.collection_name,
        )
        return len(ids)

    async def delete_document(self, document_id: str) -> None:
        """Remove a document from the collection.

        Raises:
            RAGError: If the backend fails
        """
        collection_id = await self.ensure_collection()
        try:
            await self.vector_db.delete(collection_id, [document_id])
        except VectorDBError as e:
            raise RAGError(f"chromadb delete failed: {e}") from e

        logger.info("document_deleted", id=document_id)

    async def count(self) -> int:
        """Return the number of documents in the collection.

        Raises:
            RAGError: If the backend fails
        """
        collection_id = await self.ensure_collection()
        try:
            return await self.vector_db.count(collection_id)
        except VectorDBError as e:
            raise RAGError(f"chromadb count failed: {e}") from e
