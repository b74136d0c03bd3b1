"""Document indexing for the retrieval collection.

Walks documentation files, splits them into overlapping character chunks
with deterministic ids and submits them to the RAG service in batches.
"""

import hashlib
import time
from dataclasses import dataclass, field
from pathlib import Path

from src.lib.constants import (
    INDEX_BATCH_SIZE,
    INDEX_CHUNK_OVERLAP,
    INDEX_CHUNK_SIZE,
    INDEX_FILE_EXTENSIONS,
)
from src.lib.logging import get_logger
from src.models.document import Document
from src.services.rag.retriever import RAGError, RAGService

logger = get_logger(__name__)


class IndexingError(Exception):
    """A file or directory could not be indexed."""

    pass


@dataclass
class IndexingResult:
    """Result of indexing a directory."""

    processed_files: int = 0
    skipped_files: int = 0
    total_chunks: int = 0
    batches: int = 0
    errors: list[str] = field(default_factory=list)  # Paths that could not be read
    duration_seconds: float = 0.0


def calculate_file_checksum(path: str | Path) -> str:
    """Return the SHA-256 hex digest of a file's contents.

    Raises:
        IndexingError: If the file cannot be read
    """
    digest = hashlib.sha256()
    try:
        with open(path, "rb") as f:
            for block in iter(lambda: f.read(65536), b""):
                digest.update(block)
    except OSError as e:
        raise IndexingError(f"failed to calculate checksum: {e}") from e
    return digest.hexdigest()


def is_indexable(path: Path) -> bool:
    return path.suffix.lower() in INDEX_FILE_EXTENSIONS


class DocumentIndexer:
    """Chunks documentation files and stores them through the RAG service."""

    def __init__(
        self,
        rag_service: RAGService,
        chunk_size: int = INDEX_CHUNK_SIZE,
        overlap: int = INDEX_CHUNK_OVERLAP,
        batch_size: int = INDEX_BATCH_SIZE,
    ):
        """Initialize indexer.

        Args:
            rag_service: Retrieval service that embeds and stores chunks
            chunk_size: Chunk length in characters
            overlap: Characters shared by consecutive chunks
            batch_size: Chunks per add_documents call
        """
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if not 0 <= overlap < chunk_size:
            raise ValueError("overlap must be in [0, chunk_size)")
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")

        self.rag_service = rag_service
        self.chunk_size = chunk_size
        self.overlap = overlap
        self.batch_size = batch_size

    def chunk_document(self, content: str) -> list[str]:
        """Split content into overlapping fixed-size chunks.

        Works on characters, so multi-byte text is never split mid-character.
        Content shorter than the chunk size is a single chunk; whitespace-only
        chunks are dropped.
        """
        if not content.strip():
            return []
        if len(content) < self.chunk_size:
            return [content]

        chunks = []
        step = self.chunk_size - self.overlap

        for start in range(0, len(content), step):
            end = min(start + self.chunk_size, len(content))
            chunk = content[start:end]
            if chunk.strip():
                chunks.append(chunk)
            if end == len(content):
                break

        return chunks

    def build_documents(self, path: str, content: str, checksum: str) -> list[Document]:
        """Turn a file's content into chunk documents with deterministic ids."""
        indexed_at = int(time.time())
        return [
            Document(
                id=f"{path}:{checksum}:chunk_{i}",
                text=chunk,
                metadata={
                    "source": path,
                    "checksum": checksum,
                    "chunk": i,
                    "indexed": indexed_at,
                },
            )
            for i, chunk in enumerate(self.chunk_document(content))
        ]

    async def index_directory(self, dir_path: str | Path) -> IndexingResult:
        """Recursively index every supported file under a directory.

        Unreadable and empty files are logged and skipped.

        Args:
            dir_path: Directory to walk

        Returns:
            IndexingResult with file and chunk counts

        Raises:
            IndexingError: If the directory is missing or a batch cannot be stored
        """
        start_time = time.time()
        root = Path(dir_path)
        if not root.is_dir():
            raise IndexingError(f"directory does not exist: {dir_path}")

        logger.info("indexing_started", path=str(root))

        result = IndexingResult()
        documents: list[Document] = []

        for path in sorted(p for p in root.rglob("*") if p.is_file() and is_indexable(p)):
            try:
                raw = path.read_bytes()
            except OSError as e:
                logger.error("file_read_failed", path=str(path), error=str(e))
                result.errors.append(str(path))
                continue

            if not raw:
                logger.debug("empty_file_skipped", path=str(path))
                result.skipped_files += 1
                continue

            checksum = hashlib.sha256(raw).hexdigest()
            chunks = self.build_documents(
                str(path), raw.decode("utf-8", errors="replace"), checksum
            )
            if not chunks:
                logger.debug("no_chunks_generated", path=str(path))
                result.skipped_files += 1
                continue

            documents.extend(chunks)
            result.processed_files += 1
            logger.info("file_processed", path=str(path), chunks=len(chunks))

        if not documents:
            logger.warning("no_documents_to_index", path=str(root))
            result.duration_seconds = time.time() - start_time
            return result

        result.total_chunks = len(documents)
        result.batches = await self._add_in_batches(documents)
        result.duration_seconds = time.time() - start_time

        logger.info(
            "indexing_completed",
            processed_files=result.processed_files,
            skipped_files=result.skipped_files,
            total_chunks=result.total_chunks,
            batches=result.batches,
            duration_seconds=round(result.duration_seconds, 2),
        )
        return result

    async def index_file(self, file_path: str | Path) -> int:
        """Index a single file (a directory is indexed recursively).

        Returns:
            Number of chunks submitted

        Raises:
            IndexingError: For missing, unsupported or empty files, or storage failure
        """
        path = Path(file_path)
        if not path.exists():
            raise IndexingError(f"file does not exist: {file_path}")
        if path.is_dir():
            result = await self.index_directory(path)
            return result.total_chunks

        if not is_indexable(path):
            supported = ", ".join(sorted(INDEX_FILE_EXTENSIONS))
            raise IndexingError(
                f"unsupported file type: {path.suffix or '(none)'} (only {supported} are supported)"
            )

        try:
            raw = path.read_bytes()
        except OSError as e:
            raise IndexingError(f"failed to read file: {e}") from e

        if not raw:
            raise IndexingError("file is empty")

        checksum = hashlib.sha256(raw).hexdigest()
        documents = self.build_documents(str(path), raw.decode("utf-8", errors="replace"), checksum)
        if not documents:
            raise IndexingError("no chunks generated from file")

        await self._add_in_batches(documents)

        logger.info(
            "file_indexed", path=str(path), chunks=len(documents), total_chars=len(raw)
        )
        return len(documents)

    async def _add_in_batches(self, documents: list[Document]) -> int:
        total_batches = (len(documents) + self.batch_size - 1) // self.batch_size
        logger.info("adding_documents", total_chunks=len(documents), batches=total_batches)

        for batch_num, start in enumerate(range(0, len(documents), self.batch_size), start=1):
            batch = documents[start : start + self.batch_size]
            logger.debug(
                "processing_batch",
                batch=batch_num,
                total_batches=total_batches,
                batch_size=len(batch),
            )
            try:
                await self.rag_service.add_documents(batch)
            except RAGError as e:
                raise IndexingError(
                    f"failed to add batch {batch_num}/{total_batches}: {e}"
                ) from e

        return total_batches

    async def get_indexing_stats(self) -> dict:
        """Collection size and chunking parameters.

        Raises:
            IndexingError: If the collection count fails
        """
        try:
            count = await self.rag_service.count()
        except RAGError as e:
            raise IndexingError(f"failed to get collection count: {e}") from e

        return {
            "total_documents": count,
            "chunk_size": self.chunk_size,
            "overlap": self.overlap,
            "timestamp": int(time.time()),
        }
