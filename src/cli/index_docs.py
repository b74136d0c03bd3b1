"""CLI command to index documentation into the vector database.

Usage:
    python -m src.cli index-docs --path docs/
"""

import asyncio
import sys
from pathlib import Path

from src.cli.core.service_factory import ServiceFactory
from src.lib.config import get_config
from src.lib.logging import get_logger
from src.services.rag.ingestor import IndexingError

logger = get_logger(__name__)


async def _index(path: Path, factory: ServiceFactory) -> None:
    indexer = factory.create_indexer()
    try:
        if path.is_dir():
            result = await indexer.index_directory(path)
            print(f"Processed files: {result.processed_files}")
            print(f"Skipped files:   {result.skipped_files}")
            if result.errors:
                print(f"Unreadable files: {len(result.errors)}")
            print(f"Chunks indexed:  {result.total_chunks} in {result.batches} batches")
            print(f"Duration:        {result.duration_seconds:.1f}s")
        else:
            chunks = await indexer.index_file(path)
            print(f"Chunks indexed:  {chunks}")

        stats = await indexer.get_indexing_stats()
        print(f"Collection size: {stats['total_documents']}")
    finally:
        await factory.aclose()


def index_docs(path: str, factory: ServiceFactory | None = None) -> None:
    """Index a documentation directory or file.

    Args:
        path: Directory or file to index
        factory: Service factory (built from config if None)
    """
    target = Path(path)
    if not target.exists():
        print(f"❌ Path not found: {target}", file=sys.stderr)
        sys.exit(1)

    factory = factory or ServiceFactory(get_config())

    print(f"\nIndexing: {target}")
    print(f"Collection: {factory.config.collection_name}")
    print(f"{'=' * 60}")

    try:
        asyncio.run(_index(target, factory))
    except IndexingError as e:
        logger.error("indexing_failed", path=str(target), error=str(e))
        print(f"❌ Indexing failed: {e}", file=sys.stderr)
        sys.exit(1)

    print("✅ Indexing complete")
