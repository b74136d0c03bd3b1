"""CLI command to show collection statistics.

Usage:
    python -m src.cli stats
"""

import sys
from datetime import UTC, datetime

from src.cli.core.service_factory import ServiceFactory
from src.lib.config import get_config
from src.lib.logging import get_logger
from src.services.rag.ingestor import IndexingError

logger = get_logger(__name__)


async def stats(factory: ServiceFactory | None = None) -> None:
    """Print document count and chunking parameters for the collection."""
    factory = factory or ServiceFactory(get_config())

    try:
        info = await factory.create_indexer().get_indexing_stats()
    except IndexingError as e:
        logger.error("stats_failed", error=str(e))
        print(f"❌ Failed to read collection stats: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        await factory.aclose()

    print(f"Collection:      {factory.config.collection_name}")
    print(f"Total documents: {info['total_documents']}")
    print(f"Chunk size:      {info['chunk_size']} (overlap {info['overlap']})")
    print(f"Checked at:      {datetime.fromtimestamp(info['timestamp'], UTC).isoformat()}")
