"""CLI main entry point - routes commands to appropriate handlers."""

import argparse
import asyncio
import sys

from src.cli.index_docs import index_docs
from src.cli.query import query
from src.cli.stats import stats
from src.lib.config import get_config
from src.lib.logging import setup_logging


def create_parser() -> argparse.ArgumentParser:
    """Create main CLI argument parser with subcommands.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="livinglands-assistant",
        description="Living Lands Assistant - CLI Tools",
        epilog="For command-specific help: livinglands-assistant <command> --help",
    )

    parser.add_argument("--version", action="version", version="Living Lands Assistant v1.0.0")

    subparsers = parser.add_subparsers(dest="command", help="Available commands", required=True)

    # Command: index-docs
    index_parser = subparsers.add_parser(
        "index-docs",
        help="Index documentation into vector database",
        description="Chunk and embed .md, .mdx and .txt files into the vector database",
    )
    index_parser.add_argument("--path", required=True, help="Documentation directory or file")

    # Command: query
    query_parser = subparsers.add_parser(
        "query",
        help="Test the question pipeline locally",
        description="Classify, retrieve and generate an answer for one question",
    )
    query_parser.add_argument("query", help="Question text")
    query_parser.add_argument("--user-id", help="Apply the per-user rate limit as this user")
    query_parser.add_argument(
        "--rag-only", action="store_true", help="Stop after RAG retrieval, do not call LLM"
    )
    query_parser.add_argument(
        "--max-results",
        type=int,
        default=None,
        help="Nearest neighbours to retrieve (default: from config)",
    )

    # Command: stats
    subparsers.add_parser(
        "stats",
        help="Show collection statistics",
        description="Show document count and chunking parameters",
    )

    return parser


def main() -> None:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args()

    try:
        setup_logging(get_config().log_level)

        if args.command == "index-docs":
            index_docs(path=args.path)

        elif args.command == "query":
            asyncio.run(
                query(
                    question=args.query,
                    user_id=args.user_id,
                    rag_only=args.rag_only,
                    max_results=args.max_results,
                )
            )

        elif args.command == "stats":
            asyncio.run(stats())

        else:
            parser.print_help()
            sys.exit(1)

    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        sys.exit(130)
    except Exception as e:
        print(f"\n❌ Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
