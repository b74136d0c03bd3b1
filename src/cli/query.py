"""CLI command to test the question-answering pipeline locally.

Usage:
    python -m src.cli query "How does the metabolism system work?"
"""

import sys
import time

from src.cli.core.service_factory import ServiceFactory
from src.lib.config import get_config
from src.lib.logging import get_logger
from src.services.intent_classifier import classify_intent
from src.services.orchestrator import QueryStatus
from src.services.rag.retriever import RAGError

logger = get_logger(__name__)


async def _print_rag_results(factory: ServiceFactory, question: str, max_results: int) -> None:
    rag = factory.create_rag_service()
    intent = classify_intent(question)
    print(f"Intent: {intent.value} (retrieval {'needed' if intent.needs_rag else 'skipped in pipeline'})")

    start_time = time.monotonic()
    try:
        contexts = await rag.query(question, max_results)
    except RAGError as e:
        logger.error("rag_query_failed", error=str(e))
        print(f"❌ RAG retrieval failed: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"Retrieved {len(contexts)} snippets in {time.monotonic() - start_time:.2f}s")
    print(f"Relevance threshold: {rag.relevance_threshold}")
    for i, context in enumerate(contexts, 1):
        print(f"\n{i}. {context[:200]}...")


async def query(
    question: str,
    user_id: str | None = None,
    rag_only: bool = False,
    max_results: int | None = None,
    factory: ServiceFactory | None = None,
) -> None:
    """Run one question through the pipeline and print the result.

    Args:
        question: User question
        user_id: Rate limit as this user (no rate limiting if None)
        rag_only: Stop after retrieval, do not call the LLM
        max_results: Override RAG_MAX_RESULTS
        factory: Service factory (built from config if None)
    """
    factory = factory or ServiceFactory(get_config())
    if max_results is not None:
        factory.config.rag_max_results = max_results

    print(f"\nQuery: {question}")
    if rag_only:
        print("Mode: RAG-only (no LLM generation)")
    else:
        print(f"Model: {factory.config.llm_model}")
    print(f"{'=' * 60}\n")

    try:
        if rag_only:
            await _print_rag_results(factory, question, factory.config.rag_max_results)
            return

        orchestrator = factory.create_orchestrator(with_rate_limiter=user_id is not None)
        result = await orchestrator.process_query(question, user_id=user_id)
    finally:
        await factory.aclose()

    print(f"Status:   {result.status.value}")
    if result.intent is not None:
        print(f"Intent:   {result.intent.value}")
    if result.mode is not None:
        print(f"Mode:     {result.mode.value}")
    print(f"Context:  {result.context_count} snippets")
    if result.remaining is not None:
        print(f"Quota:    {result.remaining} remaining, resets in {result.reset_in_seconds:.0f}s")
    print(f"Elapsed:  {result.elapsed_ms}ms")
    print()
    print("Answer:")
    print("-" * 60)
    print(result.answer)

    if result.status is not QueryStatus.ANSWERED:
        sys.exit(1)
