"""Shared query orchestrator for the classify → RAG → LLM pipeline.

This orchestrator provides the "user question → answer" flow used by every
entry point (CLI query, chat integrations, tests).

Design principles:
- Rate limit first, then validate, so rejected input still costs quota
- Validated input is sanitized once and that text is classified, retrieved and answered
- Retrieval only for intents that need it, and it fails open to no context
- One deadline per request covers retrieval and generation
- Generation failures are never retried here; they become a fallback answer
"""

import asyncio
import math
import time
from dataclasses import dataclass
from enum import Enum
from uuid import uuid4

from src.lib.constants import (
    MODE_TIMEOUT_DEEP,
    MODE_TIMEOUT_FAST,
    MODE_TIMEOUT_STANDARD,
    PROMPT_MAX_LENGTH,
    RAG_MAX_RESULTS,
    RAG_QUERY_TIMEOUT,
)
from src.lib.logging import clear_correlation_id, get_logger, set_correlation_id, short_user_id
from src.lib.validation import sanitize_prompt_input, validate_prompt_input
from src.models.intent import QueryIntent, ResponseMode
from src.services.intent_classifier import classify_intent
from src.services.llm.base import LLMError
from src.services.llm.generator import ResponseGenerator, determine_mode
from src.services.rag.retriever import RAGError, RAGService
from src.services.rate_limiter import RateLimiter, RateLimiterError

logger = get_logger(__name__)

RATE_LIMITED_MESSAGE = (
    "The archives are experiencing many seekers at once. "
    "Please try again in {seconds} seconds."
)
INVALID_INPUT_MESSAGE = (
    "I cannot read that scroll, traveler. Please ask in plain words, "
    f"under {PROMPT_MAX_LENGTH} characters."
)
TIMEOUT_FALLBACK_MESSAGE = (
    "The archives are being consulted by many travelers at this moment, "
    "causing some delay. Please try again shortly, seeker."
)
ERROR_FALLBACK_MESSAGE = (
    "I apologize, traveler. The mists cloud my vision at this moment. Please try again."
)

# Share of the request deadline retrieval may use when it is tighter than the RAG timeout
RAG_DEADLINE_SHARE = 0.8

MODE_TIMEOUTS = {
    ResponseMode.FAST: MODE_TIMEOUT_FAST,
    ResponseMode.STANDARD: MODE_TIMEOUT_STANDARD,
    ResponseMode.DEEP: MODE_TIMEOUT_DEEP,
}


class QueryStatus(str, Enum):
    ANSWERED = "answered"
    RATE_LIMITED = "rate_limited"
    INVALID = "invalid"
    FAILED = "failed"  # Generation failed; answer holds the fallback text

    def __str__(self) -> str:
        return self.value


@dataclass
class QueryResult:
    """Outcome of one question, ready for delivery to the user."""

    status: QueryStatus
    answer: str
    intent: QueryIntent | None = None
    mode: ResponseMode | None = None
    context_count: int = 0
    remaining: int | None = None  # Quota left, None when no limiter ran
    reset_in_seconds: float | None = None
    elapsed_ms: int = 0


def mode_timeout(mode: ResponseMode) -> float:
    """Request deadline in seconds for a response mode."""
    return MODE_TIMEOUTS.get(mode, MODE_TIMEOUT_STANDARD)


class QueryOrchestrator:
    """Orchestrates one question from rate limiting to the delivered answer.

    Callers own identity extraction and response delivery.
    """

    def __init__(
        self,
        rag_service: RAGService,
        generator: ResponseGenerator,
        rate_limiter: RateLimiter | None = None,
        rag_max_results: int = RAG_MAX_RESULTS,
        rag_timeout_seconds: float = RAG_QUERY_TIMEOUT,
        fail_open_on_limiter_error: bool = True,
    ):
        """Initialize orchestrator with core services.

        Args:
            rag_service: Retrieval service
            generator: Response generator
            rate_limiter: Per-user limiter (None disables rate limiting)
            rag_max_results: Nearest neighbours requested per query
            rag_timeout_seconds: Retrieval budget before failing open
            fail_open_on_limiter_error: Allow the request when Redis is unreachable
        """
        self.rag = rag_service
        self.generator = generator
        self.rate_limiter = rate_limiter
        self.rag_max_results = rag_max_results
        self.rag_timeout_seconds = rag_timeout_seconds
        self.fail_open_on_limiter_error = fail_open_on_limiter_error

    async def process_query(self, question: str, user_id: str | None = None) -> QueryResult:
        """Answer a question.

        Args:
            question: Raw user text
            user_id: Caller identity for rate limiting (None skips the limiter)

        Returns:
            QueryResult; never raises for backend failures
        """
        start_time = time.monotonic()
        set_correlation_id(str(uuid4()))
        try:
            result = await self._process(question, user_id, start_time)
            result.elapsed_ms = int((time.monotonic() - start_time) * 1000)
            logger.info(
                "query_processed",
                status=result.status.value,
                intent=result.intent.value if result.intent else None,
                mode=result.mode.value if result.mode else None,
                context_count=result.context_count,
                elapsed_ms=result.elapsed_ms,
            )
            return result
        finally:
            clear_correlation_id()

    async def _process(
        self, question: str, user_id: str | None, start_time: float
    ) -> QueryResult:
        remaining = None
        reset_in = None

        if self.rate_limiter is not None and user_id is not None:
            try:
                limit = await self.rate_limiter.check_and_consume(user_id)
            except RateLimiterError as e:
                if not self.fail_open_on_limiter_error:
                    logger.error("rate_limit_check_failed", user_id=short_user_id(user_id), error=str(e))
                    return QueryResult(status=QueryStatus.FAILED, answer=ERROR_FALLBACK_MESSAGE)
                logger.warning(
                    "rate_limit_check_failed_allowing",
                    user_id=short_user_id(user_id),
                    error=str(e),
                )
            else:
                remaining = limit.remaining
                reset_in = limit.reset_in_seconds
                if not limit.allowed:
                    return QueryResult(
                        status=QueryStatus.RATE_LIMITED,
                        answer=RATE_LIMITED_MESSAGE.format(
                            seconds=math.ceil(limit.reset_in_seconds)
                        ),
                        remaining=limit.remaining,
                        reset_in_seconds=limit.reset_in_seconds,
                    )

        if not validate_prompt_input(question):
            logger.warning("invalid_query_rejected", length=len(question))
            return QueryResult(
                status=QueryStatus.INVALID,
                answer=INVALID_INPUT_MESSAGE,
                remaining=remaining,
                reset_in_seconds=reset_in,
            )

        question = sanitize_prompt_input(question)
        if not question:
            logger.warning("query_empty_after_sanitizing")
            return QueryResult(
                status=QueryStatus.INVALID,
                answer=INVALID_INPUT_MESSAGE,
                remaining=remaining,
                reset_in_seconds=reset_in,
            )

        intent = classify_intent(question)
        logger.debug("intent_classified", intent=intent.value)

        context: list[str] = []
        if intent.needs_rag:
            # Knowledge questions run under the deep-mode deadline at most
            context = await self.retrieve_context(question, mode_timeout(ResponseMode.DEEP))

        mode = determine_mode(intent, len(context) > 0)
        # One deadline per request: time spent before generation comes out of it
        deadline = mode_timeout(mode)
        timeout = deadline - (time.monotonic() - start_time)

        try:
            if timeout <= 0:
                raise asyncio.TimeoutError
            answer = await asyncio.wait_for(
                self.generator.generate(question, context, intent), timeout=timeout
            )
        except asyncio.TimeoutError:
            logger.error("generation_timeout", mode=mode.value, deadline_seconds=deadline)
            return QueryResult(
                status=QueryStatus.FAILED,
                answer=TIMEOUT_FALLBACK_MESSAGE,
                intent=intent,
                mode=mode,
                context_count=len(context),
                remaining=remaining,
                reset_in_seconds=reset_in,
            )
        except LLMError as e:
            logger.error("generation_failed", mode=mode.value, error=str(e))
            return QueryResult(
                status=QueryStatus.FAILED,
                answer=ERROR_FALLBACK_MESSAGE,
                intent=intent,
                mode=mode,
                context_count=len(context),
                remaining=remaining,
                reset_in_seconds=reset_in,
            )

        return QueryResult(
            status=QueryStatus.ANSWERED,
            answer=answer,
            intent=intent,
            mode=mode,
            context_count=len(context),
            remaining=remaining,
            reset_in_seconds=reset_in,
        )

    def retrieval_timeout(self, deadline_seconds: float) -> float:
        """Retrieval budget: the RAG timeout, or a share of a tighter request deadline."""
        return min(self.rag_timeout_seconds, deadline_seconds * RAG_DEADLINE_SHARE)

    async def retrieve_context(self, question: str, deadline_seconds: float) -> list[str]:
        """Retrieve snippets, degrading to an empty list on any failure.

        Args:
            question: User question
            deadline_seconds: Remaining request deadline

        Returns:
            Relevant snippets, or [] on timeout or retrieval error
        """
        timeout = self.retrieval_timeout(deadline_seconds)
        try:
            return await asyncio.wait_for(
                self.rag.query(question, self.rag_max_results), timeout=timeout
            )
        except asyncio.TimeoutError:
            logger.warning("rag_query_timeout", timeout_seconds=timeout)
        except RAGError as e:
            logger.warning("rag_query_failed", error=str(e))
        return []
