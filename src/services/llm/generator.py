"""Response generation with intent-aware modes.

Picks a response mode from the query intent, builds a completion prompt
(retrieved documentation is only included in deep mode), calls the local
generation backend with the mode's parameters and strips echoed prompt
template markers from the output.
"""

import time
from dataclasses import dataclass

from src.lib.constants import RAG_SNIPPET_MAX_CHARS, RESPONSE_STOP_MARKERS
from src.lib.language import Language, detect_language
from src.lib.logging import get_logger
from src.lib.personality import Personality
from src.lib.text_utils import truncate_text
from src.lib.validation import sanitize_prompt_input
from src.models.intent import QueryIntent, ResponseMode
from src.services.llm.base import GenerationError, LLMConfig, LLMError
from src.services.llm.ollama import GenerateRequest, GenerateResponse, GenerationOptions, OllamaClient

logger = get_logger(__name__)

CONTEXT_HEADER = "Relevant documentation (use only if it answers the question):\n"
CONTEXT_SEPARATOR = "\n---\n\n"


@dataclass
class GenerationMetrics:
    """Timing and token counts for one generation."""

    mode: ResponseMode
    total_duration_ms: int
    prompt_tokens: int
    generated_tokens: int
    tokens_per_second: float
    prompt_eval_ms: int
    generation_ms: int


def determine_mode(intent: QueryIntent, has_context: bool) -> ResponseMode:
    """Select the response mode for an intent.

    Args:
        intent: Classified query intent
        has_context: Whether retrieval returned any snippets

    Returns:
        ResponseMode (standard for anything unrecognized)
    """
    if intent in (QueryIntent.CONVERSATIONAL, QueryIntent.NAVIGATION, QueryIntent.ACCOUNT_HELP):
        return ResponseMode.FAST
    if intent is QueryIntent.IDENTITY:
        return ResponseMode.STANDARD
    if intent is QueryIntent.KNOWLEDGE:
        return ResponseMode.DEEP if has_context else ResponseMode.STANDARD
    return ResponseMode.STANDARD


def build_prompt(user_message: str, rag_context: list[str], mode: ResponseMode) -> str:
    """Build the completion prompt.

    Deep mode prepends a numbered list of retrieved snippets, each cut to
    RAG_SNIPPET_MAX_CHARS characters.
    """
    parts = []

    if mode is ResponseMode.DEEP and rag_context:
        parts.append(CONTEXT_HEADER)
        for i, snippet in enumerate(rag_context, start=1):
            parts.append(f"{i}. {truncate_text(snippet, RAG_SNIPPET_MAX_CHARS)}\n")
        parts.append(CONTEXT_SEPARATOR)

    parts.append(f"User: {user_message}\nAssistant:")
    return "".join(parts)


def clean_response(raw: str) -> str:
    """Cut the answer at the first echoed prompt template marker."""
    answer = raw
    cut_positions = [idx for idx in (answer.find(m) for m in RESPONSE_STOP_MARKERS) if idx != -1]
    if cut_positions:
        answer = answer[: min(cut_positions)]
    return answer.strip()


class ResponseGenerator:
    """Generates answers through the local LLM.

    No retries happen here: a backend failure is raised as GenerationError
    and the caller chooses the fallback.
    """

    def __init__(
        self,
        client: OllamaClient,
        model: str,
        personality: Personality,
        config: LLMConfig | None = None,
    ):
        """Initialize generator.

        Args:
            client: Generation backend client
            model: Model identifier (e.g., mistral:7b-instruct)
            personality: Validated personality with per-mode system prompts
            config: Per-mode generation parameters (defaults if None)
        """
        self.client = client
        self.model = model
        self.personality = personality
        self.config = config or LLMConfig()

        logger.info(
            "llm_service_initialized",
            model=model,
            personality=personality.name,
            role=personality.role,
            fast_tokens=self.config.fast.max_tokens,
            standard_tokens=self.config.standard.max_tokens,
            deep_tokens=self.config.deep.max_tokens,
        )

    def get_system_prompt(self, mode: ResponseMode, language: Language) -> str:
        """Return the mode's system prompt, with a language instruction if needed."""
        system_prompt = self.personality.prompt_for(mode)
        if language.is_non_english:
            system_prompt = f"{system_prompt}\n\nIMPORTANT: Respond in {language.value}."
        return system_prompt

    def get_options(self, mode: ResponseMode) -> GenerationOptions:
        params = self.config.for_mode(mode)
        return GenerationOptions(
            temperature=params.temperature,
            num_predict=params.max_tokens,
            top_k=params.top_k,
            top_p=params.top_p,
            repeat_penalty=self.config.repeat_penalty,
            num_ctx=self.config.num_context,
        )

    async def generate(
        self,
        user_message: str,
        rag_context: list[str] | None = None,
        intent: QueryIntent = QueryIntent.KNOWLEDGE,
    ) -> str:
        """Generate an answer for a user message.

        Args:
            user_message: Raw user text (sanitized here)
            rag_context: Retrieved snippets, possibly empty
            intent: Classified intent

        Returns:
            Cleaned answer text

        Raises:
            GenerationError: If the backend call fails
        """
        start_time = time.monotonic()
        rag_context = rag_context or []

        user_message = sanitize_prompt_input(user_message)
        mode = determine_mode(intent, len(rag_context) > 0)
        language, confidence = detect_language(user_message)

        request = GenerateRequest(
            model=self.model,
            prompt=build_prompt(user_message, rag_context, mode),
            system=self.get_system_prompt(mode, language),
            options=self.get_options(mode),
        )

        try:
            response = await self.client.generate(request)
        except LLMError as e:
            logger.error(
                "llm_generation_failed",
                error=str(e),
                mode=mode.value,
                intent=intent.value,
                duration_ms=int((time.monotonic() - start_time) * 1000),
            )
            raise GenerationError(f"llm generation failed: {e}") from e

        answer = clean_response(response.response)

        metrics = self.calculate_metrics(response, mode, start_time)
        logger.info(
            "llm_response_generated",
            mode=mode.value,
            intent=intent.value,
            duration_ms=metrics.total_duration_ms,
            prompt_tokens=metrics.prompt_tokens,
            generated_tokens=metrics.generated_tokens,
            tokens_per_sec=round(metrics.tokens_per_second, 1),
            rag_context_count=len(rag_context),
            response_length=len(answer),
        )
        logger.debug(
            "llm_generation_details",
            detected_language=language.value,
            language_confidence=confidence,
            prompt_eval_ms=metrics.prompt_eval_ms,
            generation_ms=metrics.generation_ms,
        )

        return answer

    @staticmethod
    def calculate_metrics(
        response: GenerateResponse, mode: ResponseMode, start_time: float
    ) -> GenerationMetrics:
        """Derive timing metrics from backend-reported counts (nanoseconds)."""
        tokens_per_second = 0.0
        if response.eval_duration > 0 and response.eval_count > 0:
            tokens_per_second = response.eval_count / (response.eval_duration / 1e9)

        return GenerationMetrics(
            mode=mode,
            total_duration_ms=int((time.monotonic() - start_time) * 1000),
            prompt_tokens=response.prompt_eval_count,
            generated_tokens=response.eval_count,
            tokens_per_second=tokens_per_second,
            prompt_eval_ms=max(response.prompt_eval_duration, 0) // 1_000_000,
            generation_ms=max(response.eval_duration, 0) // 1_000_000,
        )
