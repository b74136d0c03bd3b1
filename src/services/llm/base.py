"""Shared types for local text generation.

Exception hierarchy and the per-mode generation parameter bundles.
"""

from dataclasses import dataclass, field

from src.lib.constants import (
    LLM_DEEP_MAX_TOKENS,
    LLM_DEEP_TEMPERATURE,
    LLM_DEEP_TOP_K,
    LLM_DEEP_TOP_P,
    LLM_FAST_MAX_TOKENS,
    LLM_FAST_TEMPERATURE,
    LLM_FAST_TOP_K,
    LLM_FAST_TOP_P,
    LLM_NUM_CONTEXT,
    LLM_REPEAT_PENALTY,
    LLM_STANDARD_MAX_TOKENS,
    LLM_STANDARD_TEMPERATURE,
    LLM_STANDARD_TOP_K,
    LLM_STANDARD_TOP_P,
)
from src.models.intent import ResponseMode


# Exception classes
class LLMError(Exception):
    """Base exception for LLM errors."""

    pass


class BackendUnavailableError(LLMError):
    """Transport failure or non-2xx status from the generation backend."""

    pass


class GenerationError(LLMError):
    """Answer generation failed."""

    pass


@dataclass(frozen=True)
class ModeParameters:
    """Sampling parameters owned by one response mode."""

    max_tokens: int
    temperature: float
    top_k: int
    top_p: float


@dataclass
class LLMConfig:
    """Tunable generation parameters for every response mode."""

    fast: ModeParameters = field(
        default_factory=lambda: ModeParameters(
            LLM_FAST_MAX_TOKENS, LLM_FAST_TEMPERATURE, LLM_FAST_TOP_K, LLM_FAST_TOP_P
        )
    )
    standard: ModeParameters = field(
        default_factory=lambda: ModeParameters(
            LLM_STANDARD_MAX_TOKENS,
            LLM_STANDARD_TEMPERATURE,
            LLM_STANDARD_TOP_K,
            LLM_STANDARD_TOP_P,
        )
    )
    deep: ModeParameters = field(
        default_factory=lambda: ModeParameters(
            LLM_DEEP_MAX_TOKENS, LLM_DEEP_TEMPERATURE, LLM_DEEP_TOP_K, LLM_DEEP_TOP_P
        )
    )

    # Common settings
    repeat_penalty: float = LLM_REPEAT_PENALTY
    num_context: int = LLM_NUM_CONTEXT

    def for_mode(self, mode: ResponseMode) -> ModeParameters:
        if mode is ResponseMode.FAST:
            return self.fast
        if mode is ResponseMode.DEEP:
            return self.deep
        return self.standard

    @classmethod
    def from_app_config(cls, config) -> "LLMConfig":
        """Build from the application Config (max tokens and temperatures)."""
        return cls(
            fast=ModeParameters(
                config.fast_max_tokens, config.fast_temperature, LLM_FAST_TOP_K, LLM_FAST_TOP_P
            ),
            standard=ModeParameters(
                config.standard_max_tokens,
                config.standard_temperature,
                LLM_STANDARD_TOP_K,
                LLM_STANDARD_TOP_P,
            ),
            deep=ModeParameters(
                config.deep_max_tokens, config.deep_temperature, LLM_DEEP_TOP_K, LLM_DEEP_TOP_P
            ),
        )
