"""Configuration management for the application.

Loads environment variables and provides validated Config dataclass.
"""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from src.lib.constants import (
    DEFAULT_CHROMA_DATABASE,
    DEFAULT_CHROMA_TENANT,
    DEFAULT_CHROMA_URL,
    DEFAULT_COLLECTION_NAME,
    DEFAULT_EMBEDDING_MODEL,
    DEFAULT_LLM_MODEL,
    DEFAULT_OLLAMA_TIMEOUT,
    DEFAULT_OLLAMA_URL,
    DEFAULT_REDIS_URL,
    DEFAULT_RELEVANCE_THRESHOLD,
    LLM_DEEP_MAX_TOKENS,
    LLM_DEEP_TEMPERATURE,
    LLM_FAST_MAX_TOKENS,
    LLM_FAST_TEMPERATURE,
    LLM_STANDARD_MAX_TOKENS,
    LLM_STANDARD_TEMPERATURE,
    RAG_MAX_RESULTS,
    RAG_QUERY_TIMEOUT,
    RATE_LIMIT_PER_MINUTE,
)


@dataclass
class Config:
    """Application configuration."""

    # Generation backend
    ollama_url: str = DEFAULT_OLLAMA_URL
    llm_model: str = DEFAULT_LLM_MODEL
    embedding_model: str = DEFAULT_EMBEDDING_MODEL
    ollama_timeout_seconds: int = DEFAULT_OLLAMA_TIMEOUT

    # Vector backend
    chroma_url: str = DEFAULT_CHROMA_URL
    chroma_tenant: str = DEFAULT_CHROMA_TENANT
    chroma_database: str = DEFAULT_CHROMA_DATABASE
    collection_name: str = DEFAULT_COLLECTION_NAME

    # Retrieval
    relevance_threshold: float = DEFAULT_RELEVANCE_THRESHOLD
    rag_max_results: int = RAG_MAX_RESULTS
    rag_timeout_seconds: float = RAG_QUERY_TIMEOUT

    # Rate limiting
    redis_url: str = DEFAULT_REDIS_URL
    rate_limit_per_minute: int = RATE_LIMIT_PER_MINUTE

    # Logging
    log_level: str = "INFO"

    # Bot Personality
    personality_file: str = "config/personality.yaml"

    # Response modes
    fast_max_tokens: int = LLM_FAST_MAX_TOKENS
    fast_temperature: float = LLM_FAST_TEMPERATURE
    standard_max_tokens: int = LLM_STANDARD_MAX_TOKENS
    standard_temperature: float = LLM_STANDARD_TEMPERATURE
    deep_max_tokens: int = LLM_DEEP_MAX_TOKENS
    deep_temperature: float = LLM_DEEP_TEMPERATURE

    def validate(self) -> None:
        """Validate configuration.

        Raises:
            ValueError: If configuration is invalid
        """
        required = {
            "OLLAMA_URL": self.ollama_url,
            "LLM_MODEL": self.llm_model,
            "EMBEDDING_MODEL": self.embedding_model,
            "CHROMA_URL": self.chroma_url,
            "CHROMA_COLLECTION": self.collection_name,
            "REDIS_URL": self.redis_url,
            "PERSONALITY_FILE": self.personality_file,
        }
        for name, value in required.items():
            if not value:
                raise ValueError(f"{name} is required")

        if self.ollama_timeout_seconds < 1 or self.ollama_timeout_seconds > 600:
            raise ValueError(
                f"OLLAMA_TIMEOUT must be between 1 and 600 seconds, got {self.ollama_timeout_seconds}"
            )

        if self.relevance_threshold < 0 or self.relevance_threshold > 2:
            raise ValueError(
                f"RAG_RELEVANCE_THRESHOLD must be between 0 and 2, got {self.relevance_threshold}"
            )

        if self.rag_max_results < 1:
            raise ValueError("RAG_MAX_RESULTS must be at least 1")

        if self.rag_timeout_seconds <= 0:
            raise ValueError("RAG_TIMEOUT_SECONDS must be positive")

        if self.rate_limit_per_minute < 1 or self.rate_limit_per_minute > 1000:
            raise ValueError(
                f"RATE_LIMIT_PER_MINUTE must be between 1 and 1000, got {self.rate_limit_per_minute}"
            )

        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if self.log_level.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of: {', '.join(sorted(valid_levels))}")

        for mode in ("fast", "standard", "deep"):
            max_tokens = getattr(self, f"{mode}_max_tokens")
            temperature = getattr(self, f"{mode}_temperature")
            if max_tokens < 1 or max_tokens > 1000:
                raise ValueError(
                    f"LLM_{mode.upper()}_MAX_TOKENS must be between 1 and 1000, got {max_tokens}"
                )
            if temperature < 0 or temperature > 2:
                raise ValueError(
                    f"LLM_{mode.upper()}_TEMPERATURE must be between 0 and 2, got {temperature}"
                )

    @classmethod
    def from_env(cls, env_file: str | None = None) -> "Config":
        """Load configuration from environment variables.

        Args:
            env_file: Optional path to .env file

        Returns:
            Config instance

        Raises:
            ValueError: If configuration is invalid
        """
        if env_file:
            load_dotenv(env_file)
        else:
            for path in ["config/.env", ".env"]:
                if Path(path).exists():
                    load_dotenv(path)
                    break

        config = cls(
            # Generation backend
            ollama_url=os.getenv("OLLAMA_URL", DEFAULT_OLLAMA_URL).rstrip("/"),
            llm_model=os.getenv("LLM_MODEL", DEFAULT_LLM_MODEL),
            embedding_model=os.getenv("EMBEDDING_MODEL", DEFAULT_EMBEDDING_MODEL),
            ollama_timeout_seconds=int(os.getenv("OLLAMA_TIMEOUT", str(DEFAULT_OLLAMA_TIMEOUT))),
            # Vector backend
            chroma_url=os.getenv("CHROMA_URL", DEFAULT_CHROMA_URL).rstrip("/"),
            chroma_tenant=os.getenv("CHROMA_TENANT", DEFAULT_CHROMA_TENANT),
            chroma_database=os.getenv("CHROMA_DATABASE", DEFAULT_CHROMA_DATABASE),
            collection_name=os.getenv("CHROMA_COLLECTION", DEFAULT_COLLECTION_NAME),
            # Retrieval
            relevance_threshold=float(
                os.getenv("RAG_RELEVANCE_THRESHOLD", str(DEFAULT_RELEVANCE_THRESHOLD))
            ),
            rag_max_results=int(os.getenv("RAG_MAX_RESULTS", str(RAG_MAX_RESULTS))),
            rag_timeout_seconds=float(os.getenv("RAG_TIMEOUT_SECONDS", str(RAG_QUERY_TIMEOUT))),
            # Rate limiting
            redis_url=os.getenv("REDIS_URL", DEFAULT_REDIS_URL),
            rate_limit_per_minute=int(
                os.getenv("RATE_LIMIT_PER_MINUTE", str(RATE_LIMIT_PER_MINUTE))
            ),
            # Logging
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            # Bot Personality
            personality_file=os.getenv("PERSONALITY_FILE", "config/personality.yaml"),
            # Response modes
            fast_max_tokens=int(os.getenv("LLM_FAST_MAX_TOKENS", str(LLM_FAST_MAX_TOKENS))),
            fast_temperature=float(os.getenv("LLM_FAST_TEMPERATURE", str(LLM_FAST_TEMPERATURE))),
            standard_max_tokens=int(
                os.getenv("LLM_STANDARD_MAX_TOKENS", str(LLM_STANDARD_MAX_TOKENS))
            ),
            standard_temperature=float(
                os.getenv("LLM_STANDARD_TEMPERATURE", str(LLM_STANDARD_TEMPERATURE))
            ),
            deep_max_tokens=int(os.getenv("LLM_DEEP_MAX_TOKENS", str(LLM_DEEP_MAX_TOKENS))),
            deep_temperature=float(os.getenv("LLM_DEEP_TEMPERATURE", str(LLM_DEEP_TEMPERATURE))),
        )

        config.validate()
        return config


# Global config instance (loaded on first use)
_config: Config | None = None


def get_config() -> Config:
    """Get global config instance.

    Returns:
        Config instance
    """
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config


def set_config(config: Config | None) -> None:
    """Set global config instance (for testing).

    Args:
        config: Config instance, or None to force a reload from the environment
    """
    global _config
    _config = config
