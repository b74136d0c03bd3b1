"""Unit tests for environment-driven configuration."""

import pytest

from src.lib.config import Config, get_config, set_config
from src.services.llm.base import LLMConfig

CONFIG_ENV_VARS = [
    "OLLAMA_URL", "LLM_MODEL", "EMBEDDING_MODEL", "OLLAMA_TIMEOUT", "CHROMA_URL",
    "CHROMA_TENANT", "CHROMA_DATABASE", "CHROMA_COLLECTION", "RAG_RELEVANCE_THRESHOLD",
    "RAG_MAX_RESULTS", "RAG_TIMEOUT_SECONDS", "REDIS_URL", "RATE_LIMIT_PER_MINUTE",
    "LOG_LEVEL", "PERSONALITY_FILE", "LLM_FAST_MAX_TOKENS", "LLM_FAST_TEMPERATURE",
    "LLM_STANDARD_MAX_TOKENS", "LLM_STANDARD_TEMPERATURE", "LLM_DEEP_MAX_TOKENS",
    "LLM_DEEP_TEMPERATURE",
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for name in CONFIG_ENV_VARS:
        # setenv first so values loaded from .env files are undone at teardown
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    env_file = tmp_path / ".env"
    env_file.write_text("", encoding="utf-8")
    yield str(env_file)
    set_config(None)


class TestFromEnv:
    def test_defaults(self, clean_env):
        config = Config.from_env(clean_env)

        assert config.ollama_url == "http://localhost:11434"
        assert config.llm_model == "mistral:7b-instruct"
        assert config.embedding_model == "nomic-embed-text"
        assert config.collection_name == "livinglands_docs"
        assert config.relevance_threshold == 1.0
        assert config.rag_max_results == 5
        assert config.rate_limit_per_minute == 5
        assert config.fast_max_tokens == 60
        assert config.deep_temperature == 0.7

    def test_overrides(self, clean_env, monkeypatch):
        monkeypatch.setenv("OLLAMA_URL", "http://gpu-box:11434/")
        monkeypatch.setenv("RAG_RELEVANCE_THRESHOLD", "0.6")
        monkeypatch.setenv("RATE_LIMIT_PER_MINUTE", "10")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        config = Config.from_env(clean_env)

        assert config.ollama_url == "http://gpu-box:11434"
        assert config.relevance_threshold == 0.6
        assert config.rate_limit_per_minute == 10
        assert config.log_level == "DEBUG"

    def test_env_file_loaded(self, clean_env, tmp_path):
        env_file = tmp_path / "custom.env"
        env_file.write_text("CHROMA_COLLECTION=from_file\n", encoding="utf-8")

        config = Config.from_env(str(env_file))

        assert config.collection_name == "from_file"

    @pytest.mark.parametrize(
        "name,value",
        [
            ("RAG_RELEVANCE_THRESHOLD", "2.5"),
            ("RATE_LIMIT_PER_MINUTE", "0"),
            ("OLLAMA_TIMEOUT", "601"),
            ("LLM_FAST_MAX_TOKENS", "0"),
            ("LLM_DEEP_TEMPERATURE", "3"),
            ("LOG_LEVEL", "LOUD"),
        ],
    )
    def test_invalid_values_name_the_variable(self, clean_env, monkeypatch, name, value):
        monkeypatch.setenv(name, value)

        with pytest.raises(ValueError, match=name):
            Config.from_env(clean_env)


def test_set_config_overrides_global(clean_env):
    config = Config(llm_model="custom")

    set_config(config)

    assert get_config() is config


def test_llm_config_from_app_config():
    config = Config(fast_max_tokens=42, standard_temperature=0.2, deep_max_tokens=200)

    llm_config = LLMConfig.from_app_config(config)

    assert llm_config.fast.max_tokens == 42
    assert llm_config.standard.temperature == 0.2
    assert llm_config.deep.max_tokens == 200
    assert llm_config.deep.top_k == 40
