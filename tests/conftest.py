"""Shared pytest fixtures for all tests."""

from unittest.mock import AsyncMock, Mock

import httpx
import pytest

from src.lib.personality import Personality
from src.services.llm.generator import ResponseGenerator
from src.services.llm.ollama import OllamaClient
from src.services.rag.retriever import RAGService
from src.services.rag.vector_db import ChromaHTTPClient


class FakeRedis:
    """In-memory stand-in for redis.asyncio.Redis.

    Only implements what the rate limiter uses. Registered scripts run the
    counter logic without awaiting, so each call is atomic on the event loop
    just like a Lua script on the server. Time is controlled by `now`.
    """

    def __init__(self):
        self.now = 1_000.0
        self.values: dict[str, int] = {}
        self.expires_at: dict[str, float] = {}
        self.scripts: list[str] = []
        self.closed = False

    def _expire_stale(self, key: str) -> None:
        deadline = self.expires_at.get(key)
        if deadline is not None and deadline <= self.now:
            self.values.pop(key, None)
            self.expires_at.pop(key, None)

    def register_script(self, script: str):
        self.scripts.append(script)

        async def run(keys, args):
            key = keys[0]
            self._expire_stale(key)
            count = self.values.get(key, 0) + 1
            self.values[key] = count
            if count == 1:
                self.expires_at[key] = self.now + int(args[0])
            return [count, self.pttl(key)]

        return run

    def pttl(self, key: str) -> int:
        if key not in self.values:
            return -2
        if key not in self.expires_at:
            return -1
        return int((self.expires_at[key] - self.now) * 1000)

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def get(self, key: str):
        self._expire_stale(key)
        value = self.values.get(key)
        return None if value is None else str(value)

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self.values.pop(key, None) is not None:
                removed += 1
            self.expires_at.pop(key, None)
        return removed

    async def aclose(self) -> None:
        self.closed = True


def make_http_client(handler) -> httpx.AsyncClient:
    """AsyncClient whose requests are answered by handler(request)."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def http_client_factory():
    """Build AsyncClients backed by a mock transport."""
    return make_http_client


@pytest.fixture
def personality():
    """Personality with distinct prompts per mode."""
    return Personality(
        name="The Archivist",
        role="Keeper of the archives",
        tone="Calm",
        knowledge="Living Lands",
        system_prompt="FULL SYSTEM PROMPT",
        fast_mode_prompt="FAST PROMPT",
        standard_mode_prompt="STANDARD PROMPT",
        deep_mode_prompt="DEEP PROMPT",
    )


@pytest.fixture
def personality_file(tmp_path):
    path = tmp_path / "personality.yaml"
    path.write_text(
        "name: Tester\n"
        "role: Test persona\n"
        "system_prompt: You are a tester.\n"
        "fast_mode_prompt: Be brief.\n"
        "standard_mode_prompt: Be concise.\n"
        "deep_mode_prompt: Use the docs.\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def mock_ollama_client():
    """OllamaClient mock with a fixed embedding."""
    client = Mock(spec=OllamaClient)
    client.embed = AsyncMock(return_value=[0.1, 0.2, 0.3])
    client.generate = AsyncMock()
    return client


@pytest.fixture
def mock_vector_db():
    """ChromaHTTPClient mock where the collection already exists."""
    db = Mock(spec=ChromaHTTPClient)
    db.get_collection = AsyncMock(return_value="col-1")
    db.create_collection = AsyncMock(return_value="col-new")
    db.query = AsyncMock()
    db.add = AsyncMock()
    db.delete = AsyncMock()
    db.count = AsyncMock(return_value=0)
    return db


@pytest.fixture
def rag_service(mock_vector_db, mock_ollama_client):
    return RAGService(
        vector_db=mock_vector_db,
        ollama_client=mock_ollama_client,
        embed_model="nomic-embed-text",
        collection_name="test_docs",
    )


@pytest.fixture
def mock_rag_service():
    """RAGService mock returning no context."""
    service = Mock(spec=RAGService)
    service.query = AsyncMock(return_value=[])
    service.add_documents = AsyncMock(side_effect=lambda docs: len(docs))
    service.count = AsyncMock(return_value=0)
    return service


@pytest.fixture
def mock_generator():
    generator = Mock(spec=ResponseGenerator)
    generator.generate = AsyncMock(return_value="Greetings, traveler.")
    return generator
