"""Async client for the Ollama generation backend.

Covers the two endpoints the pipeline needs: non-streaming text generation
and single-text embeddings.
"""

from dataclasses import asdict, dataclass, field

import httpx

from src.lib.constants import BACKEND_ERROR_BODY_LIMIT, DEFAULT_OLLAMA_TIMEOUT
from src.lib.logging import get_logger
from src.lib.text_utils import truncate_text
from src.services.llm.base import BackendUnavailableError

logger = get_logger(__name__)


@dataclass
class GenerationOptions:
    """Sampling options sent under "options"."""

    temperature: float
    num_predict: int
    top_k: int
    top_p: float
    repeat_penalty: float
    num_ctx: int


@dataclass
class GenerateRequest:
    model: str
    prompt: str
    options: GenerationOptions
    system: str = ""

    def to_payload(self) -> dict:
        payload = {
            "model": self.model,
            "prompt": self.prompt,
            "stream": False,
            "options": asdict(self.options),
        }
        if self.system:
            payload["system"] = self.system
        return payload


@dataclass
class GenerateResponse:
    """Generation result; durations are in nanoseconds."""

    response: str
    done: bool = True
    total_duration: int = 0
    prompt_eval_count: int = 0
    prompt_eval_duration: int = 0
    eval_count: int = 0
    eval_duration: int = 0
    raw: dict = field(default_factory=dict, repr=False)

    @classmethod
    def from_json(cls, data: dict) -> "GenerateResponse":
        # Counters the backend omits or garbles count as 0
        def counter(key: str) -> int:
            value = data.get(key)
            return value if isinstance(value, int) and not isinstance(value, bool) else 0

        return cls(
            response=data.get("response") or "",
            done=data.get("done", True),
            total_duration=counter("total_duration"),
            prompt_eval_count=counter("prompt_eval_count"),
            prompt_eval_duration=counter("prompt_eval_duration"),
            eval_count=counter("eval_count"),
            eval_duration=counter("eval_duration"),
            raw=data,
        )


class OllamaClient:
    """HTTP client for Ollama's /api/generate and /api/embeddings."""

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_OLLAMA_TIMEOUT,
        http_client: httpx.AsyncClient | None = None,
    ):
        """Initialize client.

        Args:
            base_url: Ollama server URL (e.g., http://localhost:11434)
            timeout: Request timeout in seconds, longer than any caller deadline
            http_client: Optional pre-built client (tests inject a mock transport)
        """
        self.base_url = base_url.rstrip("/")
        self.http = http_client or httpx.AsyncClient(timeout=timeout)

    async def _post(self, endpoint: str, payload: dict, operation: str) -> dict:
        try:
            response = await self.http.post(f"{self.base_url}{endpoint}", json=payload)
        except httpx.HTTPError as e:
            raise BackendUnavailableError(f"ollama {operation} request failed: {e}") from e

        if response.status_code != 200:
            body = truncate_text(response.text, BACKEND_ERROR_BODY_LIMIT, "... (truncated)")
            raise BackendUnavailableError(
                f"ollama {operation} request failed with status {response.status_code}: {body}"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise BackendUnavailableError(f"ollama {operation} returned invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise BackendUnavailableError(
                f"ollama {operation} returned {type(data).__name__}, expected a JSON object"
            )
        return data

    async def generate(self, request: GenerateRequest) -> GenerateResponse:
        """Generate a completion (stream is always off).

        Raises:
            BackendUnavailableError: On transport failure, non-200 status or malformed body
        """
        data = await self._post("/api/generate", request.to_payload(), "generate")
        if not isinstance(data.get("response", ""), (str, type(None))):
            raise BackendUnavailableError("ollama generate returned a non-string response")
        return GenerateResponse.from_json(data)

    async def embed(self, model: str, text: str) -> list[float]:
        """Embed a single text.

        Returns:
            Embedding vector (empty if the backend returned none)

        Raises:
            BackendUnavailableError: On transport failure, non-200 status or malformed body
        """
        data = await self._post("/api/embeddings", {"model": model, "prompt": text}, "embed")
        embedding = data.get("embedding") or []
        if not isinstance(embedding, list):
            raise BackendUnavailableError("ollama embed returned a non-list embedding")
        try:
            vector = [float(value) for value in embedding]
        except (TypeError, ValueError) as e:
            raise BackendUnavailableError(f"ollama embed returned non-numeric values: {e}") from e

        logger.debug("text_embedded", model=model, text_length=len(text), dimensions=len(embedding))
        return vector

    async def aclose(self) -> None:
        await self.http.aclose()
