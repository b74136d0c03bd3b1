"""Vector database client for the ChromaDB v2 REST API.

Thin async wrapper: one method per endpoint, JSON in and out. Collection
resolution and relevance filtering live in the retriever.
"""

from dataclasses import dataclass, field
from typing import Any

import httpx

from src.lib.constants import (
    BACKEND_ERROR_BODY_LIMIT,
    CHROMA_REQUEST_TIMEOUT,
    DEFAULT_CHROMA_DATABASE,
    DEFAULT_CHROMA_TENANT,
)
from src.lib.logging import get_logger
from src.lib.text_utils import truncate_text

logger = get_logger(__name__)

# "distance_metric" is informational; "hnsw:space" is what Chroma reads
COSINE_COLLECTION_METADATA = {"hnsw:space": "cosine", "distance_metric": "cosine"}


class VectorDBError(Exception):
    """Transport failure or unexpected status from the vector backend."""

    pass


class CollectionNotFoundError(VectorDBError):
    """The collection does not exist."""

    pass


class CollectionExistsError(VectorDBError):
    """Create lost a race: the collection already exists."""

    pass


@dataclass
class VectorQueryResult:
    """Nearest neighbours for a single query embedding, best first."""

    ids: list[str] = field(default_factory=list)
    documents: list[str | None] = field(default_factory=list)
    distances: list[float] = field(default_factory=list)
    metadatas: list[dict[str, Any] | None] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: Any) -> "VectorQueryResult":
        """Parse a query response.

        Raises:
            ValueError: If the body does not have the nested list shape
        """
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object, got {type(data).__name__}")

        # Chroma nests one list per query embedding; we always send one
        def first(key: str) -> list:
            rows = data.get(key) or []
            if not isinstance(rows, list):
                raise ValueError(f"{key} must be a list of lists")
            if not rows or rows[0] is None:
                return []
            if not isinstance(rows[0], list):
                raise ValueError(f"{key} must be a list of lists")
            return list(rows[0])

        documents = first("documents")
        if any(doc is not None and not isinstance(doc, str) for doc in documents):
            raise ValueError("documents must be strings")

        try:
            distances = [float(distance) for distance in first("distances")]
        except (TypeError, ValueError) as e:
            raise ValueError(f"distances must be numbers: {e}") from e

        return cls(
            ids=first("ids"),
            documents=documents,
            distances=distances,
            metadatas=[m if isinstance(m, dict) else None for m in first("metadatas")],
        )


class ChromaHTTPClient:
    """Async client for one Chroma tenant/database."""

    def __init__(
        self,
        base_url: str,
        tenant: str = DEFAULT_CHROMA_TENANT,
        database: str = DEFAULT_CHROMA_DATABASE,
        timeout: float = CHROMA_REQUEST_TIMEOUT,
        http_client: httpx.AsyncClient | None = None,
    ):
        """Initialize client.

        Args:
            base_url: Chroma server URL (e.g., http://localhost:8000)
            tenant: Chroma tenant
            database: Chroma database
            timeout: Request timeout in seconds
            http_client: Optional pre-built client (tests inject a mock transport)
        """
        self.base_url = base_url.rstrip("/")
        self.collections_url = (
            f"{self.base_url}/api/v2/tenants/{tenant}/databases/{database}/collections"
        )
        self.http = http_client or httpx.AsyncClient(timeout=timeout)

    async def _request(
        self, method: str, url: str, operation: str, payload: dict | None = None
    ) -> httpx.Response:
        try:
            return await self.http.request(method, url, json=payload)
        except httpx.HTTPError as e:
            raise VectorDBError(f"chromadb {operation} request failed: {e}") from e

    @staticmethod
    def _error(response: httpx.Response, operation: str) -> VectorDBError:
        body = truncate_text(response.text, BACKEND_ERROR_BODY_LIMIT, "... (truncated)")
        return VectorDBError(f"chromadb {operation} returned {response.status_code}: {body}")

    @staticmethod
    def _json(response: httpx.Response, operation: str) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise VectorDBError(f"failed to decode chromadb {operation} response: {e}") from e

    @staticmethod
    def _collection_id(data: Any, operation: str) -> str:
        collection_id = data.get("id") if isinstance(data, dict) else None
        if not isinstance(collection_id, str) or not collection_id:
            raise VectorDBError(f"chromadb {operation} response missing or invalid id field")
        return collection_id

    async def get_collection(self, name: str) -> str | None:
        """Look up a collection by name.

        Returns:
            Collection id, or None if the collection does not exist
        """
        response = await self._request("GET", f"{self.collections_url}/{name}", "get collection")
        if response.status_code == 404:
            return None
        if response.status_code != 200:
            raise self._error(response, "get collection")
        return self._collection_id(self._json(response, "get collection"), "get collection")

    async def create_collection(self, name: str) -> str:
        """Create a cosine-distance collection.

        Returns:
            New collection id

        Raises:
            CollectionExistsError: If another caller created it first
        """
        response = await self._request(
            "POST",
            self.collections_url,
            "create collection",
            {"name": name, "metadata": COSINE_COLLECTION_METADATA},
        )
        if response.status_code not in (200, 201):
            if response.status_code == 409 or "already exists" in response.text:
                raise CollectionExistsError(f"collection {name} already exists")
            raise self._error(response, "create collection")
        return self._collection_id(self._json(response, "create collection"), "create collection")

    async def query(
        self, collection_id: str, embedding: list[float], n_results: int
    ) -> VectorQueryResult:
        """Nearest-neighbour search for one embedding.

        Raises:
            CollectionNotFoundError: If the collection is gone
            VectorDBError: If the response is malformed
        """
        response = await self._request(
            "POST",
            f"{self.collections_url}/{collection_id}/query",
            "query",
            {
                "query_embeddings": [embedding],
                "n_results": n_results,
                "include": ["documents", "distances", "metadatas"],
            },
        )
        if response.status_code == 404:
            raise CollectionNotFoundError(f"collection {collection_id} not found")
        if response.status_code != 200:
            raise self._error(response, "query")
        try:
            return VectorQueryResult.from_json(self._json(response, "query"))
        except ValueError as e:
            raise VectorDBError(f"unexpected chromadb query response: {e}") from e

    async def add(
        self,
        collection_id: str,
        ids: list[str],
        embeddings: list[list[float]],
        documents: list[str],
        metadatas: list[dict[str, Any]],
    ) -> None:
        """Add embeddings to a collection.

        Raises:
            ValueError: If input lists have different lengths
        """
        if not (len(ids) == len(embeddings) == len(documents) == len(metadatas)):
            raise ValueError("All input lists must have the same length")

        response = await self._request(
            "POST",
            f"{self.collections_url}/{collection_id}/add",
            "add",
            {"ids": ids, "embeddings": embeddings, "documents": documents, "metadatas": metadatas},
        )
        if response.status_code not in (200, 201):
            raise self._error(response, "add")

    async def delete(self, collection_id: str, ids: list[str]) -> None:
        response = await self._request(
            "POST", f"{self.collections_url}/{collection_id}/delete", "delete", {"ids": ids}
        )
        if response.status_code != 200:
            raise self._error(response, "delete")

    async def count(self, collection_id: str) -> int:
        response = await self._request(
            "GET", f"{self.collections_url}/{collection_id}/count", "count"
        )
        if response.status_code != 200:
            raise self._error(response, "count")

        data = self._json(response, "count")
        if isinstance(data, bool) or not isinstance(data, int):
            raise VectorDBError(f"chromadb count returned a non-integer: {data!r}")
        return data

    async def aclose(self) -> None:
        await self.http.aclose()
