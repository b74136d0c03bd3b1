"""Unit tests for the Chroma REST client."""

import json

import httpx
import pytest

from src.services.rag.vector_db import (
    ChromaHTTPClient,
    CollectionExistsError,
    CollectionNotFoundError,
    VectorDBError,
    VectorQueryResult,
)

BASE_URL = "http://chroma.test"
COLLECTIONS = f"{BASE_URL}/api/v2/tenants/default_tenant/databases/default_database/collections"


def make_client(http_client_factory, handler, **kwargs):
    return ChromaHTTPClient(BASE_URL, http_client=http_client_factory(handler), **kwargs)


class TestCollections:
    def test_collections_url_uses_tenant_and_database(self):
        client = ChromaHTTPClient(BASE_URL + "/", tenant="t1", database="d1")

        assert client.collections_url == f"{BASE_URL}/api/v2/tenants/t1/databases/d1/collections"

    @pytest.mark.asyncio
    async def test_get_existing_collection(self, http_client_factory):
        def handler(request):
            assert request.method == "GET"
            assert str(request.url) == f"{COLLECTIONS}/docs"
            return httpx.Response(200, json={"id": "abc", "name": "docs"})

        client = make_client(http_client_factory, handler)

        assert await client.get_collection("docs") == "abc"

    @pytest.mark.asyncio
    async def test_get_missing_collection_returns_none(self, http_client_factory):
        client = make_client(http_client_factory, lambda r: httpx.Response(404, json={"error": "NotFound"}))

        assert await client.get_collection("docs") is None

    @pytest.mark.asyncio
    async def test_get_collection_server_error(self, http_client_factory):
        client = make_client(http_client_factory, lambda r: httpx.Response(500, text="boom"))

        with pytest.raises(VectorDBError, match="500"):
            await client.get_collection("docs")

    @pytest.mark.asyncio
    async def test_get_collection_missing_id(self, http_client_factory):
        client = make_client(http_client_factory, lambda r: httpx.Response(200, json={"name": "docs"}))

        with pytest.raises(VectorDBError, match="id"):
            await client.get_collection("docs")

    @pytest.mark.asyncio
    async def test_create_collection_uses_cosine(self, http_client_factory):
        bodies = []

        def handler(request):
            bodies.append(json.loads(request.content))
            return httpx.Response(201, json={"id": "new-id"})

        client = make_client(http_client_factory, handler)

        assert await client.create_collection("docs") == "new-id"
        assert bodies[0]["name"] == "docs"
        assert bodies[0]["metadata"]["hnsw:space"] == "cosine"
        assert bodies[0]["metadata"]["distance_metric"] == "cosine"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(409, json={"error": "UniqueConstraintError"}),
            httpx.Response(500, text="Collection docs already exists"),
        ],
    )
    async def test_create_collection_conflict(self, http_client_factory, response):
        client = make_client(http_client_factory, lambda r: response)

        with pytest.raises(CollectionExistsError):
            await client.create_collection("docs")

    @pytest.mark.asyncio
    async def test_transport_error_wrapped(self, http_client_factory):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        client = make_client(http_client_factory, handler)

        with pytest.raises(VectorDBError, match="refused"):
            await client.get_collection("docs")


class TestQuery:
    @pytest.mark.asyncio
    async def test_query_payload_and_result(self, http_client_factory):
        bodies = []

        def handler(request):
            assert str(request.url) == f"{COLLECTIONS}/col-1/query"
            bodies.append(json.loads(request.content))
            return httpx.Response(
                200,
                json={
                    "ids": [["a", "b"]],
                    "documents": [["doc a", "doc b"]],
                    "distances": [[0.2, 1.4]],
                    "metadatas": [[{"source": "a.md"}, None]],
                },
            )

        client = make_client(http_client_factory, handler)
        result = await client.query("col-1", [0.1, 0.2], 5)

        assert bodies[0]["query_embeddings"] == [[0.1, 0.2]]
        assert bodies[0]["n_results"] == 5
        assert {"documents", "distances"} <= set(bodies[0]["include"])
        assert result.ids == ["a", "b"]
        assert result.documents == ["doc a", "doc b"]
        assert result.distances == [0.2, 1.4]
        assert result.metadatas == [{"source": "a.md"}, None]

    @pytest.mark.asyncio
    async def test_query_missing_collection(self, http_client_factory):
        client = make_client(http_client_factory, lambda r: httpx.Response(404, text="not found"))

        with pytest.raises(CollectionNotFoundError):
            await client.query("gone", [0.1], 5)

    def test_empty_result_parsing(self):
        result = VectorQueryResult.from_json({"ids": [], "documents": None})

        assert result.ids == []
        assert result.documents == []
        assert result.distances == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            [1, 2, 3],
            {"documents": "abc"},
            {"documents": [[1, 2]]},
            {"documents": [["a"]], "distances": [["far"]]},
        ],
    )
    async def test_query_malformed_body(self, http_client_factory, body):
        client = make_client(http_client_factory, lambda r: httpx.Response(200, json=body))

        with pytest.raises(VectorDBError, match="unexpected chromadb query response"):
            await client.query("col-1", [0.1], 5)


class TestWrites:
    @pytest.mark.asyncio
    async def test_add(self, http_client_factory):
        bodies = []

        def handler(request):
            assert str(request.url) == f"{COLLECTIONS}/col-1/add"
            bodies.append(json.loads(request.content))
            return httpx.Response(201, json=True)

        client = make_client(http_client_factory, handler)
        await client.add("col-1", ["a"], [[0.1]], ["doc"], [{"source": "a.md"}])

        assert bodies[0] == {
            "ids": ["a"],
            "embeddings": [[0.1]],
            "documents": ["doc"],
            "metadatas": [{"source": "a.md"}],
        }

    @pytest.mark.asyncio
    async def test_add_length_mismatch(self, http_client_factory):
        client = make_client(http_client_factory, lambda r: httpx.Response(201))

        with pytest.raises(ValueError):
            await client.add("col-1", ["a", "b"], [[0.1]], ["doc"], [{}])

    @pytest.mark.asyncio
    async def test_add_error(self, http_client_factory):
        client = make_client(http_client_factory, lambda r: httpx.Response(422, text="bad dims"))

        with pytest.raises(VectorDBError, match="bad dims"):
            await client.add("col-1", ["a"], [[0.1]], ["doc"], [{}])

    @pytest.mark.asyncio
    async def test_delete(self, http_client_factory):
        bodies = []

        def handler(request):
            assert str(request.url) == f"{COLLECTIONS}/col-1/delete"
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json=None)

        client = make_client(http_client_factory, handler)
        await client.delete("col-1", ["a"])

        assert bodies == [{"ids": ["a"]}]

    @pytest.mark.asyncio
    async def test_count(self, http_client_factory):
        client = make_client(http_client_factory, lambda r: httpx.Response(200, json=42))

        assert await client.count("col-1") == 42

    @pytest.mark.asyncio
    async def test_count_non_integer(self, http_client_factory):
        client = make_client(http_client_factory, lambda r: httpx.Response(200, json={"n": 1}))

        with pytest.raises(VectorDBError):
            await client.count("col-1")
