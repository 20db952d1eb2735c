"""Unit tests for the ChromaDB vector store provider.

The ChromaDB client is patched with a MagicMock so the tests exercise the
adapter's translation logic (metadata mapping, distance-to-similarity
conversion, dimension checks, error wrapping) without a real database.
"""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from newsrag.providers.vector_store.chromadb_provider import ChromaDBProvider
from newsrag.utils.errors import VectorIndexError
from tests.conftest import make_chunk

_CLIENT_PATH = "newsrag.providers.vector_store.chromadb_provider.chromadb.PersistentClient"
_HTTP_CLIENT_PATH = "newsrag.providers.vector_store.chromadb_provider.chromadb.HttpClient"


def _collection(count: int = 0, stored: list[list[float]] | None = None) -> MagicMock:
    collection = MagicMock()
    collection.count.return_value = count
    collection.peek.return_value = {"embeddings": stored or []}
    return collection


def _provider(collection: MagicMock, tmp_path) -> tuple[ChromaDBProvider, MagicMock]:
    client = MagicMock()
    client.get_or_create_collection.return_value = collection
    with patch(_CLIENT_PATH, return_value=client):
        provider = ChromaDBProvider(
            persist_directory=str(tmp_path / "chroma"),
            collection_name="test_collection",
        )
    return provider, client


class TestConstruction:
    def test_uses_cosine_collection(self, tmp_path) -> None:
        _, client = _provider(_collection(), tmp_path)

        kwargs = client.get_or_create_collection.call_args.kwargs
        assert kwargs["name"] == "test_collection"
        assert kwargs["metadata"] == {"hnsw:space": "cosine"}

    def test_server_url_selects_http_client(self) -> None:
        client = MagicMock()
        client.get_or_create_collection.return_value = _collection()
        with patch(_HTTP_CLIENT_PATH, return_value=client) as http_client:
            ChromaDBProvider(server_url="https://chroma.internal:9000")

        kwargs = http_client.call_args.kwargs
        assert kwargs["host"] == "chroma.internal"
        assert kwargs["port"] == 9000
        assert kwargs["ssl"] is True

    def test_provider_name(self, tmp_path) -> None:
        provider, _ = _provider(_collection(), tmp_path)
        assert provider.get_provider_name() == "chromadb"


class TestEnsureCollection:
    @pytest.mark.asyncio
    async def test_empty_collection_accepts_any_dimension(self, tmp_path) -> None:
        provider, _ = _provider(_collection(), tmp_path)
        await provider.ensure_collection(384)

    @pytest.mark.asyncio
    async def test_dimension_mismatch_raises(self, tmp_path) -> None:
        provider, _ = _provider(_collection(count=1, stored=[[0.1] * 8]), tmp_path)

        with pytest.raises(VectorIndexError, match="dimension mismatch"):
            await provider.ensure_collection(4)


class TestUpsert:
    @pytest.mark.asyncio
    async def test_upsert_maps_text_and_metadata(self, tmp_path) -> None:
        collection = _collection()
        provider, _ = _provider(collection, tmp_path)
        chunk = make_chunk("k-0", text="body text", chunk_index=0)

        stored = await provider.upsert([chunk], [[0.1, 0.2]])

        assert stored == 1
        kwargs = collection.upsert.call_args.kwargs
        assert kwargs["ids"] == ["k-0"]
        assert kwargs["documents"] == ["body text"]
        assert kwargs["metadatas"] == [
            {
                "title": "Quantum leap",
                "url": "https://example.com/quantum",
                "timestamp": "2024-05-01T00:00:00+00:00",
                "source": "example.com",
                "chunk_index": 0,
            }
        ]

    @pytest.mark.asyncio
    async def test_upsert_rejects_wrong_dimension(self, tmp_path) -> None:
        provider, _ = _provider(_collection(), tmp_path)
        await provider.ensure_collection(2)

        with pytest.raises(VectorIndexError):
            await provider.upsert([make_chunk()], [[0.1, 0.2, 0.3]])

    @pytest.mark.asyncio
    async def test_backend_failure_is_wrapped(self, tmp_path) -> None:
        collection = _collection()
        collection.upsert.side_effect = RuntimeError("disk full")
        provider, _ = _provider(collection, tmp_path)

        with pytest.raises(VectorIndexError, match="disk full"):
            await provider.upsert([make_chunk()], [[0.1, 0.2]])


class TestQuery:
    @pytest.mark.asyncio
    async def test_query_converts_distance_and_sorts(self, tmp_path) -> None:
        collection = _collection(count=2, stored=[[0.1, 0.2]])
        collection.query.return_value = {
            "ids": [["far", "near"]],
            "documents": [["far text", "near text"]],
            "metadatas": [[{"title": "Far", "url": "u1"}, {"title": "Near", "url": "u2"}]],
            "distances": [[0.7, 0.1]],
        }
        provider, _ = _provider(collection, tmp_path)

        results = await provider.query([0.1, 0.2], top_k=5)

        assert [r.chunk.chunk_id for r in results] == ["near", "far"]
        assert results[0].similarity_score == pytest.approx(0.9)
        assert results[1].similarity_score == pytest.approx(0.3)
        assert results[0].chunk.text == "near text"
        assert collection.query.call_args.kwargs["n_results"] == 2

    @pytest.mark.asyncio
    async def test_query_empty_collection_skips_backend(self, tmp_path) -> None:
        collection = _collection(count=0)
        provider, _ = _provider(collection, tmp_path)

        assert await provider.query([0.1, 0.2]) == []
        collection.query.assert_not_called()

    @pytest.mark.asyncio
    async def test_distance_above_one_clamps_to_zero(self, tmp_path) -> None:
        collection = _collection(count=1, stored=[[0.1, 0.2]])
        collection.query.return_value = {
            "ids": [["opposite"]],
            "documents": [["text"]],
            "metadatas": [[{}]],
            "distances": [[1.8]],
        }
        provider, _ = _provider(collection, tmp_path)

        results = await provider.query([0.1, 0.2])

        assert results[0].similarity_score == 0.0

    @pytest.mark.asyncio
    async def test_clamped_matches_are_ranked_by_distance(self, tmp_path) -> None:
        collection = _collection(count=2, stored=[[0.1, 0.2]])
        collection.query.return_value = {
            "ids": [["worse", "less-bad"]],
            "documents": [["a", "b"]],
            "metadatas": [[{}, {}]],
            "distances": [[1.8, 1.2]],
        }
        provider, _ = _provider(collection, tmp_path)

        results = await provider.query([0.1, 0.2])

        assert [r.chunk.chunk_id for r in results] == ["less-bad", "worse"]


class TestMaintenance:
    @pytest.mark.asyncio
    async def test_delete_returns_existing_count(self, tmp_path) -> None:
        collection = _collection()
        collection.get.return_value = {"ids": ["a"]}
        provider, _ = _provider(collection, tmp_path)

        assert await provider.delete(["a", "missing"]) == 1
        collection.delete.assert_called_once_with(ids=["a"])

    @pytest.mark.asyncio
    async def test_clear_recreates_collection(self, tmp_path) -> None:
        provider, client = _provider(_collection(), tmp_path)

        await provider.clear()

        client.delete_collection.assert_called_once_with(name="test_collection")
        assert client.get_or_create_collection.call_count == 2

    def test_is_available_false_when_backend_errors(self, tmp_path) -> None:
        collection = _collection()
        provider, _ = _provider(collection, tmp_path)
        collection.count.side_effect = RuntimeError("gone")

        assert provider.is_available() is False
