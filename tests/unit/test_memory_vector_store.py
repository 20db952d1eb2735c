"""Unit tests for the numpy-backed InMemoryVectorStore."""

from __future__ import annotations

import pytest

from newsrag.providers.vector_store.memory_vector_store import InMemoryVectorStore
from newsrag.utils.errors import VectorIndexError
from tests.conftest import FakeEmbeddingProvider, make_chunk


@pytest.fixture()
def store() -> InMemoryVectorStore:
    return InMemoryVectorStore()


class TestQuery:
    @pytest.mark.asyncio
    async def test_embed_then_query_returns_same_chunk_first(
        self, store: InMemoryVectorStore, fake_embedder: FakeEmbeddingProvider
    ) -> None:
        chunks = [
            make_chunk("a-0", "quantum computing breakthrough announced"),
            make_chunk("b-0", "central bank raises interest rates again"),
            make_chunk("c-0", "football club wins the league title"),
        ]
        vectors = await fake_embedder.embed([c.text for c in chunks])
        await store.ensure_collection(fake_embedder.get_dimension())
        await store.upsert(chunks, vectors)

        results = await store.query(vectors[1], top_k=3)

        assert results[0].chunk.chunk_id == "b-0"
        assert results[0].similarity_score == pytest.approx(1.0, abs=1e-5)

    @pytest.mark.asyncio
    async def test_results_sorted_descending_and_bounded(self, store: InMemoryVectorStore) -> None:
        await store.upsert(
            [make_chunk("x"), make_chunk("y"), make_chunk("z")],
            [[1.0, 0.0], [0.6, 0.8], [0.0, 1.0]],
        )

        results = await store.query([1.0, 0.0], top_k=2)

        assert [r.chunk.chunk_id for r in results] == ["x", "y"]
        assert results[0].similarity_score >= results[1].similarity_score

    @pytest.mark.asyncio
    async def test_top_k_larger_than_index_is_not_padded(self, store: InMemoryVectorStore) -> None:
        await store.upsert([make_chunk("a"), make_chunk("b")], [[1.0, 0.0], [0.0, 1.0]])

        results = await store.query([1.0, 1.0], top_k=5)

        assert len(results) == 2

    @pytest.mark.asyncio
    async def test_query_empty_index_returns_nothing(self, store: InMemoryVectorStore) -> None:
        assert await store.query([0.1, 0.2], top_k=5) == []

    @pytest.mark.asyncio
    async def test_opposite_vectors_clamp_to_zero(self, store: InMemoryVectorStore) -> None:
        await store.upsert([make_chunk("a")], [[1.0, 0.0]])

        results = await store.query([-1.0, 0.0], top_k=1)

        assert results[0].similarity_score == 0.0

    @pytest.mark.asyncio
    async def test_negative_matches_keep_similarity_order(
        self, store: InMemoryVectorStore
    ) -> None:
        await store.upsert(
            [make_chunk("opposite"), make_chunk("oblique")],
            [[-1.0, 0.0], [-0.6, 0.8]],
        )

        results = await store.query([1.0, 0.0], top_k=2)

        assert [r.chunk.chunk_id for r in results] == ["oblique", "opposite"]
        assert all(r.similarity_score == 0.0 for r in results)


class TestWrites:
    @pytest.mark.asyncio
    async def test_upsert_same_id_replaces_entry(self, store: InMemoryVectorStore) -> None:
        await store.upsert([make_chunk("a", text="old")], [[1.0, 0.0]])
        await store.upsert([make_chunk("a", text="new")], [[1.0, 0.0]])

        assert await store.count() == 1
        results = await store.query([1.0, 0.0], top_k=1)
        assert results[0].chunk.text == "new"

    @pytest.mark.asyncio
    async def test_dimension_mismatch_rejected(self, store: InMemoryVectorStore) -> None:
        await store.ensure_collection(2)
        await store.upsert([make_chunk("a")], [[1.0, 0.0]])

        with pytest.raises(VectorIndexError):
            await store.upsert([make_chunk("b")], [[1.0, 0.0, 0.0]])
        with pytest.raises(VectorIndexError):
            await store.query([1.0, 0.0, 0.0])
        with pytest.raises(VectorIndexError):
            await store.ensure_collection(3)

    @pytest.mark.asyncio
    async def test_length_mismatch_rejected(self, store: InMemoryVectorStore) -> None:
        with pytest.raises(VectorIndexError):
            await store.upsert([make_chunk("a"), make_chunk("b")], [[1.0, 0.0]])

    @pytest.mark.asyncio
    async def test_delete_counts_existing_ids(self, store: InMemoryVectorStore) -> None:
        await store.upsert([make_chunk("a"), make_chunk("b")], [[1.0, 0.0], [0.0, 1.0]])

        assert await store.delete(["a", "missing"]) == 1
        assert await store.count() == 1

    @pytest.mark.asyncio
    async def test_clear_empties_and_resets_dimension(self, store: InMemoryVectorStore) -> None:
        await store.upsert([make_chunk("a")], [[1.0, 0.0]])
        await store.clear()

        assert await store.count() == 0
        await store.ensure_collection(3)
        await store.upsert([make_chunk("b")], [[1.0, 0.0, 0.0]])
        assert await store.count() == 1
