"""Abstract base class for vector-store service providers.

Defines the contract for storing, querying, and managing embedded document
chunks.  Implementations may wrap ChromaDB or keep vectors in memory.  The
RAG layer never sees backend-specific distances: every provider reports
cosine similarity clamped to ``[0, 1]``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from newsrag.models.rag import DocumentChunk, RetrievedChunk


# Concrete implementations (newsrag/providers/vector_store/):
#   ChromaDBProvider       -- persistent local directory or remote HTTP server
#   InMemoryVectorStore    -- numpy cosine search, for tests and local runs
class IVectorStoreProvider(ABC):
    """Contract for vector-store services used by the RAG pipeline.

    All query and mutation methods are async to support network-backed stores
    without blocking the event loop.  Each stored entry is keyed by the
    chunk's ``chunk_id`` and carries the payload from
    :meth:`DocumentChunk.payload`.
    """

    @abstractmethod
    async def ensure_collection(self, dimension: int) -> None:
        """Create the collection if missing and pin its vector dimension.

        Raises
        ------
        newsrag.utils.errors.VectorIndexError
            If the existing collection holds vectors of a different dimension.
        """

    @abstractmethod
    async def upsert(
        self,
        chunks: list[DocumentChunk],
        embeddings: list[list[float]],
    ) -> int:
        """Insert or replace pre-embedded chunks.

        Returns once the store has acknowledged the write.

        Parameters
        ----------
        chunks:
            The document chunks to store.
        embeddings:
            Embedding vectors corresponding positionally to *chunks*.

        Returns
        -------
        int
            The number of chunks written.

        Raises
        ------
        newsrag.utils.errors.VectorIndexError
            On a length mismatch, a dimension mismatch, or a backend failure.
        """

    @abstractmethod
    async def query(self, vector: list[float], top_k: int = 5) -> list[RetrievedChunk]:
        """Return the *top_k* most similar chunks, ranked by descending score.

        Returns fewer than *top_k* results when the collection is smaller;
        results are never padded.
        """

    @abstractmethod
    async def delete(self, ids: list[str]) -> int:
        """Delete the entries with the given chunk ids; return how many existed."""

    @abstractmethod
    async def clear(self) -> None:
        """Remove every entry from the collection."""

    @abstractmethod
    async def count(self) -> int:
        """Return the number of stored entries."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this vector-store provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the store is accessible."""
