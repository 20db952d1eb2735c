"""ChromaDB vector store provider adapter.

Wraps ``chromadb.PersistentClient`` (or ``chromadb.HttpClient`` when a
server URL is configured) to implement :class:`IVectorStoreProvider`.
The collection uses cosine distance; results are reported as cosine
similarity ``1 - distance`` clamped to ``[0, 1]``.
"""

from __future__ import annotations

import os
from typing import Any
from urllib.parse import urlparse

# Disable ChromaDB's anonymous telemetry before importing chromadb.  The
# env var is read by some ChromaDB versions at import time; the client
# Settings below cover the rest.
os.environ["ANONYMIZED_TELEMETRY"] = "False"

import chromadb
import structlog

from newsrag.interfaces.vector_store_provider import IVectorStoreProvider
from newsrag.models.rag import DocumentChunk, RetrievedChunk
from newsrag.utils.errors import VectorIndexError

logger = structlog.get_logger(logger_name=__name__)


class _NoopEmbeddingFunction(chromadb.EmbeddingFunction[list[str]]):
    """No-op embedding function that prevents ChromaDB from loading a model.

    newsrag always passes pre-computed embeddings, so ChromaDB's built-in
    embedding is never invoked.  Without this, ChromaDB downloads its
    default ONNX model on collection creation.
    """

    def __call__(self, input: list[str]) -> list[list[float]]:
        raise NotImplementedError(
            "newsrag uses pre-computed embeddings; "
            "ChromaDB's built-in embedding should never be called."
        )

    def name(self) -> str:
        """Return function name (required by ChromaDB's EmbeddingFunction protocol)."""
        return "noop_precomputed"


class ChromaDBProvider(IVectorStoreProvider):
    """Vector store provider backed by ChromaDB.

    Parameters
    ----------
    persist_directory:
        Local directory for the embedded persistent client.
    collection_name:
        Name of the collection holding every chunk.
    server_url:
        When non-empty (e.g. ``http://chroma:8000``), connect to a remote
        ChromaDB server instead of a local directory.
    """

    def __init__(
        self,
        persist_directory: str = "./data/chromadb",
        collection_name: str = "rag_documents",
        server_url: str = "",
    ) -> None:
        self._collection_name = collection_name
        client_settings = chromadb.config.Settings(anonymized_telemetry=False)
        if server_url:
            parsed = urlparse(server_url)
            self._client = chromadb.HttpClient(
                host=parsed.hostname or "localhost",
                port=parsed.port or 8000,
                ssl=parsed.scheme == "https",
                settings=client_settings,
            )
        else:
            self._client = chromadb.PersistentClient(
                path=persist_directory,
                settings=client_settings,
            )
        self._collection = self._open_collection()
        self._dimension: int | None = None

    def _open_collection(self) -> Any:
        # Newer ChromaDB versions reject a collection whose persisted
        # embedding function differs from the one passed in; reopen without
        # one in that case, since every vector is pre-computed anyway.
        try:
            return self._client.get_or_create_collection(
                name=self._collection_name,
                metadata={"hnsw:space": "cosine"},
                embedding_function=_NoopEmbeddingFunction(),
            )
        except ValueError:
            return self._client.get_or_create_collection(
                name=self._collection_name,
                metadata={"hnsw:space": "cosine"},
            )

    # ------------------------------------------------------------------
    # Dimension validation
    # ------------------------------------------------------------------

    def _stored_dimension(self) -> int | None:
        """Peek at one stored vector and return its length, if any."""
        if self._collection.count() == 0:
            return None
        sample = self._collection.peek(limit=1)
        embeddings = sample.get("embeddings") if sample else None
        if embeddings is None or len(embeddings) == 0:
            return None
        return len(embeddings[0])

    def _check_dimension(self, vectors: list[list[float]]) -> None:
        if self._dimension is None:
            self._dimension = self._stored_dimension() or len(vectors[0])
        for vector in vectors:
            if len(vector) != self._dimension:
                raise VectorIndexError(
                    message=(
                        f"Vector dimension {len(vector)} does not match "
                        f"collection dimension {self._dimension}"
                    ),
                    provider_name=self.get_provider_name(),
                )

    # ------------------------------------------------------------------
    # IVectorStoreProvider implementation
    # ------------------------------------------------------------------

    async def ensure_collection(self, dimension: int) -> None:
        """Verify the stored vectors match *dimension* and pin it.

        A mismatch means every query would produce garbage results, so it
        fails loud and fast.
        """
        try:
            stored_dim = self._stored_dimension()
        except Exception as exc:
            raise VectorIndexError(
                message=f"ChromaDB collection check failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if stored_dim is not None and stored_dim != dimension:
            logger.error(
                "embedding_dimension_mismatch",
                stored_dim=stored_dim,
                expected_dim=dimension,
                collection=self._collection_name,
            )
            raise VectorIndexError(
                message=(
                    f"Embedding dimension mismatch: collection '{self._collection_name}' "
                    f"holds {stored_dim}-dim vectors but the embedder produces "
                    f"{dimension}-dim vectors. Clear the index or switch embedders."
                ),
                provider_name=self.get_provider_name(),
            )
        self._dimension = dimension
        logger.info(
            "chromadb_collection_ready",
            collection=self._collection_name,
            dimension=dimension,
            stored_dim=stored_dim,
        )

    async def upsert(
        self,
        chunks: list[DocumentChunk],
        embeddings: list[list[float]],
    ) -> int:
        """Upsert pre-embedded chunks; returns after ChromaDB has persisted them."""
        if len(chunks) != len(embeddings):
            raise VectorIndexError(
                message=f"chunks and embeddings length mismatch: {len(chunks)} != {len(embeddings)}",
                provider_name=self.get_provider_name(),
            )
        if not chunks:
            return 0
        self._check_dimension(embeddings)

        try:
            self._collection.upsert(
                ids=[c.chunk_id for c in chunks],
                embeddings=embeddings,
                documents=[c.text for c in chunks],
                metadatas=[self._chunk_to_metadata(c) for c in chunks],
            )
        except Exception as exc:
            raise VectorIndexError(
                message=f"ChromaDB upsert failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info("chromadb_upsert", count=len(chunks))
        return len(chunks)

    async def query(self, vector: list[float], top_k: int = 5) -> list[RetrievedChunk]:
        """Return up to *top_k* nearest chunks by cosine similarity."""
        if top_k <= 0:
            return []
        try:
            available = self._collection.count()
            if available == 0:
                return []
            self._check_dimension([vector])

            results = self._collection.query(
                query_embeddings=[vector],
                n_results=min(top_k, available),
                include=["documents", "metadatas", "distances"],
            )
        except VectorIndexError:
            raise
        except Exception as exc:
            raise VectorIndexError(
                message=f"ChromaDB query failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if not results["ids"] or not results["ids"][0]:
            return []

        ids = results["ids"][0]
        documents = results["documents"][0] if results["documents"] else [""] * len(ids)
        metadatas = results["metadatas"][0] if results["metadatas"] else [{}] * len(ids)
        distances = results["distances"][0] if results["distances"] else [1.0] * len(ids)

        # Ranked on raw distance; only the reported score is clamped.
        rows = sorted(
            zip(ids, documents, metadatas, distances, strict=True),
            key=lambda row: row[3],
        )
        retrieved = [
            RetrievedChunk(
                chunk=self._metadata_to_chunk(chunk_id, meta or {}, doc_text or ""),
                similarity_score=max(0.0, min(1.0, 1.0 - distance)),
            )
            for chunk_id, doc_text, meta, distance in rows
        ]

        logger.info(
            "chromadb_query",
            results_count=len(retrieved),
            top_score=retrieved[0].similarity_score if retrieved else 0.0,
        )
        return retrieved

    async def delete(self, ids: list[str]) -> int:
        """Delete the given chunk ids; returns how many of them existed."""
        if not ids:
            return 0
        try:
            existing = self._collection.get(ids=ids, include=["metadatas"])
            found = existing["ids"] or []
            if found:
                self._collection.delete(ids=found)
        except Exception as exc:
            raise VectorIndexError(
                message=f"ChromaDB delete failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info("chromadb_delete", requested=len(ids), deleted_count=len(found))
        return len(found)

    async def clear(self) -> None:
        """Drop and recreate the collection."""
        try:
            self._client.delete_collection(name=self._collection_name)
            self._collection = self._open_collection()
        except Exception as exc:
            raise VectorIndexError(
                message=f"ChromaDB clear failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        self._dimension = None
        logger.info("chromadb_collection_cleared", collection=self._collection_name)

    async def count(self) -> int:
        try:
            return self._collection.count()
        except Exception as exc:
            raise VectorIndexError(
                message=f"ChromaDB count failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    def get_provider_name(self) -> str:
        return "chromadb"

    def is_available(self) -> bool:
        """Return ``True`` if the ChromaDB collection is accessible."""
        try:
            self._collection.count()
            return True
        except Exception:
            return False

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _chunk_to_metadata(chunk: DocumentChunk) -> dict[str, str | int]:
        """Convert a DocumentChunk's payload to ChromaDB metadata.

        The chunk text is stored as the ChromaDB document, not in metadata.
        """
        metadata: dict[str, str | int] = {
            key: value for key, value in chunk.payload().items() if key != "text"
        }
        metadata["chunk_index"] = chunk.chunk_index
        return metadata

    @staticmethod
    def _metadata_to_chunk(chunk_id: str, meta: dict[str, Any], text: str) -> DocumentChunk:
        return DocumentChunk(
            chunk_id=chunk_id,
            text=text,
            title=str(meta.get("title", "")),
            url=str(meta.get("url", "")),
            timestamp=str(meta.get("timestamp", "")),
            source=str(meta.get("source", "unknown")),
            chunk_index=int(meta.get("chunk_index", 0)),
        )
