"""In-process vector store backed by numpy.

Keeps every vector in a dict keyed by chunk id and answers queries with a
brute-force cosine-similarity scan.  Intended for tests, demos, and small
local knowledge bases where running ChromaDB is unnecessary.
"""

from __future__ import annotations

import numpy as np
import structlog

from newsrag.interfaces.vector_store_provider import IVectorStoreProvider
from newsrag.models.rag import DocumentChunk, RetrievedChunk
from newsrag.utils.errors import VectorIndexError

logger = structlog.get_logger(logger_name=__name__)


class InMemoryVectorStore(IVectorStoreProvider):
    """Brute-force cosine search over vectors held in memory."""

    def __init__(self) -> None:
        self._entries: dict[str, tuple[DocumentChunk, np.ndarray]] = {}
        self._dimension: int | None = None

    def _as_array(self, vector: list[float]) -> np.ndarray:
        array = np.asarray(vector, dtype=np.float32)
        if self._dimension is None:
            self._dimension = int(array.shape[0])
        if array.ndim != 1 or array.shape[0] != self._dimension:
            raise VectorIndexError(
                message=(
                    f"Vector dimension {array.shape[-1]} does not match "
                    f"collection dimension {self._dimension}"
                ),
                provider_name=self.get_provider_name(),
            )
        return array

    async def ensure_collection(self, dimension: int) -> None:
        if self._dimension is not None and self._entries and self._dimension != dimension:
            raise VectorIndexError(
                message=(
                    f"Embedding dimension mismatch: collection holds {self._dimension}-dim "
                    f"vectors but the embedder produces {dimension}-dim vectors"
                ),
                provider_name=self.get_provider_name(),
            )
        self._dimension = dimension

    async def upsert(
        self,
        chunks: list[DocumentChunk],
        embeddings: list[list[float]],
    ) -> int:
        if len(chunks) != len(embeddings):
            raise VectorIndexError(
                message=f"chunks and embeddings length mismatch: {len(chunks)} != {len(embeddings)}",
                provider_name=self.get_provider_name(),
            )
        # Validate the whole batch before writing any of it.
        arrays = [self._as_array(vector) for vector in embeddings]
        for chunk, array in zip(chunks, arrays, strict=True):
            self._entries[chunk.chunk_id] = (chunk, array)
        logger.debug("memory_vector_upsert", count=len(chunks), total=len(self._entries))
        return len(chunks)

    async def query(self, vector: list[float], top_k: int = 5) -> list[RetrievedChunk]:
        if top_k <= 0 or not self._entries:
            return []
        query = self._as_array(vector)

        chunks = [chunk for chunk, _ in self._entries.values()]
        matrix = np.stack([array for _, array in self._entries.values()])
        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
        # Zero vectors have no direction; treat them as orthogonal.
        with np.errstate(divide="ignore", invalid="ignore"):
            scores = np.where(norms > 0, matrix @ query / norms, 0.0)
        # Ranked on the raw cosine; only the reported score is clamped.
        # Stable sort keeps insertion order among equal scores.
        order = np.argsort(-scores, kind="stable")[:top_k]
        return [
            RetrievedChunk(
                chunk=chunks[i],
                similarity_score=float(np.clip(scores[i], 0.0, 1.0)),
            )
            for i in order
        ]

    async def delete(self, ids: list[str]) -> int:
        deleted = 0
        for chunk_id in ids:
            if self._entries.pop(chunk_id, None) is not None:
                deleted += 1
        return deleted

    async def clear(self) -> None:
        self._entries.clear()
        self._dimension = None

    async def count(self) -> int:
        return len(self._entries)

    def get_provider_name(self) -> str:
        return "memory"

    def is_available(self) -> bool:
        return True
