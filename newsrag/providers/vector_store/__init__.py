"""Vector store provider implementations.

Two implementations of IVectorStoreProvider:
    - ChromaDBProvider     -- persistent local directory (CHROMADB_PERSIST_DIR)
                             or a remote server (CHROMADB_URL).
    - InMemoryVectorStore  -- numpy cosine scan; nothing persists.

Both report cosine similarity in [0, 1].  To add another vector database,
create a new class implementing IVectorStoreProvider and register it in
main.py.
"""

from newsrag.providers.vector_store.chromadb_provider import ChromaDBProvider
from newsrag.providers.vector_store.memory_vector_store import InMemoryVectorStore

__all__ = ["ChromaDBProvider", "InMemoryVectorStore"]
