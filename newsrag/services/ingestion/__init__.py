"""Article ingestion pipeline for the news knowledge base.

Orchestrates the full pipeline: **fetch -> extract -> chunk -> embed -> store**.

1. **Fetch** (via IArticleProvider) -- list entries from each RSS/Atom feed.
2. **Extract** (via IArticleProvider) -- download each page and pull out the
   readable article body.
3. **Chunk** (chunker.py / TextChunker) -- split bodies into overlapping
   fixed-size character windows.
4. **Embed** (via IEmbeddingProvider) -- one embedding call per batch.
5. **Store** (via IVectorStoreProvider) -- upsert each batch before the
   next one is embedded.
"""

from newsrag.services.ingestion.chunker import TextChunker
from newsrag.services.ingestion.ingestion_service import IngestionService

__all__ = [
    "IngestionService",
    "TextChunker",
]
