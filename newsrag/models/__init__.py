"""newsrag domain models -- re-exports all public model classes.

The models are organized across two submodules by domain concern:
    - rag.py          -- articles, document chunks, retrieval results, ingestion reports
    - conversation.py -- session turns, chat responses, stream events, health reports
"""

from __future__ import annotations

from newsrag.models.conversation import (
    ChatResponse,
    ConversationTurn,
    HealthReport,
    SourceCitation,
    StreamEvent,
)
from newsrag.models.rag import (
    DocumentChunk,
    FeedEntry,
    IngestionPhase,
    IngestionReport,
    RetrievedChunk,
    SourceArticle,
)

__all__ = [
    "ChatResponse",
    "ConversationTurn",
    "DocumentChunk",
    "FeedEntry",
    "HealthReport",
    "IngestionPhase",
    "IngestionReport",
    "RetrievedChunk",
    "SourceArticle",
    "SourceCitation",
    "StreamEvent",
]
