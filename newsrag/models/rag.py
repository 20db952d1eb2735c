"""RAG pipeline data models for the newsrag knowledge base.

Defines Pydantic v2 models for fetched articles, document chunks, retrieval
results, and ingestion reports.  All models use frozen config to enforce
immutability: a chunk, once created, is never edited in place.

Lifecycle of the data:

    1. FETCH: an article provider lists :class:`FeedEntry` rows and turns
       each one into a :class:`SourceArticle` (title, body, URL, date).
    2. CHUNK: the body is split into overlapping :class:`DocumentChunk`
       windows, each tagged with its article's metadata and a unique id.
    3. EMBED + STORE: every chunk is embedded and upserted into the vector
       store, keyed by ``chunk_id``.
    4. RETRIEVE: a query vector returns :class:`RetrievedChunk` matches
       ranked by cosine similarity.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class FeedEntry(BaseModel):
    """One listing row from an article source, before its body is fetched."""

    model_config = ConfigDict(frozen=True)

    title: str = Field(default="Untitled", description="Headline as listed by the feed.")
    url: str = Field(description="Canonical URL of the article.")
    published_at: datetime | None = Field(
        default=None, description="Publication timestamp reported by the feed."
    )
    source: str = Field(default="unknown", description="Source label, e.g. the feed's host name.")


class SourceArticle(BaseModel):
    """A fetched document, ready for chunking.

    Created by an article provider and consumed once by the ingestion
    pipeline, then discarded.
    """

    model_config = ConfigDict(frozen=True)

    title: str = Field(description="Article headline.")
    text: str = Field(description="Extracted body text with markup stripped.")
    url: str = Field(description="Canonical URL of the article.")
    published_at: datetime | None = Field(
        default=None, description="Publication timestamp, if known."
    )
    source: str = Field(default="unknown", description="Source label, e.g. 'bbc.co.uk'.")

    @property
    def timestamp(self) -> str:
        """ISO-8601 publication timestamp, or an empty string when unknown."""
        return self.published_at.isoformat() if self.published_at else ""


# ---------------------------------------------------------------------------
# DocumentChunk -- the fundamental unit of retrieval.
# ---------------------------------------------------------------------------
class DocumentChunk(BaseModel):
    """A bounded window of article text plus its owning article's metadata.

    The vector store persists exactly one entry per chunk, keyed by
    ``chunk_id``, with the payload ``{text, title, url, timestamp, source}``.
    """

    model_config = ConfigDict(frozen=True)

    chunk_id: str = Field(description="Globally unique identifier for this chunk.")
    text: str = Field(description="The chunk's textual content.")
    title: str = Field(default="", description="Title of the owning article.")
    url: str = Field(default="", description="URL of the owning article.")
    timestamp: str = Field(default="", description="ISO-8601 publication timestamp of the article.")
    source: str = Field(default="unknown", description="Source label of the owning article.")
    chunk_index: int = Field(default=0, ge=0, description="Position of this window within its article.")

    def payload(self) -> dict[str, str]:
        """Return the metadata stored alongside the vector."""
        return {
            "text": self.text,
            "title": self.title,
            "url": self.url,
            "timestamp": self.timestamp,
            "source": self.source,
        }


# ---------------------------------------------------------------------------
# RetrievedChunk -- a search result from the vector store.
# ---------------------------------------------------------------------------
class RetrievedChunk(BaseModel):
    """A document chunk returned from a vector-store query with its score.

    Every backend converts its native distance to cosine similarity clamped
    to ``[0, 1]`` before building this model, so scores from different
    backends read the same way: higher is more relevant.
    """

    model_config = ConfigDict(frozen=True)

    chunk: DocumentChunk = Field(description="The retrieved document chunk.")
    similarity_score: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="Cosine similarity between the query and this chunk.",
    )


# ---------------------------------------------------------------------------
# Ingestion reporting
# ---------------------------------------------------------------------------
class IngestionPhase(str, Enum):
    """States of one ingestion run."""

    FETCHING = "fetching"
    EXTRACTING = "extracting"
    CHUNKING = "chunking"
    EMBEDDING = "embedding"
    UPSERTING = "upserting"
    DONE = "done"
    FAILED = "failed"


class IngestionReport(BaseModel):
    """Summary of one ingestion run, returned to the operator.

    ``articles_listed`` vs. ``articles_indexed`` shows how much of a partial
    run survived; ``phase`` records where a failed run stopped.
    """

    model_config = ConfigDict(frozen=True)

    phase: IngestionPhase = Field(default=IngestionPhase.DONE)
    articles_listed: int = Field(default=0, ge=0, description="Feed entries selected for extraction.")
    articles_indexed: int = Field(default=0, ge=0, description="Articles whose chunks were stored.")
    articles_skipped: int = Field(
        default=0, ge=0, description="Articles dropped for extraction failure or thin content."
    )
    chunks_indexed: int = Field(default=0, ge=0, description="Chunks embedded and upserted.")
    failed_sources: list[str] = Field(
        default_factory=list, description="Sources whose listing could not be fetched."
    )
    error: str | None = Field(default=None, description="Failure message when the run aborted.")
    duration_seconds: float = Field(default=0.0, ge=0.0)

    @property
    def succeeded(self) -> bool:
        return self.phase is IngestionPhase.DONE

    @property
    def documents_added(self) -> int:
        """Number of index entries written by this run."""
        return self.chunks_indexed
