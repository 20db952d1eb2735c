"""Abstract base class for article-source providers.

An article provider lists candidate articles from one source (an RSS feed,
say) and extracts the readable body of each.  The ingestion pipeline does
not know how articles are obtained; it only consumes this contract.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from newsrag.models.rag import FeedEntry, SourceArticle


# Concrete implementation: RSSFeedProvider (newsrag/providers/article/)
class IArticleProvider(ABC):
    """Contract for services that supply articles for ingestion."""

    @abstractmethod
    async def list_entries(self, limit: int) -> list[FeedEntry]:
        """Return at most *limit* candidate articles, newest first where known.

        Raises
        ------
        newsrag.utils.errors.ExtractionError
            If the listing itself cannot be fetched or parsed.
        """

    @abstractmethod
    async def extract_article(self, entry: FeedEntry) -> SourceArticle:
        """Fetch *entry* and extract its readable content.

        Raises
        ------
        newsrag.utils.errors.ExtractionError
            If the page cannot be fetched or has no extractable text.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"rss:bbc.co.uk"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider's dependencies are usable."""
