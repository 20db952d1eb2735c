"""Fixed-size text chunking with overlapping windows.

Splits article text into :class:`~newsrag.models.rag.DocumentChunk`
objects of at most ``chunk_size`` characters.  Consecutive windows start
``chunk_size - chunk_overlap`` characters apart, so each pair shares
exactly ``chunk_overlap`` characters and a concept spanning a boundary is
captured whole in at least one chunk.

The document is stripped once before splitting; the windows themselves
are left untrimmed so that dropping the first ``chunk_overlap`` characters
of every window after the first and concatenating reconstructs the
stripped text exactly.
"""

from __future__ import annotations

import uuid

import structlog

from newsrag.models.rag import DocumentChunk, SourceArticle
from newsrag.utils.errors import ConfigurationError

logger = structlog.get_logger(logger_name=__name__)


class TextChunker:
    """Splits text into overlapping fixed-size character windows.

    Parameters
    ----------
    chunk_size:
        Maximum number of characters per chunk (default 1000).
    chunk_overlap:
        Number of characters shared by consecutive chunks (default 200).
        Must be smaller than *chunk_size*, otherwise the window would never
        advance.

    Raises
    ------
    ConfigurationError
        If the parameters cannot produce a terminating split.
    """

    def __init__(self, chunk_size: int = 1000, chunk_overlap: int = 200) -> None:
        if chunk_size <= 0:
            raise ConfigurationError(message=f"chunk_size must be positive, got {chunk_size}")
        if chunk_overlap < 0:
            raise ConfigurationError(
                message=f"chunk_overlap must not be negative, got {chunk_overlap}"
            )
        if chunk_overlap >= chunk_size:
            raise ConfigurationError(
                message=(
                    f"chunk_overlap ({chunk_overlap}) must be smaller than "
                    f"chunk_size ({chunk_size})"
                )
            )
        self._chunk_size = chunk_size
        self._chunk_overlap = chunk_overlap

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    @property
    def chunk_overlap(self) -> int:
        return self._chunk_overlap

    def split(self, text: str) -> list[str]:
        """Return the ordered windows for *text*.

        A pure function of its input: the same text always yields the same
        windows.  Emission stops at the first window that reaches the end
        of the text, so no trailing window is a suffix of the previous one.
        """
        document = text.strip()
        if not document:
            return []

        step = self._chunk_size - self._chunk_overlap
        windows: list[str] = []
        start = 0
        while True:
            window = document[start : start + self._chunk_size]
            if window.strip():
                windows.append(window)
            if start + self._chunk_size >= len(document):
                break
            start += step
        return windows

    def chunk(self, article: SourceArticle) -> list[DocumentChunk]:
        """Split *article* into chunks tagged with its metadata.

        Chunk ids are ``{article_key}-{index}`` where ``article_key`` is a
        fresh random UUID, so ids never collide across runs even when the
        same article is ingested twice.
        """
        article_key = uuid.uuid4().hex
        chunks = [
            DocumentChunk(
                chunk_id=f"{article_key}-{index}",
                text=window,
                title=article.title,
                url=article.url,
                timestamp=article.timestamp,
                source=article.source,
                chunk_index=index,
            )
            for index, window in enumerate(self.split(article.text))
        ]
        logger.debug(
            "article_chunked",
            url=article.url,
            text_length=len(article.text),
            chunks=len(chunks),
        )
        return chunks
