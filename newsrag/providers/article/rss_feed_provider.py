"""RSS/Atom feed article provider using httpx and trafilatura.

Lists entries from one RSS 2.0 or Atom feed, then fetches each linked
page with httpx and extracts the main article text with trafilatura,
stripping navigation, ads, and boilerplate.
"""

from __future__ import annotations

import json
import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from urllib.parse import urlparse

import httpx
import structlog
import trafilatura

from newsrag.interfaces.article_provider import IArticleProvider
from newsrag.models.rag import FeedEntry, SourceArticle
from newsrag.utils.errors import ExtractionError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_TIMEOUT = 10.0
_DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; RAG-Bot/1.0)",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
}
_ATOM_NS = "{http://www.w3.org/2005/Atom}"


def build_http_client(timeout: float = _DEFAULT_TIMEOUT) -> httpx.AsyncClient:
    """Return an ``httpx.AsyncClient`` configured for feed and page fetches."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout),
        headers=_DEFAULT_HEADERS,
        follow_redirects=True,
    )


def _parse_date(raw: str | None) -> datetime | None:
    """Parse an RFC 822 (RSS) or ISO-8601 (Atom) timestamp."""
    if not raw:
        return None
    raw = raw.strip()
    try:
        parsed = parsedate_to_datetime(raw)
    except (TypeError, ValueError):
        try:
            parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _text(element: ET.Element | None) -> str:
    return (element.text or "").strip() if element is not None else ""


class RSSFeedProvider(IArticleProvider):
    """Article source for a single RSS 2.0 or Atom feed.

    Parameters
    ----------
    feed_url:
        URL of the feed document.
    http_client:
        Shared client; when omitted the provider creates and owns one.
    max_article_chars:
        Extracted bodies are truncated to this many characters.
    """

    def __init__(
        self,
        feed_url: str,
        http_client: httpx.AsyncClient | None = None,
        max_article_chars: int = 10000,
    ) -> None:
        self._feed_url = feed_url
        self._source = urlparse(feed_url).hostname or "unknown"
        self._owns_client = http_client is None
        self._client = http_client or build_http_client()
        self._max_chars = max_article_chars

    # ------------------------------------------------------------------
    # IArticleProvider implementation
    # ------------------------------------------------------------------

    async def list_entries(self, limit: int) -> list[FeedEntry]:
        """Fetch the feed and return its first *limit* entries."""
        response = await self._get(self._feed_url)
        try:
            root = ET.fromstring(response.content)
        except ET.ParseError as exc:
            raise ExtractionError(
                message=f"Malformed feed XML at {self._feed_url}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        entries = self._parse_rss(root) or self._parse_atom(root)
        logger.info(
            "feed_listed",
            feed=self._feed_url,
            entries=len(entries),
            limit=limit,
        )
        return entries[: max(limit, 0)]

    async def extract_article(self, entry: FeedEntry) -> SourceArticle:
        """Fetch *entry.url* and extract readable article text via trafilatura."""
        response = await self._get(entry.url)
        html = response.text
        text = trafilatura.extract(html, include_comments=False, include_tables=False)
        if not text or not text.strip():
            logger.warning("trafilatura_extraction_empty", url=entry.url)
            raise ExtractionError(
                message=f"No extractable text at {entry.url}",
                provider_name=self.get_provider_name(),
            )

        title = entry.title
        published_at = entry.published_at
        if not published_at or title == "Untitled":
            meta_title, meta_date = self._extract_metadata(html, entry.url)
            if title == "Untitled" and meta_title:
                title = meta_title
            published_at = published_at or meta_date

        text = text.strip()[: self._max_chars]
        logger.info(
            "article_extracted",
            url=entry.url,
            title=title,
            text_length=len(text),
        )
        return SourceArticle(
            title=title,
            text=text,
            url=entry.url,
            # Fall back to fetch time so every chunk carries a timestamp.
            published_at=published_at or datetime.now(timezone.utc),
            source=entry.source,
        )

    def is_available(self) -> bool:
        """Always available: no external credentials required."""
        return True

    def get_provider_name(self) -> str:
        return f"rss:{self._source}"

    async def aclose(self) -> None:
        """Close the HTTP client if this provider created it."""
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _get(self, url: str) -> httpx.Response:
        try:
            response = await self._client.get(url)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise ExtractionError(
                message=f"Timeout fetching {url}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except httpx.HTTPStatusError as exc:
            raise ExtractionError(
                message=f"HTTP {exc.response.status_code} for {url}",
                provider_name=self.get_provider_name(),
            ) from exc
        except httpx.HTTPError as exc:
            raise ExtractionError(
                message=f"HTTP error fetching {url}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        return response

    def _parse_rss(self, root: ET.Element) -> list[FeedEntry]:
        entries: list[FeedEntry] = []
        for item in root.iter("item"):
            link = _text(item.find("link"))
            if not link:
                continue
            entries.append(
                FeedEntry(
                    title=_text(item.find("title")) or "Untitled",
                    url=link,
                    published_at=_parse_date(_text(item.find("pubDate"))),
                    source=self._source,
                )
            )
        return entries

    def _parse_atom(self, root: ET.Element) -> list[FeedEntry]:
        entries: list[FeedEntry] = []
        for item in root.iter(f"{_ATOM_NS}entry"):
            link = ""
            for link_el in item.findall(f"{_ATOM_NS}link"):
                if link_el.get("rel", "alternate") == "alternate" and link_el.get("href"):
                    link = link_el.get("href", "")
                    break
            if not link:
                continue
            published = _text(item.find(f"{_ATOM_NS}published")) or _text(
                item.find(f"{_ATOM_NS}updated")
            )
            entries.append(
                FeedEntry(
                    title=_text(item.find(f"{_ATOM_NS}title")) or "Untitled",
                    url=link,
                    published_at=_parse_date(published),
                    source=self._source,
                )
            )
        return entries

    @staticmethod
    def _extract_metadata(html: str, url: str) -> tuple[str, datetime | None]:
        """Return (title, date) from trafilatura's JSON metadata output."""
        metadata = trafilatura.extract(
            html,
            include_comments=False,
            output_format="json",
            with_metadata=True,
        )
        if not metadata:
            return "", None
        try:
            meta_dict = json.loads(metadata)
        except json.JSONDecodeError:
            logger.debug("metadata_parse_failed", url=url)
            return "", None
        return meta_dict.get("title") or "", _parse_date(meta_dict.get("date"))
