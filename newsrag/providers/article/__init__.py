"""Article provider implementations.

RSSFeedProvider lists entries from one RSS/Atom feed and extracts each
article's body with trafilatura.  main.py builds one provider per URL in
INGEST_FEEDS, sharing a single httpx client.
"""

from newsrag.providers.article.rss_feed_provider import RSSFeedProvider, build_http_client

__all__ = ["RSSFeedProvider", "build_http_client"]
