from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Sequence

from .cache import FeedCache
from .config import DEFAULT_CONFIGURATION, Configuration
from .feed import Feed
from .retrieval import Retriever

logger = logging.getLogger(__name__)


def parse(
    source: str | bytes,
    *,
    config: Optional[Configuration] = None,
    url: Optional[str] = None,
    http_headers: Optional[dict[str, str]] = None,
    cache: Optional[FeedCache] = None,
    retriever: Optional[Retriever] = None,
) -> Feed:
    """Parse a feed from a URL or XML content.

    Args:
        source: URL string or XML content string/bytes
        config: Parsing and normalization options
        url: Where the content came from, when ``source`` is content
        http_headers: Response headers that came with the content; a
            Content-Type charset overrides the XML declaration
        cache: Feed cache consulted when ``source`` is a URL
        retriever: Retriever used when ``source`` is a URL

    Returns:
        Feed whose fields resolve lazily on first access
    """
    is_url = isinstance(source, str) and source.startswith(("http://", "https://"))
    if is_url:
        return Feed.open(source, config=config, cache=cache, retriever=retriever)
    return Feed(
        source,
        url=url,
        config=config,
        cache=cache,
        retriever=retriever,
        http_headers=http_headers,
    )


def open_feed(
    url: str,
    *,
    cache_only: bool = False,
    config: Optional[Configuration] = None,
    cache: Optional[FeedCache] = None,
    retriever: Optional[Retriever] = None,
) -> Feed:
    """Open the feed at ``url``; see :meth:`Feed.open`."""
    return Feed.open(
        url, cache_only=cache_only, config=config, cache=cache, retriever=retriever
    )


def build_merged_feed(
    urls: Sequence[str],
    multi_threaded: bool = False,
    *,
    config: Optional[Configuration] = None,
    cache: Optional[FeedCache] = None,
    retriever: Optional[Retriever] = None,
) -> Feed:
    """Open every url and collect their entries into one new feed.

    Each entry is a copy titled ``"{feed title}: {entry title}"``. With
    ``multi_threaded`` the feeds are retrieved concurrently, one worker per
    url. A feed that cannot be retrieved raises and nothing is merged.
    """
    config = config or DEFAULT_CONFIGURATION

    def open_one(url: str) -> Feed:
        return Feed.open(url, config=config, cache=cache, retriever=retriever)

    if multi_threaded and urls:
        with ThreadPoolExecutor(max_workers=len(urls)) as executor:
            feeds = list(executor.map(open_one, urls))
    else:
        feeds = [open_one(url) for url in urls]

    merged = Feed(config=config)
    entries = []
    for feed in feeds:
        for entry in feed.entries:
            copied = entry.copy()
            copied.title = f"{feed.title}: {entry.title}"
            entries.append(copied)
    merged.entries = entries
    logger.debug("Merged %d entries from %d feeds", len(entries), len(feeds))
    return merged
