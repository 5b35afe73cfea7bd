import threading

from conftest import RDF_FEED, RSS20_FEED, FakeRetriever, rss_result

from liberalfeed import Feed, MemoryFeedCache, RetrievalResult, build_merged_feed, open_feed, parse

PODCAST_URL = "http://www.example.com/podcast.xml"
NETWORK_URL = "http://example.net/rss.rdf"


class MappingRetriever:
    """Serves documents by url, safe to share between threads."""

    def __init__(self, documents):
        self.documents = documents
        self.requested = []
        self._lock = threading.Lock()

    def retrieve(self, url, headers):
        with self._lock:
            self.requested.append(url)
        return RetrievalResult(data=self.documents[url].encode("utf-8"), final_url=url)


def test_parse_content(rss20_xml):
    feed = parse(rss20_xml)
    assert isinstance(feed, Feed)
    assert feed.title == "Example Podcast"
    assert feed.live is False


def test_parse_bytes_with_headers(rss20_xml):
    feed = parse(
        rss20_xml.encode("utf-8"),
        url=PODCAST_URL,
        http_headers={"Content-Type": "application/rss+xml; charset=UTF-8"},
    )
    assert feed.url == PODCAST_URL
    assert feed.encoding == "utf-8"
    assert feed.entries[0].title == "Episode 2"


def test_parse_url():
    retriever = FakeRetriever(rss_result())
    feed = parse(PODCAST_URL, retriever=retriever)
    assert feed.live is True
    assert feed.url == PODCAST_URL
    assert feed.title == "Example Podcast"
    assert retriever.requests[0][0] == PODCAST_URL


def test_open_feed_uses_cache():
    cache = MemoryFeedCache()
    open_feed(PODCAST_URL, cache=cache, retriever=FakeRetriever(rss_result()))
    feed = open_feed(PODCAST_URL, cache_only=True, cache=cache)
    assert feed.title == "Example Podcast"


def test_build_merged_feed():
    retriever = FakeRetriever(rss_result(RSS20_FEED), rss_result(RDF_FEED))
    merged = build_merged_feed([PODCAST_URL, NETWORK_URL], retriever=retriever)

    assert [url for url, _ in retriever.requests] == [PODCAST_URL, NETWORK_URL]
    assert [entry.title for entry in merged.entries] == [
        "Example Podcast: Episode 2",
        "Example Podcast: Episode 1",
        "Example Network: First news",
    ]
    assert all(entry.feed is merged for entry in merged.entries)


def test_build_merged_feed_multi_threaded():
    retriever = MappingRetriever({PODCAST_URL: RSS20_FEED, NETWORK_URL: RDF_FEED})
    merged = build_merged_feed(
        [PODCAST_URL, NETWORK_URL], multi_threaded=True, retriever=retriever
    )

    assert sorted(retriever.requested) == sorted([PODCAST_URL, NETWORK_URL])
    assert [entry.title for entry in merged.entries] == [
        "Example Podcast: Episode 2",
        "Example Podcast: Episode 1",
        "Example Network: First news",
    ]


def test_build_merged_feed_without_urls():
    assert build_merged_feed([]).entries == []
