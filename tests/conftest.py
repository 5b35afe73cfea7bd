"""
Pytest fixtures shared by the liberalfeed tests.
"""

import datetime
import os
import tempfile
from pathlib import Path

import pytest

from liberalfeed import FeedAccessError, MemoryFeedCache, RetrievalResult, SQLiteFeedCache

RSS20_FEED = """<?xml version="1.0" encoding="utf-8"?>
<rss version="2.0"
     xmlns:dc="http://purl.org/dc/elements/1.1/"
     xmlns:itunes="http://www.itunes.com/dtds/podcast-1.0.dtd">
  <channel>
    <title>Example Podcast</title>
    <link>http://www.example.com/</link>
    <description>Weekly talk about feeds</description>
    <language>en-GB</language>
    <copyright>Copyright 2020 Example</copyright>
    <generator>Hand written</generator>
    <managingEditor>editor@example.com (Jane Doe)</managingEditor>
    <webMaster>webmaster@example.com</webMaster>
    <ttl>120</ttl>
    <category domain="http://example.com/categories">Technology</category>
    <image>
      <url>http://www.example.com/logo.png</url>
      <title>Example Logo</title>
      <link>http://www.example.com/</link>
      <width>88</width>
      <height>31</height>
    </image>
    <itunes:author>The Example Crew</itunes:author>
    <itunes:explicit>no</itunes:explicit>
    <item>
      <title>Episode 2</title>
      <link>http://www.example.com/episodes/2</link>
      <description>The second episode</description>
      <guid isPermaLink="true">http://www.example.com/episodes/2</guid>
      <pubDate>Sat, 04 Jan 2020 10:00:00 GMT</pubDate>
      <category>Feeds</category>
      <category>Podcasting</category>
      <enclosure url="http://media.example.com/episode2.mp3" length="2048" type="audio/mpeg"/>
      <itunes:duration>1:02:03</itunes:duration>
    </item>
    <item>
      <title>Episode 1</title>
      <link>http://www.example.com/episodes/1</link>
      <description>The first episode</description>
      <guid isPermaLink="true">http://www.example.com/episodes/1</guid>
      <pubDate>Wed, 01 Jan 2020 10:00:00 GMT</pubDate>
      <enclosure url="http://media.example.com/episode1.mp3" length="1024" type="audio/mpeg"/>
    </item>
  </channel>
</rss>
"""

ATOM10_FEED = """<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom" xml:lang="de">
  <title type="text">Example Weblog</title>
  <subtitle type="html">Notes &lt;em&gt;and&lt;/em&gt; links</subtitle>
  <link rel="self" type="application/atom+xml" href="http://example.org/feed.atom"/>
  <link rel="alternate" type="text/html" href="http://example.org/"/>
  <id>tag:example.org,2005:weblog</id>
  <updated>2005-07-31T12:29:29Z</updated>
  <author>
    <name>Mark Example</name>
    <email>mark@example.org</email>
    <uri>http://example.org/~mark</uri>
  </author>
  <entry>
    <title>Atom draft released</title>
    <link rel="alternate" type="text/html" href="http://example.org/2005/04/02/atom"/>
    <link rel="enclosure" type="audio/mpeg" length="1337" href="http://example.org/audio/ph34r_my_podcast.mp3"/>
    <id>tag:example.org,2003:3.2397</id>
    <updated>2005-07-31T12:29:29Z</updated>
    <published>2003-12-13T08:29:29-04:00</published>
    <category term="atom"/>
    <category term="syndication"/>
    <content type="xhtml">
      <div xmlns="http://www.w3.org/1999/xhtml"><p><i>[Update: The Atom draft is finished.]</i></p></div>
    </content>
  </entry>
</feed>
"""

RDF_FEED = """<?xml version="1.0" encoding="utf-8"?>
<rdf:RDF xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#"
         xmlns="http://purl.org/rss/1.0/"
         xmlns:dc="http://purl.org/dc/elements/1.1/"
         xmlns:syn="http://purl.org/rss/1.0/modules/syndication/">
  <channel rdf:about="http://example.net/rss.rdf">
    <title>Example Network</title>
    <link>http://example.net/</link>
    <description>News from the example network</description>
    <dc:language>en-us</dc:language>
    <syn:updatePeriod>daily</syn:updatePeriod>
    <syn:updateFrequency>2</syn:updateFrequency>
    <items>
      <rdf:Seq>
        <rdf:li rdf:resource="http://example.net/news/1"/>
      </rdf:Seq>
    </items>
  </channel>
  <item rdf:about="http://example.net/news/1">
    <title>First news</title>
    <link>http://example.net/news/1</link>
    <description>Something happened</description>
    <dc:date>2004-06-01T09:30:00Z</dc:date>
    <dc:subject>Networks</dc:subject>
  </item>
</rdf:RDF>
"""


class FakeRetriever:
    """Returns canned results and records the requests it was asked for."""

    def __init__(self, *results):
        self.results = list(results)
        self.requests = []

    def retrieve(self, url, headers):
        self.requests.append((url, dict(headers)))
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


def rss_result(data=RSS20_FEED, **headers):
    return RetrievalResult(
        data=data.encode("utf-8"),
        http_headers={key.replace("_", "-"): value for key, value in headers.items()},
    )


@pytest.fixture
def rss20_xml():
    return RSS20_FEED


@pytest.fixture
def atom10_xml():
    return ATOM10_FEED


@pytest.fixture
def rdf_xml():
    return RDF_FEED


@pytest.fixture
def memory_cache():
    return MemoryFeedCache()


@pytest.fixture
def temp_db_path():
    """Create a temporary database file path."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        yield Path(f.name)
    # Cleanup
    if os.path.exists(f.name):
        os.unlink(f.name)


@pytest.fixture
def sqlite_cache(temp_db_path):
    cache = SQLiteFeedCache(str(temp_db_path))
    yield cache
    cache.close()


@pytest.fixture
def unreachable():
    return FeedAccessError("Connection refused")


@pytest.fixture
def long_ago():
    return datetime.datetime(2000, 1, 1, tzinfo=datetime.timezone.utc)
