import pytest

from liberalfeed import SerializationError, parse
from liberalfeed.serializer import MISSING_FILE_SIZE_COMMENT


def test_atom_round_trip(atom10_xml):
    feed = parse(atom10_xml)
    output = feed.build_xml("atom")
    assert output.startswith('<?xml version="1.0" encoding="utf-8"?>')

    again = parse(output)
    assert again.feed_type == "atom"
    assert again.feed_version == 1.0
    assert again.title == "Example Weblog"
    assert again.link == "http://example.org/"
    assert again.url == "http://example.org/feed.atom"
    assert again.id == "tag:example.org,2005:weblog"
    assert again.language == "de"
    entry = again.entries[0]
    assert entry.id == "tag:example.org,2003:3.2397"
    assert entry.link == "http://example.org/2005/04/02/atom"
    assert entry.tags == ["atom", "syndication"]
    assert entry.enclosures[0].file_size == 1337


def test_rss20_to_rdf(rss20_xml):
    output = parse(rss20_xml).build_xml("rss", 1.0)
    assert "<syn:updateFrequency>2</syn:updateFrequency>" in output

    again = parse(output)
    assert again.feed_type == "rss"
    assert again.feed_version == 1.0
    assert again.title == "Example Podcast"
    assert [entry.link for entry in again.entries] == [
        "http://www.example.com/episodes/2",
        "http://www.example.com/episodes/1",
    ]
    assert again.entries[0].tags == ["feeds", "podcasting"]


def test_rdf_requires_entry_links():
    feed = parse(
        '<rss version="2.0"><channel><title>x</title>'
        "<item><title>No link here</title></item>"
        "</channel></rss>"
    )
    with pytest.raises(SerializationError):
        feed.build_xml("rss", 1.0)


def test_atom_to_rss20(atom10_xml):
    output = parse(atom10_xml).build_xml("rss", 2.0)
    assert 'version="2.0"' in output
    assert "<ttl>60</ttl>" in output
    assert "<pubDate>Sat, 13 Dec 2003 12:29:29 GMT</pubDate>" in output
    assert '<guid isPermaLink="false">tag:example.org,2003:3.2397</guid>' in output
    assert (
        '<enclosure url="http://example.org/audio/ph34r_my_podcast.mp3" '
        'type="audio/mpeg" length="1337"/>'
    ) in output


def test_rss20_round_trip(rss20_xml):
    again = parse(parse(rss20_xml).build_xml("rss", 2.0))
    assert again.feed_version == 2.0
    assert again.copyright == "Copyright 2020 Example"
    assert again.language == "en-gb"
    assert again.time_to_live == 7200
    assert again.entries[0].enclosures[0].file_size == 2048


def test_enclosure_without_size_is_commented_out():
    feed = parse(
        '<rss version="2.0"><channel><title>x</title>'
        "<item><title>Episode</title><link>http://example.com/1</link>"
        '<enclosure url="http://example.com/1.mp3" type="audio/mpeg"/>'
        "</item></channel></rss>"
    )
    output = feed.build_xml("rss", 2.0)
    assert MISSING_FILE_SIZE_COMMENT in output
    assert "<enclosure" not in output


def test_atom_entry_id_from_link_and_time():
    feed = parse(
        '<rss version="2.0"><channel><title>x</title><link>http://example.com/</link>'
        "<item><title>Entry</title><link>http://example.com/archives/1</link>"
        "<pubDate>Sun, 02 Jan 2005 10:00:00 GMT</pubDate></item>"
        "</channel></rss>"
    )
    output = feed.build_xml("atom")
    assert "<id>tag:example.com,2005-01-02:/archives/1</id>" in output
    assert "<id>urn:uuid:" in output


def test_atom_requires_an_id():
    feed = parse('<feed xmlns="http://www.w3.org/2005/Atom"><title>x</title></feed>')
    with pytest.raises(SerializationError):
        feed.build_xml("atom")


def test_obsolete_and_unknown_formats(atom10_xml):
    feed = parse(atom10_xml)
    with pytest.raises(SerializationError, match="Atom 0.3 is obsolete."):
        feed.build_xml("atom", 0.3)
    with pytest.raises(SerializationError):
        feed.build_xml("cdf")
