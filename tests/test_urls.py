import datetime

import pytest

from liberalfeed import build_tag_uri, build_urn_uri, is_uri, normalize_url
from liberalfeed.urls import is_valid_uri


@pytest.mark.parametrize(
    "url, expected",
    [
        ("slashdot.org", "http://slashdot.org/"),
        ("example.com/index.php", "http://example.com/index.php"),
        ("HTTP://Example.COM/Path", "http://example.com/Path"),
        ("feed://example.com/rss.xml", "http://example.com/rss.xml"),
        ("feed://http://example.com/rss.xml", "http://example.com/rss.xml"),
        ("feed:http://example.com/rss.xml", "http://example.com/rss.xml"),
        ("feed:https://example.com/rss.xml", "https://example.com/rss.xml"),
        ("http://example.com/a b", "http://example.com/a%20b"),
        ("/var/feeds/x.xml", "file:///var/feeds/x.xml"),
        ("mailto:joe@example.com", "mailto:joe@example.com"),
        ("javascript:alert(1)", "#"),
    ],
)
def test_normalize_url(url, expected):
    assert normalize_url(url) == expected


@pytest.mark.parametrize(
    "url",
    [
        "c:\\windows\\My Documents 100%20\\foo.txt",
        "file://c:\\windows\\My Documents 100%20\\foo.txt",
        "file:///c|/windows/My%20Documents%20100%20/foo.txt",
        "file:///c:/windows/My%20Documents%20100%20/foo.txt",
    ],
)
def test_normalize_windows_file_urls(url):
    assert normalize_url(url) == "file:///c:/windows/My%20Documents%20100%20/foo.txt"


@pytest.mark.parametrize("url", [None, "", "   "])
def test_normalize_blank_url(url):
    assert normalize_url(url) is None


def test_build_urn_uri():
    assert (
        build_urn_uri("http://sporkmonger.com/")
        == "urn:uuid:fa6d0b87-3f36-517d-b9b7-1349f8c3fc6b"
    )


def test_build_urn_uri_rejects_non_strings():
    with pytest.raises(TypeError):
        build_urn_uri(42)


def test_build_tag_uri():
    date = datetime.datetime(2005, 1, 2, 15, 0, tzinfo=datetime.timezone.utc)
    assert (
        build_tag_uri("http://example.com/archives/1", date)
        == "tag:example.com,2005-01-02:/archives/1"
    )


def test_build_tag_uri_replaces_fragments():
    date = datetime.datetime(2005, 1, 2, tzinfo=datetime.timezone.utc)
    assert (
        build_tag_uri("http://example.com/post#comments", date)
        == "tag:example.com,2005-01-02:/post/comments"
    )


def test_build_tag_uri_argument_errors():
    date = datetime.datetime(2005, 1, 2, tzinfo=datetime.timezone.utc)
    with pytest.raises(TypeError):
        build_tag_uri(None, date)
    with pytest.raises(TypeError):
        build_tag_uri("http://example.com/", "2005-01-02")
    with pytest.raises(ValueError):
        build_tag_uri("mailto:joe@example.com", date)


@pytest.mark.parametrize(
    "value, expected",
    [
        ("http://example.com/", True),
        ("urn:uuid:fa6d0b87-3f36-517d-b9b7-1349f8c3fc6b", True),
        ("tag:example.org,2005:weblog", True),
        ("not a uri", False),
        ("example.com", False),
        ("", False),
        (None, False),
    ],
)
def test_is_uri(value, expected):
    assert is_uri(value) is expected


def test_is_valid_uri_alias():
    assert is_valid_uri is is_uri
