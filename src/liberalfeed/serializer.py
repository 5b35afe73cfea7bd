"""Rendering feeds as RSS 1.0 (RDF), RSS 2.0 or Atom 1.0."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Optional

from lxml import etree

from .config import Configuration
from .dates import format_iso8601, format_rfc822, utcnow
from .errors import SerializationError
from .models import Author
from .namespaces import (
    ATOM_10_NS,
    CONTENT_NS,
    DC_NS,
    DEFAULT_NAMESPACES,
    ITUNES_NS,
    MEDIA_NS,
    RDF_NS,
    RSS_10_NS,
    SYN_NS,
    TAXO_NS,
    XML_NS,
)
from .urls import build_tag_uri, build_urn_uri, is_uri, normalize_url

if TYPE_CHECKING:
    from .feed import Feed
    from .item import FeedItem

logger = logging.getLogger(__name__)

_RE_INVALID_XML_CHARS = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ufffe\uffff]")

TRACKBACK_NS = DEFAULT_NAMESPACES["trackback"]

MISSING_FILE_SIZE_COMMENT = " *** Enclosure failed to include file size. Ignoring. *** "


def _clean(text: object) -> str:
    return _RE_INVALID_XML_CHARS.sub("", str(text))


def _q(namespace: Optional[str], name: str) -> str:
    return f"{{{namespace}}}{name}" if namespace else name


def _sub(
    parent: etree._Element,
    tag: str,
    text: Optional[object] = None,
    attrib: Optional[dict[str, str]] = None,
) -> etree._Element:
    element = etree.SubElement(
        parent, tag, {key: _clean(value) for key, value in (attrib or {}).items()}
    )
    if text is not None:
        element.text = _clean(text)
    return element


def _sub_cdata(parent: etree._Element, tag: str, text: str) -> etree._Element:
    element = etree.SubElement(parent, tag)
    text = _clean(text)
    try:
        element.text = etree.CDATA(text)
    except ValueError:
        # CDATA sections cannot contain "]]>"
        element.text = text
    return element


def _rss_author(author: Optional[Author]) -> Optional[str]:
    if author is None:
        return None
    if author.email and author.name:
        return f"{author.email} ({author.name})"
    return author.email or author.name or author.raw


def _atom_author(parent: etree._Element, author: Optional[Author]) -> None:
    element = _sub(parent, _q(ATOM_10_NS, "author"))
    _sub(element, _q(ATOM_10_NS, "name"), (author and author.name) or "n/a")
    if author is not None and author.email:
        _sub(element, _q(ATOM_10_NS, "email"), author.email)
    if author is not None and author.url:
        _sub(element, _q(ATOM_10_NS, "uri"), author.url)


def render(
    feed: "Feed",
    feed_type: Optional[str] = None,
    version: Optional[float] = None,
    config: Optional[Configuration] = None,
) -> str:
    """Serialize ``feed`` with its entries.

    Args:
        feed: The feed to render.
        feed_type: "rss" or "atom". Defaults to the feed's own type, else "atom".
        version: 0.9, 1.0 or 1.1 render RDF for "rss", anything else RSS 2.0.
            Atom only supports 1.0. None or 0 means 1.0.
        config: Supplies the output encoding and generator. Defaults to the
            feed's configuration.

    Raises:
        SerializationError: The format/version is not supported, an RDF entry
            has no link, or no Atom id can be derived.
    """
    config = config or feed.config
    feed_type = feed_type or feed.feed_type or "atom"
    if not version:
        version = 1.0

    if feed_type == "rss" and version in (0.9, 1.0, 1.1):
        root = _render_rdf(feed)
    elif feed_type == "rss":
        root = _render_rss(feed, config)
    elif feed_type == "atom" and version == 0.3:
        raise SerializationError("Atom 0.3 is obsolete.")
    elif feed_type == "atom" and version == 1.0:
        root = _render_atom(feed, config)
    else:
        raise SerializationError("Unsupported feed format/version.")

    body = etree.tostring(root, encoding="unicode", pretty_print=True)
    return f'<?xml version="1.0" encoding="{config.output_encoding}"?>\n{body}'


def _render_rdf(feed: "Feed") -> etree._Element:
    entries = feed.entries
    for entry in entries:
        if entry.link is None:
            raise SerializationError(
                "Cannot generate an rdf-based feed item with a nil link field."
            )
    root = etree.Element(
        _q(RDF_NS, "RDF"),
        nsmap={
            None: RSS_10_NS,
            "rdf": RDF_NS,
            "dc": DC_NS,
            "syn": SYN_NS,
            "taxo": TAXO_NS,
            "itunes": ITUNES_NS,
            "media": MEDIA_NS,
            "content": CONTENT_NS,
        },
    )
    channel_attrib = {_q(RDF_NS, "about"): feed.link} if feed.link else {}
    channel = _sub(root, _q(RSS_10_NS, "channel"), attrib=channel_attrib)
    _sub(channel, _q(RSS_10_NS, "title"), feed.title or None)
    _sub(channel, _q(RSS_10_NS, "link"), feed.link or None)
    images = feed.images
    if images:
        _sub(channel, _q(RSS_10_NS, "image"), attrib={_q(RDF_NS, "resource"): images[0].url})
    _sub(channel, _q(RSS_10_NS, "description"), feed.description or None)
    if feed.language:
        _sub(channel, _q(DC_NS, "language"), feed.language)
    _sub(channel, _q(SYN_NS, "updatePeriod"), "hourly")
    _sub(channel, _q(SYN_NS, "updateFrequency"), str(feed.time_to_live // 3600))
    _sub(channel, _q(SYN_NS, "updateBase"), "1970-01-01T00:00:00Z")
    sequence = _sub(_sub(channel, _q(RSS_10_NS, "items")), _q(RDF_NS, "Seq"))
    for entry in entries:
        _sub(sequence, _q(RDF_NS, "li"), attrib={_q(RDF_NS, "resource"): entry.link})

    if images:
        best = next((image for image in images if image.link), images[0])
        image = _sub(root, _q(RSS_10_NS, "image"), attrib={_q(RDF_NS, "about"): best.url})
        _sub(image, _q(RSS_10_NS, "title"), best.title or feed.title or None)
        if best.url:
            _sub(image, _q(RSS_10_NS, "url"), best.url)
        _sub(image, _q(RSS_10_NS, "link"), best.link or feed.link or None)

    podcast = feed.podcast
    for entry in entries:
        _render_rdf_item(root, entry, podcast)
    return root


def _render_rdf_item(root: etree._Element, entry: "FeedItem", podcast: bool) -> None:
    item = _sub(root, _q(RSS_10_NS, "item"), attrib={_q(RDF_NS, "about"): entry.link})
    _sub(item, _q(RSS_10_NS, "title"), entry.title or None)
    _sub(item, _q(RSS_10_NS, "link"), entry.link)
    _sub(item, _q(RSS_10_NS, "description"), entry.summary or None)
    if entry.content:
        _sub_cdata(item, _q(CONTENT_NS, "encoded"), entry.content)
    if entry.time is not None:
        _sub(item, _q(DC_NS, "date"), format_iso8601(entry.time))
    tags = entry.tags
    if tags:
        bag = _sub(_sub(item, _q(DC_NS, "subject")), _q(RDF_NS, "Bag"))
        for tag in tags:
            _sub(bag, _q(RDF_NS, "li"), tag)
        if podcast:
            _sub(item, _q(ITUNES_NS, "keywords"), ", ".join(tags))


def _render_rss(feed: "Feed", config: Configuration) -> etree._Element:
    root = etree.Element(
        "rss",
        {"version": "2.0"},
        nsmap={
            "rdf": RDF_NS,
            "dc": DC_NS,
            "taxo": TAXO_NS,
            "trackback": TRACKBACK_NS,
            "itunes": ITUNES_NS,
            "media": MEDIA_NS,
            "content": CONTENT_NS,
        },
    )
    channel = _sub(root, "channel")
    if feed.title:
        _sub(channel, "title", feed.title)
    if feed.link:
        _sub(channel, "link", feed.link)
    if feed.description:
        _sub(channel, "description", feed.description)
    if feed.images:
        image = feed.images[0]
        image_element = _sub(channel, "image")
        _sub(image_element, "url", image.url)
        _sub(image_element, "title", image.title or feed.title or "")
        _sub(image_element, "link", image.link or feed.link or "")
    if feed.language:
        _sub(channel, "language", feed.language)
    if feed.copyright:
        _sub(channel, "copyright", feed.copyright)
    _sub(channel, "ttl", str(feed.time_to_live // 60))
    _sub(channel, "generator", config.generator_href)
    for category in feed.categories:
        if category.term:
            attrib = {"domain": category.scheme} if category.scheme else None
            _sub(channel, "category", category.term, attrib)

    podcast = feed.podcast
    for entry in feed.entries:
        _render_rss_item(channel, entry, podcast)
    return root


def _render_rss_item(channel: etree._Element, entry: "FeedItem", podcast: bool) -> None:
    item = _sub(channel, "item")
    if entry.title:
        _sub(item, "title", entry.title)
    if entry.link:
        _sub(item, "link", entry.link)
    if entry.summary:
        _sub(item, "description", entry.summary)
    author = _rss_author(entry.author)
    if author:
        _sub(item, "author", author)
    if entry.content:
        _sub_cdata(item, _q(CONTENT_NS, "encoded"), entry.content)
    timestamp = entry.published or entry.time
    if timestamp is not None:
        _sub(item, "pubDate", format_rfc822(timestamp))
    if entry.guid:
        permalink = is_uri(entry.guid) and entry.guid.startswith("http")
        _sub(item, "guid", entry.guid, {"isPermaLink": "true" if permalink else "false"})
    elif entry.link:
        _sub(item, "guid", entry.link, {"isPermaLink": "true"})
    tags = entry.tags
    for tag in tags:
        _sub(item, "category", tag)
    if tags and podcast:
        _sub(item, _q(ITUNES_NS, "keywords"), ", ".join(tags))
    if entry.comments:
        _sub(item, "comments", entry.comments)
    for enclosure in entry.enclosures:
        if not enclosure.url:
            continue
        if not enclosure.file_size:
            enclosure = next(
                (version for version in enclosure.versions if version.file_size), enclosure
            )
        if not enclosure.file_size:
            logger.debug("Dropping enclosure %s without a file size", enclosure.url)
            item.append(etree.Comment(MISSING_FILE_SIZE_COMMENT))
            continue
        attrib = {"url": normalize_url(enclosure.url) or enclosure.url}
        if enclosure.type is not None:
            attrib["type"] = enclosure.type
        attrib["length"] = str(enclosure.file_size)
        _sub(item, "enclosure", attrib=attrib)


def _render_atom(feed: "Feed", config: Configuration) -> etree._Element:
    if is_uri(feed.id):
        feed_id = feed.id
    elif feed.link:
        feed_id = build_urn_uri(feed.link)
    else:
        raise SerializationError("Cannot build feed, missing feed unique id.")

    root = etree.Element(
        _q(ATOM_10_NS, "feed"),
        {_q(XML_NS, "lang"): feed.language},
        nsmap={None: ATOM_10_NS},
    )
    if feed.title:
        _sub(root, _q(ATOM_10_NS, "title"), feed.title, {"type": "html"})
    _atom_author(root, feed.author)
    if feed.url:
        _sub(
            root,
            _q(ATOM_10_NS, "link"),
            attrib={"href": feed.url, "rel": "self", "type": "application/atom+xml"},
        )
    if feed.link:
        attrib = {"href": feed.link, "rel": "alternate", "type": "text/html"}
        if feed.title:
            attrib["title"] = feed.title
        _sub(root, _q(ATOM_10_NS, "link"), attrib=attrib)
    if feed.subtitle:
        _sub(root, _q(ATOM_10_NS, "subtitle"), feed.subtitle, {"type": "html"})
    _sub(root, _q(ATOM_10_NS, "updated"), format_iso8601(feed.updated or feed.time or utcnow()))
    _sub(
        root,
        _q(ATOM_10_NS, "generator"),
        config.generator_name,
        {"uri": config.generator_href},
    )
    _sub(root, _q(ATOM_10_NS, "id"), feed_id)

    for entry in feed.entries:
        _render_atom_entry(root, entry)
    return root


def _atom_entry_id(entry: "FeedItem") -> str:
    if is_uri(entry.id):
        return entry.id
    if entry.link and entry.time is not None:
        return build_tag_uri(entry.link, entry.time)
    if entry.link:
        return build_urn_uri(entry.link)
    raise SerializationError("Cannot build feed, missing entry unique id.")


def _render_atom_entry(root: etree._Element, entry: "FeedItem") -> None:
    element = _sub(root, _q(ATOM_10_NS, "entry"))
    if entry.title:
        _sub(element, _q(ATOM_10_NS, "title"), entry.title, {"type": "html"})
    _atom_author(element, entry.author)
    if entry.link:
        attrib = {"href": entry.link, "rel": "alternate"}
        if entry.title:
            attrib["title"] = entry.title
        _sub(element, _q(ATOM_10_NS, "link"), attrib=attrib)
    if entry.content:
        _sub(element, _q(ATOM_10_NS, "content"), entry.content, {"type": "html"})
    if entry.summary:
        _sub(element, _q(ATOM_10_NS, "summary"), entry.summary, {"type": "html"})
    _sub(
        element,
        _q(ATOM_10_NS, "updated"),
        format_iso8601(entry.updated or entry.time or utcnow()),
    )
    if entry.published is not None:
        _sub(element, _q(ATOM_10_NS, "published"), format_iso8601(entry.published))
    _sub(element, _q(ATOM_10_NS, "id"), _atom_entry_id(entry))
    for tag in entry.tags:
        _sub(element, _q(ATOM_10_NS, "category"), attrib={"term": tag})
    for enclosure in entry.enclosures:
        if not enclosure.url:
            continue
        attrib = {"rel": "enclosure", "href": normalize_url(enclosure.url) or enclosure.url}
        if enclosure.type is not None:
            attrib["type"] = enclosure.type
        if enclosure.file_size:
            attrib["length"] = str(enclosure.file_size)
        _sub(element, _q(ATOM_10_NS, "link"), attrib=attrib)
