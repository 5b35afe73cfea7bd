"""Field extractors shared by feeds and their entries."""

from __future__ import annotations

import datetime
import logging
import re
from typing import Optional, Sequence

from lxml import etree

from .config import Configuration
from .dates import parse_time
from .models import Author, Category, Image
from .text import process_text_construct, sanitize_html, unescape_entities
from .urls import is_uri
from .xpath import Resolver, get_attribute, inner_xml, local_name

logger = logging.getLogger(__name__)

_RE_LEADING_INT = re.compile(r"^\s*[+-]?\d+")
_RE_LEADING_FLOAT = re.compile(r"^\s*[+-]?\d+(?:\.\d+)?")
_EMAIL = r"\b[A-Z0-9._%-\+]+@[A-Z0-9._%-]+\.[A-Z]{2,4}\b"
_RE_NAME_THEN_EMAIL = re.compile(r"(.*)\((%s)\)" % _EMAIL, re.IGNORECASE)
_RE_EMAIL_THEN_NAME = re.compile(r"(%s)\s*\((.*)\)" % _EMAIL, re.IGNORECASE)
_RE_EMAIL = re.compile(_EMAIL, re.IGNORECASE)
_RE_IMAGE_TYPE = re.compile(r"^image")

TITLE_QUERIES = ("atom10:title", "atom03:title", "atom:title", "title", "dc:title")
ID_QUERIES = (
    "atom10:id/text()",
    "atom03:id/text()",
    "atom:id/text()",
    "id/text()",
    "guid/text()",
)
COPYRIGHT_QUERIES = (
    "atom10:copyright",
    "atom03:copyright",
    "atom:copyright",
    "copyright",
    "copyrights",
    "dc:rights",
    "rights",
)
AUTHOR_QUERIES = (
    "atom10:author",
    "atom03:author",
    "atom:author",
    "author",
    "managingEditor",
    "dc:author",
    "dc:creator",
)
PUBLISHER_QUERIES = ("webMaster/text()", "dc:publisher/text()")
LINK_ELEMENT_QUERIES = ("atom10:link", "atom03:link", "atom:link", "link")
UPDATED_QUERIES = (
    "atom10:updated/text()",
    "atom03:updated/text()",
    "atom:updated/text()",
    "updated/text()",
    "atom10:modified/text()",
    "atom03:modified/text()",
    "atom:modified/text()",
    "modified/text()",
)
ISSUED_QUERIES = (
    "atom10:issued/text()",
    "atom03:issued/text()",
    "atom:issued/text()",
    "issued/text()",
)
PUBLISHED_QUERIES = (
    "atom10:published/text()",
    "atom03:published/text()",
    "atom:published/text()",
    "published/text()",
)
EXPLICIT_QUERIES = ("media:adult/text()", "itunes:explicit/text()")

_PERSON_NAME_QUERIES = (
    "atom10:name/text()",
    "atom03:name/text()",
    "atom:name/text()",
    "name/text()",
    "@name",
)
_PERSON_EMAIL_QUERIES = (
    "atom10:email/text()",
    "atom03:email/text()",
    "atom:email/text()",
    "email/text()",
    "@email",
)
_PERSON_URL_QUERIES = (
    "atom10:url/text()",
    "atom03:url/text()",
    "atom:url/text()",
    "url/text()",
    "atom10:uri/text()",
    "atom03:uri/text()",
    "atom:uri/text()",
    "uri/text()",
    "@url",
    "@uri",
    "@href",
)
_IMAGE_QUERIES = (
    "image",
    "logo",
    "apple-wallpapers:image",
    "atom10:link",
    "atom03:link",
    "atom:link",
    "link",
)


def to_int(value: Optional[str]) -> int:
    """Read the leading integer of ``value``, or 0 when there is none."""
    if value is None:
        return 0
    match = _RE_LEADING_INT.match(str(value))
    return int(match.group(0)) if match else 0


def to_float(value: Optional[str]) -> float:
    if value is None:
        return 0.0
    match = _RE_LEADING_FLOAT.match(str(value))
    return float(match.group(0)) if match else 0.0


def blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def first_string(
    resolver: Resolver, node: Optional[etree._Element], queries: Sequence[str]
) -> Optional[str]:
    result = resolver.first(node, queries, select_value=True)
    if result is None:
        return None
    if isinstance(result, str):
        return result
    return blank_to_none(inner_xml(result))


def first_string_of(
    resolver: Resolver,
    nodes: Sequence[Optional[etree._Element]],
    queries: Sequence[str],
) -> Optional[str]:
    """Resolve ``queries`` against each node in turn."""
    for node in nodes:
        value = first_string(resolver, node, queries)
        if value:
            return value
    return None


def text_construct(
    resolver: Resolver,
    node: Optional[etree._Element],
    queries: Sequence[str],
    feed_type: Optional[str],
    config: Configuration,
    is_title: bool = False,
) -> Optional[str]:
    found = resolver.first(node, queries)
    if not isinstance(found, etree._Element):
        return None
    return process_text_construct(
        found,
        feed_type=feed_type,
        config=config,
        is_title=is_title,
        strip_comment_count=is_title and config.strip_comment_count,
    )


def itunes_text(
    resolver: Resolver,
    nodes: Sequence[Optional[etree._Element]],
    query: str,
    config: Configuration,
) -> Optional[str]:
    value = first_string_of(resolver, nodes, [query])
    if not value:
        return None
    value = unescape_entities(value)
    if config.sanitization_enabled:
        value = sanitize_html(value, "strip")
    return blank_to_none(value)


def parse_timestamp(
    resolver: Resolver, node: Optional[etree._Element], queries: Sequence[str]
) -> Optional[datetime.datetime]:
    value = first_string(resolver, node, queries)
    if not value:
        return None
    parsed = parse_time(value)
    if parsed is None:
        logger.debug("Unparseable timestamp %r", value)
    return parsed


def is_true_flag(value: Optional[str]) -> bool:
    return value is not None and value.strip().lower() in ("true", "yes")


def parse_person(raw: Optional[str], author: Optional[Author] = None) -> Author:
    """Split a free-form person string into name and email.

    ``name (email)`` is tried first, then ``email (name)``, then a bare email
    address anywhere in the string. Text without an ``@`` is taken as the name.
    """
    author = author or Author()
    raw = blank_to_none(raw)
    author.raw = raw
    if raw is None:
        return author
    pair: Optional[tuple[str, str]] = None
    match = _RE_NAME_THEN_EMAIL.search(raw)
    if match is not None:
        pair = (match.group(1), match.group(2))
    else:
        match = _RE_EMAIL_THEN_NAME.search(raw)
        if match is not None:
            pair = (match.group(2), match.group(1))
        else:
            email = _RE_EMAIL.search(raw)
            if email is not None:
                author.email = email.group(0).strip()
    if pair is not None:
        author.name = pair[0].strip()
        author.email = pair[1].strip()
    elif "@" not in raw:
        author.name = raw
    return author


def _blank_person_fields(author: Author) -> Author:
    author.name = blank_to_none(author.name)
    author.email = blank_to_none(author.email)
    author.url = blank_to_none(author.url)
    author.raw = blank_to_none(author.raw)
    return author


def extract_person(
    resolver: Resolver, node: Optional[etree._Element], queries: Sequence[str]
) -> Author:
    author = Author()
    person = resolver.first(node, queries)
    if not isinstance(person, etree._Element):
        return author
    raw = resolver.first(person, "text()")
    parse_person(unescape_entities(raw) if raw else None, author)
    if not author.name:
        author.name = unescape_entities(first_string(resolver, person, _PERSON_NAME_QUERIES))
    if not author.email:
        author.email = unescape_entities(
            first_string(resolver, person, _PERSON_EMAIL_QUERIES)
        )
    if not author.url:
        author.url = unescape_entities(first_string(resolver, person, _PERSON_URL_QUERIES))
    return _blank_person_fields(author)


def extract_publisher(resolver: Resolver, node: Optional[etree._Element]) -> Author:
    raw = first_string(resolver, node, PUBLISHER_QUERIES)
    return _blank_person_fields(parse_person(unescape_entities(raw) if raw else None))


def extract_categories(
    resolver: Resolver, node: Optional[etree._Element]
) -> list[Category]:
    categories = []
    for category_node in resolver.all(node, ["category", "dc:subject"]):
        if not isinstance(category_node, etree._Element):
            continue
        categories.append(
            Category(
                term=first_string(resolver, category_node, ["@term", "text()"]),
                scheme=first_string(resolver, category_node, ["@scheme", "@domain"]),
                label=first_string(resolver, category_node, ["@label"]),
            )
        )
    return categories


def extract_images(
    resolver: Resolver, node: Optional[etree._Element], link: Optional[str]
) -> list[Image]:
    """Collect image, logo and image-typed link elements.

    An image whose url is the page link is dropped.
    """
    images = []
    for image_node in resolver.all(node, _IMAGE_QUERIES):
        if not isinstance(image_node, etree._Element):
            continue
        name = local_name(image_node)
        url = first_string(resolver, image_node, ["url/text()", "@rdf:resource", "text()"])
        if not url and (
            name == "logo" or _RE_IMAGE_TYPE.match(get_attribute(image_node, "type") or "")
        ):
            url = first_string(
                resolver, image_node, ["@atom10:href", "@atom03:href", "@atom:href", "@href"]
            )
        if not url and name == "LOGO":
            url = first_string(resolver, image_node, ["@href"])
        url = blank_to_none(url)
        if url is None or url == link:
            continue
        style = first_string(resolver, image_node, ["style/text()", "@style"])
        images.append(
            Image(
                url=url,
                title=first_string(resolver, image_node, ["title/text()"]),
                description=first_string(resolver, image_node, ["description/text()"]),
                link=first_string(resolver, image_node, ["link/text()"]),
                height=to_int(first_string(resolver, image_node, ["height/text()"])) or None,
                width=to_int(first_string(resolver, image_node, ["width/text()"])) or None,
                style=style.lower() if style else None,
            )
        )
    return images


def _is_non_page_link(element: etree._Element) -> bool:
    link_type = get_attribute(element, "type") or ""
    rel = get_attribute(element, "rel") or ""
    return (
        link_type.startswith(("image", "application"))
        or "xml" in link_type
        or "self" in rel
    )


def _first_page_link(node: etree._Element) -> Optional[str]:
    for child in node:
        if not isinstance(child.tag, str) or local_name(child).lower() != "link":
            continue
        if _is_non_page_link(child):
            continue
        link = blank_to_none(get_attribute(child, "href")) or blank_to_none(inner_xml(child))
        if link:
            return link
    return None


def guid_as_link(guid: Optional[str]) -> Optional[str]:
    if guid and is_uri(guid) and not guid.startswith(("urn:uuid:", "tag:")):
        return guid
    return None


def extract_link(
    resolver: Resolver,
    node: Optional[etree._Element],
    queries: Sequence[str],
    guid: Optional[str],
    use_base: bool = False,
) -> Optional[str]:
    """Find the page link of a feed or entry.

    The typed and rel-qualified ``queries`` come first, then a guid that is a
    URL, then (for CDF channels) ``@base``. As a last resort the first link
    element that does not point at an image, the feed itself or some XML is
    used.
    """
    if node is None:
        return None
    link = first_string(resolver, node, queries) or guid_as_link(guid)
    if not link and use_base:
        link = blank_to_none(get_attribute(node, "base"))
    if link:
        link = unescape_entities(link)
    if not link:
        link_node = resolver.first(node, LINK_ELEMENT_QUERIES)
        if isinstance(link_node, etree._Element):
            if _is_non_page_link(link_node):
                link = _first_page_link(node)
            else:
                link = get_attribute(link_node, "href")
    return blank_to_none(link)
