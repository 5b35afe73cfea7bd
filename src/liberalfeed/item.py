from __future__ import annotations

import copy as _copy
import datetime
import logging
import re
import weakref
from typing import TYPE_CHECKING, Any, Optional, Union

from lxml import etree

from . import extraction as ex
from .config import DEFAULT_CONFIGURATION, Configuration
from .dates import parse_time, utcnow
from .document import parse_document
from .errors import MultipleParentFeedsError
from .models import (
    Author,
    Category,
    Enclosure,
    EnclosureCredit,
    EnclosureHash,
    EnclosurePlayer,
    EnclosureThumbnail,
    Image,
    Link,
    cached_field,
)
from .text import sanitize_html, unescape_entities
from .urls import normalize_url
from .xpath import DEFAULT_RESOLVER, Resolver, get_attribute, inner_xml

if TYPE_CHECKING:
    from .feed import Feed

logger = logging.getLogger(__name__)

_RE_TAG_RESOURCE = re.compile(r"/(tag|tags)/(\w+)$")
_RE_DIGITS = re.compile(r"\s*\d")

ITUNES_STORE_SCHEME = "http://www.apple.com/itunes/store/"
ITUNES_STORE_LABEL = "iTunes Music Store Categories"

_TIME_QUERIES = (
    ex.UPDATED_QUERIES
    + ("time/text()", "lastBuildDate/text()")
    + ex.ISSUED_QUERIES
    + ex.PUBLISHED_QUERIES
    + ("pubDate/text()", "dc:date/text()", "date/text()")
)
_UPDATED_QUERIES = ex.UPDATED_QUERIES + ("lastBuildDate/text()",)
_PUBLISHED_QUERIES = (
    ex.ISSUED_QUERIES
    + ex.PUBLISHED_QUERIES
    + ("pubDate/text()", "dc:date/text()", "date/text()")
)
_LINK_QUERIES = (
    "atom10:link[@type='application/xhtml+xml']/@href",
    "atom10:link[@type='text/html']/@href",
    "atom10:link[@rel='alternate']/@href",
    "atom03:link[@type='application/xhtml+xml']/@href",
    "atom03:link[@type='text/html']/@href",
    "atom03:link[@rel='alternate']/@href",
    "atom:link[@type='application/xhtml+xml']/@href",
    "atom:link[@type='text/html']/@href",
    "atom:link[@rel='alternate']/@href",
    "link[@type='application/xhtml+xml']/@href",
    "link[@type='text/html']/@href",
    "link[@rel='alternate']/@href",
    "link/text()",
    "@rdf:about",
    "guid[@isPermaLink='true']/text()",
    "@href",
    "a/@href",
)
_CONTENT_QUERIES = (
    "atom10:content",
    "atom03:content",
    "atom:content",
    "content:encoded",
    "content",
    "fullitem",
    "xhtml:body",
    "body",
    "encoded",
    "description",
    "tagline",
    "subtitle",
    "atom10:summary",
    "atom03:summary",
    "atom:summary",
    "summary",
    "abstract",
    "blurb",
    "info",
)
_SUMMARY_QUERIES = (
    "atom10:summary",
    "atom03:summary",
    "atom:summary",
    "summary",
    "abstract",
    "blurb",
    "description",
    "tagline",
    "subtitle",
    "fullitem",
    "xhtml:body",
    "body",
    "content:encoded",
    "encoded",
    "atom10:content",
    "atom03:content",
    "atom:content",
    "content",
    "info",
)
_ATOM_ENCLOSURE_QUERIES = (
    "atom10:link[@rel='enclosure']",
    "atom03:link[@rel='enclosure']",
    "atom:link[@rel='enclosure']",
    "link[@rel='enclosure']",
)
_MEDIA_NUMBERS = (
    ("file_size", "fileSize"),
    ("duration", "duration"),
    ("height", "height"),
    ("width", "width"),
    ("bitrate", "bitrate"),
    ("framerate", "framerate"),
)


def _attr(element: etree._Element, name: str) -> Optional[str]:
    return ex.blank_to_none(unescape_entities(get_attribute(element, name)))


class FeedItem:
    """One entry of a feed.

    Fields are resolved lazily from the entry's element and cached. Assigning a
    field replaces that field only. An item created by a :class:`Feed` keeps a
    weak reference to it, which is used for the feed-level fallbacks and for
    estimating a missing timestamp from the neighbouring entries.
    """

    def __init__(
        self,
        feed_data: Union[str, bytes, None] = None,
        config: Optional[Configuration] = None,
        resolver: Optional[Resolver] = None,
        node: Optional[etree._Element] = None,
    ) -> None:
        self.config = config or DEFAULT_CONFIGURATION
        self.resolver = resolver or (
            Resolver(self.config.namespaces) if self.config.namespaces else DEFAULT_RESOLVER
        )
        self.feed_data_type = "xml"
        self._values: dict[str, Any] = {}
        self._owner: Optional[weakref.ReferenceType] = None
        self._node = node
        self._feed_data = feed_data
        if node is None and feed_data is not None:
            self._node = self._parse(feed_data)

    def __repr__(self) -> str:
        return f"<FeedItem link={self.link!r}>"

    @staticmethod
    def _parse(feed_data: Union[str, bytes]) -> Optional[etree._Element]:
        if isinstance(feed_data, bytes):
            feed_data = feed_data.decode("utf-8", errors="replace")
        tree = parse_document(feed_data)
        return tree.getroot() if tree is not None else None

    @property
    def feed_data(self) -> Optional[str]:
        if self._feed_data is None and self._node is not None:
            return etree.tostring(self._node, encoding="unicode", with_tail=False)
        if isinstance(self._feed_data, bytes):
            return self._feed_data.decode("utf-8", errors="replace")
        return self._feed_data

    @feed_data.setter
    def feed_data(self, value: Union[str, bytes, None]) -> None:
        self._feed_data = value
        self._node = self._parse(value) if value is not None else None
        self._values.clear()

    @property
    def root_node(self) -> Optional[etree._Element]:
        return self._node

    @property
    def feed(self) -> Optional["Feed"]:
        """The feed this item is attached to, if it is still alive."""
        if self._owner is None:
            return None
        return self._owner()

    def _attach(self, feed: "Feed") -> None:
        owner = self.feed
        if owner is not None and owner is not feed:
            raise MultipleParentFeedsError(
                "This entry already belongs to another feed. Attach a copy() instead."
            )
        self._owner = weakref.ref(feed)

    def _detach(self, feed: "Feed") -> None:
        if self.feed is feed:
            self._owner = None

    @property
    def _feed_type(self) -> Optional[str]:
        owner = self.feed
        return owner.feed_type if owner is not None else None

    def find_node(self, path: str, select_value: bool = False):
        return self.resolver.first(self.root_node, [path], select_value=select_value)

    def find_all_nodes(self, path: str, select_value: bool = False):
        return self.resolver.all(self.root_node, [path], select_value=select_value)

    def copy(self) -> "FeedItem":
        """Return an unowned item over a copy of the same data and field values."""
        node = _copy.deepcopy(self._node) if self._node is not None else None
        duplicate = FeedItem(config=self.config, resolver=self.resolver, node=node)
        duplicate._feed_data = self._feed_data
        duplicate._values = _copy.deepcopy(self._values)
        return duplicate

    @cached_field
    def id(self) -> Optional[str]:
        return ex.first_string(self.resolver, self.root_node, ex.ID_QUERIES)

    guid = id

    @cached_field
    def title(self) -> Optional[str]:
        return ex.text_construct(
            self.resolver,
            self.root_node,
            ex.TITLE_QUERIES,
            self._feed_type,
            self.config,
            is_title=True,
        )

    @cached_field
    def itunes_summary(self) -> Optional[str]:
        return ex.itunes_text(
            self.resolver, [self.root_node], "itunes:summary/text()", self.config
        )

    @cached_field
    def itunes_subtitle(self) -> Optional[str]:
        return ex.itunes_text(
            self.resolver, [self.root_node], "itunes:subtitle/text()", self.config
        )

    @cached_field
    def media_text(self) -> Optional[str]:
        return ex.itunes_text(self.resolver, [self.root_node], "media:text/text()", self.config)

    @cached_field
    def content(self) -> Optional[str]:
        return (
            ex.text_construct(
                self.resolver, self.root_node, _CONTENT_QUERIES, self._feed_type, self.config
            )
            or self.itunes_summary
            or self.itunes_subtitle
        )

    @cached_field
    def summary(self) -> Optional[str]:
        return (
            ex.text_construct(
                self.resolver, self.root_node, _SUMMARY_QUERIES, self._feed_type, self.config
            )
            or self.itunes_summary
            or self.itunes_subtitle
        )

    description = summary
    abstract = summary

    @cached_field
    def copyright(self) -> Optional[str]:
        return ex.text_construct(
            self.resolver, self.root_node, ex.COPYRIGHT_QUERIES, self._feed_type, self.config
        )

    @cached_field
    def link(self) -> Optional[str]:
        link = ex.extract_link(self.resolver, self.root_node, _LINK_QUERIES, self.id)
        if not link:
            link = self.comments
        if link and self.config.url_normalization_enabled:
            link = normalize_url(link)
        return link

    @cached_field
    def comments(self) -> Optional[str]:
        comments = ex.first_string(self.resolver, self.root_node, ["comments/text()"])
        if comments and self.config.url_normalization_enabled:
            comments = normalize_url(comments)
        return comments

    @cached_field
    def source(self) -> Link:
        return Link(
            url=ex.first_string(self.resolver, self.root_node, ["source/@url"]),
            value=ex.first_string(self.resolver, self.root_node, ["source/text()"]),
        )

    @cached_field
    def categories(self) -> list[Category]:
        return ex.extract_categories(self.resolver, self.root_node)

    @cached_field
    def images(self) -> list[Image]:
        return ex.extract_images(self.resolver, self.root_node, self.link)

    @cached_field
    def itunes_image_link(self) -> Optional[str]:
        link = ex.first_string(
            self.resolver,
            self.root_node,
            ["itunes:image/@href", "itunes:link[@rel='image']/@href"],
        )
        if link and self.config.url_normalization_enabled:
            link = normalize_url(link)
        return link

    @cached_field
    def media_thumbnail_link(self) -> Optional[str]:
        link = ex.first_string(self.resolver, self.root_node, ["media:thumbnail/@url"])
        if link and self.config.url_normalization_enabled:
            link = normalize_url(link)
        return link

    @cached_field
    def author(self) -> Author:
        author = ex.extract_person(
            self.resolver, self.root_node, ex.AUTHOR_QUERIES + ("creator",)
        )
        if not author.name:
            author.name = self.itunes_author
        return author

    @author.coercer
    def author(self, value: Union[Author, str, None]) -> Author:
        return value if isinstance(value, Author) else Author(name=value)

    @cached_field
    def publisher(self) -> Author:
        return ex.extract_publisher(self.resolver, self.root_node)

    @publisher.coercer
    def publisher(self, value: Union[Author, str, None]) -> Author:
        return value if isinstance(value, Author) else Author(name=value)

    @cached_field
    def itunes_author(self) -> Optional[str]:
        author = ex.blank_to_none(
            unescape_entities(
                ex.first_string(self.resolver, self.root_node, ["itunes:author/text()"])
            )
        )
        if author is None and self.feed is not None:
            author = self.feed.itunes_author
        return author

    @cached_field
    def itunes_duration(self) -> Optional[int]:
        """Running time of the attached media in seconds."""
        raw = unescape_entities(
            ex.first_string(self.resolver, self.root_node, ["itunes:duration/text()"])
        )
        if not raw:
            return None
        pieces = raw.split(":")
        if len(pieces) > 3 or not all(_RE_DIGITS.match(piece) for piece in pieces):
            return None
        seconds = 0
        for piece in pieces:
            seconds = seconds * 60 + ex.to_int(piece)
        return seconds or None

    @cached_field
    def updated(self) -> Optional[datetime.datetime]:
        return ex.parse_timestamp(self.resolver, self.root_node, _UPDATED_QUERIES)

    @cached_field
    def published(self) -> Optional[datetime.datetime]:
        return ex.parse_timestamp(self.resolver, self.root_node, _PUBLISHED_QUERIES)

    @property
    def explicit_time(self) -> Optional[datetime.datetime]:
        """The item's own timestamp, never an estimate.

        A title that is itself a date far from the current time counts as the
        timestamp when estimation is enabled.
        """
        if "explicit_time" in self._values:
            return self._values["explicit_time"]
        found = ex.parse_timestamp(self.resolver, self.root_node, _TIME_QUERIES)
        if found is None and self.config.timestamp_estimation_enabled and self.title:
            from_title = parse_time(self.title, strict=True)
            if (
                from_title is not None
                and abs((from_title - utcnow()).total_seconds()) > 100
            ):
                found = from_title
        self._values["explicit_time"] = found
        return found

    @property
    def time(self) -> Optional[datetime.datetime]:
        if "time" in self._values:
            return self._values["time"]
        found = self.explicit_time
        if found is None and self.config.timestamp_estimation_enabled:
            found = self._estimate_time()
        self._values["time"] = found
        return found

    @time.setter
    def time(self, value: Optional[datetime.datetime]) -> None:
        self._values["time"] = value
        self._values["explicit_time"] = value

    def _estimate_time(self) -> datetime.datetime:
        owner = self.feed
        if owner is not None:
            siblings = owner.unsorted_entries
            index = next(
                (i for i, sibling in enumerate(siblings) if sibling is self), None
            )
            if index is not None:
                if index > 0:
                    previous = siblings[index - 1].explicit_time
                    if previous is not None:
                        return previous + datetime.timedelta(seconds=1)
                if index < len(siblings) - 1:
                    following = siblings[index + 1].explicit_time
                    if following is not None:
                        return following - datetime.timedelta(seconds=1)
        return utcnow()

    @cached_field
    def tags(self) -> list[str]:
        """Lower-cased, de-duplicated tags from the first source that has any."""
        tags = self._bag_tags() or self._taxonomy_tags()
        if not tags:
            tags = [
                value.lower().strip()
                for value in self.resolver.all(
                    self.root_node,
                    ["category/text()", "category/@term"],
                    select_value=True,
                )
                if isinstance(value, str)
            ]
        if not tags:
            tags = [
                value.lower().strip()
                for value in self.resolver.all(
                    self.root_node, ["dc:subject/text()"], select_value=True
                )
                if isinstance(value, str)
            ]
        if not tags:
            tags = self._itunes_keywords()
        return list(dict.fromkeys(tag for tag in tags if tag))

    def _bag_tags(self) -> list[str]:
        return [
            value.lower().strip()
            for value in self.resolver.all(
                self.root_node, ["dc:subject/rdf:Bag/rdf:li/text()"], select_value=True
            )
            if isinstance(value, str)
        ]

    def _taxonomy_tags(self) -> list[str]:
        tags = []
        for tag_node in self.resolver.all(self.root_node, ["taxo:topics/rdf:Bag/rdf:li"]):
            resource = ex.first_string(self.resolver, tag_node, ["@resource"])
            match = _RE_TAG_RESOURCE.search(resource or "")
            if match:
                tags.append(match.group(2).lower().strip())
        return tags

    def _itunes_keywords(self) -> list[str]:
        keywords = ex.first_string(self.resolver, self.root_node, ["itunes:keywords/text()"])
        if not keywords:
            return []
        keywords = keywords.lower()
        tags = keywords.split(",")
        if len(tags) == 1:
            tags = [tag.rstrip(",") for tag in keywords.split()]
        if len(tags) == 1:
            tags = keywords.split(",")
        return [tag.strip() for tag in tags]

    @cached_field
    def explicit(self) -> bool:
        """True when the item or its feed is marked explicit."""
        flag = ex.first_string(self.resolver, self.root_node, ex.EXPLICIT_QUERIES)
        if ex.is_true_flag(flag):
            return True
        owner = self.feed
        return bool(owner is not None and owner.explicit)

    @explicit.coercer
    def explicit(self, value: Any) -> bool:
        return bool(value)

    @cached_field
    def enclosures(self) -> list[Enclosure]:
        enclosures: list[Enclosure] = []
        root = self.root_node

        def find_or_create(url: Optional[str]) -> Enclosure:
            for existing in enclosures:
                if existing.url == url:
                    return existing
            enclosure = Enclosure(url)
            enclosures.append(enclosure)
            return enclosure

        for node in self.resolver.all(root, ["enclosure"]):
            enclosure = Enclosure(_attr(node, "url"), _attr(node, "type"))
            enclosure.file_size = ex.to_int(get_attribute(node, "length"))
            enclosures.append(enclosure)

        for node in self.resolver.all(root, _ATOM_ENCLOSURE_QUERIES):
            enclosure = find_or_create(_attr(node, "href"))
            enclosure.type = _attr(node, "type") or enclosure.type
            enclosure.file_size = (
                ex.to_int(get_attribute(node, "length")) or enclosure.file_size
            )

        for node in self.resolver.all(root, ["media:content"]):
            self._read_media_content(node, find_or_create(_attr(node, "url")))

        groups: list[list[Enclosure]] = []
        for group in self.resolver.all(root, ["media:group"]):
            members = []
            for node in self.resolver.all(group, ["media:content"]):
                enclosure = find_or_create(_attr(node, "url"))
                self._read_media_content(node, enclosure)
                self._inherit_from_group(group, enclosure)
                if enclosure not in members:
                    members.append(enclosure)
            if members:
                groups.append(members)

        if self.explicit:
            for enclosure in enclosures:
                enclosure.explicit = True

        self._add_itunes_categories(enclosures)

        for enclosure in enclosures:
            if not enclosure.text:
                enclosure.text = self.itunes_summary
            unique: list[Category] = []
            for category in enclosure.categories:
                if category not in unique:
                    unique.append(category)
            enclosure.categories = unique

        grouped = {id(member) for members in groups for member in members}
        enclosures = [enclosure for enclosure in enclosures if id(enclosure) not in grouped]
        for members in groups:
            default = next((member for member in members if member.is_default), None)
            if default is None:
                logger.debug("Media group without a default, using its first member")
                default = members[0]
            for member in members:
                member.default_version = default
                member.versions = [other for other in members if other is not member]
            enclosures.append(default)

        if len(enclosures) == 1 and enclosures[0].duration is None:
            enclosures[0].duration = self.itunes_duration
        return enclosures

    def _read_media_content(self, node: etree._Element, enclosure: Enclosure) -> None:
        resolver = self.resolver
        enclosure.type = _attr(node, "type") or enclosure.type
        for name, attribute in _MEDIA_NUMBERS:
            value = ex.to_int(get_attribute(node, attribute))
            if value:
                setattr(enclosure, name, value)
        expression = _attr(node, "expression")
        try:
            enclosure.expression = expression.lower() if expression else None
        except ValueError:
            logger.debug("Ignoring unknown media expression %r", expression)
            enclosure.expression = None
        enclosure.is_default = (get_attribute(node, "isDefault") or "").lower() == "true"
        enclosure.thumbnail = self._thumbnail(node) or enclosure.thumbnail
        enclosure.categories = self._media_categories(node)
        media_hash = ex.first_string(resolver, node, ["media:hash/text()"])
        if media_hash:
            enclosure.hash = EnclosureHash(
                sanitize_html(unescape_entities(media_hash), "strip"),
                (get_attribute(resolver.first(node, "media:hash"), "algo") or "md5").lower(),
            )
        enclosure.player = self._player(node) or enclosure.player
        enclosure.credits = self._credits(node)
        adult = ex.first_string(resolver, node, ["media:adult/text()"])
        if adult is not None:
            enclosure.explicit = adult.lower() == "true"
        text = ex.first_string(resolver, node, ["media:text/text()"])
        if text:
            enclosure.text = unescape_entities(text)

    def _inherit_from_group(self, group: etree._Element, enclosure: Enclosure) -> None:
        resolver = self.resolver
        if enclosure.thumbnail is None:
            enclosure.thumbnail = self._thumbnail(group)
        if not enclosure.categories:
            enclosure.categories = self._media_categories(group)
        if enclosure.hash is None:
            media_hash = ex.first_string(resolver, group, ["media:hash/text()"])
            if media_hash:
                enclosure.hash = EnclosureHash(
                    sanitize_html(unescape_entities(media_hash), "strip"), "md5"
                )
        if enclosure.player is None:
            enclosure.player = self._player(group)
        if not enclosure.credits:
            enclosure.credits = self._credits(group)
        if enclosure.explicit is None:
            adult = ex.first_string(resolver, group, ["media:adult/text()"])
            enclosure.explicit = bool(adult and adult.lower() == "true")
        if not enclosure.text:
            text = ex.first_string(resolver, group, ["media:text/text()"])
            if text:
                enclosure.text = sanitize_html(unescape_entities(text), "strip")

    def _thumbnail(self, node: etree._Element) -> Optional[EnclosureThumbnail]:
        url = ex.first_string(self.resolver, node, ["media:thumbnail/@url"])
        if not url:
            return None
        return EnclosureThumbnail(
            unescape_entities(url),
            unescape_entities(ex.first_string(self.resolver, node, ["media:thumbnail/@height"])),
            unescape_entities(ex.first_string(self.resolver, node, ["media:thumbnail/@width"])),
        )

    def _player(self, node: etree._Element) -> Optional[EnclosurePlayer]:
        url = ex.first_string(self.resolver, node, ["media:player/@url"])
        if not url:
            return None
        return EnclosurePlayer(
            unescape_entities(url),
            unescape_entities(ex.first_string(self.resolver, node, ["media:player/@height"])),
            unescape_entities(ex.first_string(self.resolver, node, ["media:player/@width"])),
        )

    def _media_categories(self, node: etree._Element) -> list[Category]:
        return [
            Category(
                term=ex.blank_to_none(unescape_entities(inner_xml(category))),
                scheme=_attr(category, "scheme"),
                label=_attr(category, "label"),
            )
            for category in self.resolver.all(node, ["media:category"])
            if isinstance(category, etree._Element)
        ]

    def _credits(self, node: etree._Element) -> list[EnclosureCredit]:
        credits = []
        for credit in self.resolver.all(node, ["media:credit"]):
            if not isinstance(credit, etree._Element):
                continue
            role = get_attribute(credit, "role")
            credits.append(
                EnclosureCredit(
                    ex.blank_to_none(unescape_entities(inner_xml(credit))),
                    ex.blank_to_none(unescape_entities(role.lower())) if role else None,
                )
            )
        return credits

    def _add_itunes_categories(self, enclosures: list[Enclosure]) -> None:
        for itunes_category in self.resolver.all(self.root_node, ["itunes:category"]):
            if not isinstance(itunes_category, etree._Element):
                continue
            path = "Podcasts"
            category = ex.blank_to_none(get_attribute(itunes_category, "text"))
            subcategory = ex.first_string(
                self.resolver, itunes_category, ["itunes:category/@text"]
            )
            if category:
                path += "/" + category
            if subcategory:
                path += "/" + subcategory
            for enclosure in enclosures:
                enclosure.categories.append(
                    Category(
                        term=unescape_entities(path),
                        scheme=ITUNES_STORE_SCHEME,
                        label=ITUNES_STORE_LABEL,
                    )
                )
