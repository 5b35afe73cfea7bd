from __future__ import annotations

import datetime
import logging
import re
from typing import Any, Iterable, Optional, Union
from urllib.parse import urlparse

from lxml import etree

from . import extraction as ex
from .cache import CachedFeed, FeedCache, dump_headers, load_headers
from .config import DEFAULT_CONFIGURATION, Configuration
from .dates import EPOCH, ensure_utc, utcnow
from .document import decode_feed_data, parse_document, sniff_encoding
from .errors import CacheError, CacheNotConfiguredError, FeedAccessError
from .item import FeedItem
from .models import Author, Category, Cloud, Image, TextInput, cached_field
from .retrieval import HttpRetriever, Retriever
from .serializer import render
from .text import strip_html, unescape_entities
from .urls import is_uri, normalize_url
from .xpath import DEFAULT_RESOLVER, Resolver, get_attribute, local_name

logger = logging.getLogger(__name__)

_RE_CHARSET = re.compile(r"charset\s*=\s*[\"']?([\w.\-:]+)", re.IGNORECASE)

MIN_TIME_TO_LIVE = 30 * 60
DEFAULT_TIME_TO_LIVE = 60 * 60

_PERIOD_SECONDS = {
    "hourly": 3600,
    "daily": 86400,
    "weekly": 604800,
    "monthly": 2592000,
    "yearly": 31557600,
}
_SPAN_SECONDS = {
    "seconds": 1,
    "minutes": 60,
    "hours": 3600,
    "days": 86400,
    "weeks": 604800,
    "months": 2592000,
    "years": 31557600,
}
_SCHEDULE_SECONDS = (("DAY", 86400), ("HOUR", 3600), ("MIN", 60), ("SEC", 1))

_URL_QUERIES = (
    "link[@rel='self']/@href",
    "atom10:link[@rel='self']/@href",
    "atom03:link[@rel='self']/@href",
    "atom:link[@rel='self']/@href",
    "admin:feed/@rdf:resource",
    "admin:feed/@resource",
    "feed/@rdf:resource",
    "feed/@resource",
    "@rdf:about",
    "@about",
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
    "@href",
    "a/@href",
)
_SUBTITLE_QUERIES = (
    "atom10:subtitle",
    "subtitle",
    "atom03:tagline",
    "tagline",
    "description",
    "summary",
    "abstract",
    "ABSTRACT",
    "content:encoded",
    "encoded",
    "content",
    "xhtml:body",
    "body",
    "blurb",
    "info",
)
_ICON_QUERIES = (
    "link[@rel='icon']",
    "link[@rel='shortcut icon']",
    "link[@type='image/x-icon']",
    "icon",
    "logo[@style='icon']",
    "LOGO[@STYLE='ICON']",
)
_TIME_QUERIES = (
    ex.UPDATED_QUERIES
    + ("time/text()",)
    + ex.ISSUED_QUERIES
    + ex.PUBLISHED_QUERIES
    + ("pubDate/text()", "dc:date/text()", "date/text()")
)
_PUBLISHED_QUERIES = ex.PUBLISHED_QUERIES + (
    "pubDate/text()",
) + ex.ISSUED_QUERIES + ("dc:date/text()",)
_ATOM_ENTRY_QUERIES = ("atom10:entry", "atom03:entry", "atom:entry", "entry")
_RSS_ITEM_QUERIES = ("rss10:item", "item")

_RSS_VERSION_BY_NAMESPACE = {
    "http://my.netscape.com/rdf/simple/0.9/": 0.9,
    "http://purl.org/rss/1.0/": 1.0,
    "http://purl.org/net/rss1.1#": 1.1,
}


def _entry_sort_key(entry: FeedItem) -> datetime.datetime:
    time = entry.time
    return (ensure_utc(time) if time is not None else None) or EPOCH


class Feed:
    """A parsed feed with lazily resolved, individually overridable fields.

    A feed is built from raw data (``Feed(data)``) or opened from a url with
    :meth:`Feed.open`, which consults ``cache`` and only retrieves the
    document when the cached copy has expired.
    """

    def __init__(
        self,
        feed_data: Union[str, bytes, None] = None,
        url: Optional[str] = None,
        config: Optional[Configuration] = None,
        cache: Optional[FeedCache] = None,
        retriever: Optional[Retriever] = None,
        http_headers: Optional[dict[str, str]] = None,
    ) -> None:
        self.config = config or DEFAULT_CONFIGURATION
        self.resolver = (
            Resolver(self.config.namespaces) if self.config.namespaces else DEFAULT_RESOLVER
        )
        self.cache = cache
        self.retriever = retriever or HttpRetriever()
        self.feed_data_type = "xml"
        self.live = False
        self._values: dict[str, Any] = {}
        self._feed_data = feed_data
        self._url = normalize_url(url) if url else None
        self._http_headers = (
            {key.lower(): value for key, value in http_headers.items()}
            if http_headers
            else None
        )
        self._cache_object: Optional[CachedFeed] = None
        self._last_retrieved: Optional[datetime.datetime] = None
        self._entries: Optional[list[FeedItem]] = None

    def __repr__(self) -> str:
        return f"<Feed url={self.url!r} title={self.title!r}>"

    @classmethod
    def open(
        cls,
        url: str,
        cache_only: bool = False,
        config: Optional[Configuration] = None,
        cache: Optional[FeedCache] = None,
        retriever: Optional[Retriever] = None,
    ) -> "Feed":
        """Load the feed at ``url``, from the cache while it has not expired.

        Raises:
            CacheNotConfiguredError: ``cache_only`` was requested without a cache.
            FeedAccessError: The feed could not be retrieved and nothing was cached.
        """
        if cache_only and cache is None:
            raise CacheNotConfiguredError(
                "There is currently no caching mechanism set. Cannot retrieve cached feeds."
            )
        feed = cls(url=url, config=config, cache=cache, retriever=retriever)
        if not cache_only:
            feed.update()
        return feed

    # Raw data and caching

    @property
    def feed_data(self) -> Union[str, bytes, None]:
        if self._feed_data is None:
            cache_object = self.cache_object
            if cache_object is not None:
                return cache_object.feed_data
        return self._feed_data

    @feed_data.setter
    def feed_data(self, value: Union[str, bytes, None]) -> None:
        self._http_headers = None
        self._cache_object = None
        self._url = None
        self._replace_data(value)

    def _replace_data(self, value: Union[str, bytes, None]) -> None:
        self._feed_data = value
        self._values.clear()
        for entry in self._entries or ():
            entry._detach(self)
        self._entries = None

    @property
    def http_headers(self) -> dict[str, str]:
        """Response headers of the last retrieval, with lower-cased names."""
        if not self._http_headers:
            cache_object = self.cache_object
            self._http_headers = (
                load_headers(cache_object.http_headers) if cache_object is not None else {}
            )
        return self._http_headers

    @http_headers.setter
    def http_headers(self, value: Optional[dict[str, str]]) -> None:
        self._http_headers = {key.lower(): val for key, val in (value or {}).items()}

    @property
    def cache_object(self) -> Optional[CachedFeed]:
        """The cache record for this feed. None without a cache or for file urls."""
        if self._url is not None and self._url.startswith("file://"):
            return None
        if self.cache is None:
            return None
        if self._cache_object is None:
            record = None
            if self._url is not None:
                try:
                    record = self.cache.load(self._url)
                except CacheError as e:
                    logger.warning("Ignoring unreadable cache record: %s", e)
            self._cache_object = record or CachedFeed(url=self._url)
        return self._cache_object

    @cache_object.setter
    def cache_object(self, value: Optional[CachedFeed]) -> None:
        self._cache_object = value

    def _mirror_field(self, name: str, value: Any) -> None:
        cache_object = self.cache_object
        if cache_object is not None:
            setattr(cache_object, name, value)

    @property
    def last_retrieved(self) -> Optional[datetime.datetime]:
        cache_object = self.cache_object
        if cache_object is not None:
            self._last_retrieved = cache_object.last_retrieved
        return self._last_retrieved

    @last_retrieved.setter
    def last_retrieved(self, value: Optional[datetime.datetime]) -> None:
        self._last_retrieved = value
        cache_object = self.cache_object
        if cache_object is not None:
            cache_object.last_retrieved = value

    @property
    def encoding(self) -> str:
        """The Content-Type charset if one was sent, else what the data declares."""
        match = _RE_CHARSET.search(self.http_headers.get("content-type", ""))
        if match:
            return match.group(1).lower()
        return self.encoding_from_xml_data

    @property
    def encoding_from_xml_data(self) -> str:
        data = self.feed_data
        if data is None:
            return "utf-8"
        if isinstance(data, str):
            data = data[:2000].encode("utf-8", errors="replace")
        return sniff_encoding(data)

    @cached_field
    def feed_data_utf_8(self) -> Optional[str]:
        return decode_feed_data(self.feed_data, self.encoding)

    @cached_field
    def xml(self) -> Optional[etree._ElementTree]:
        tree = parse_document(self.feed_data_utf_8)
        if tree is None and self.feed_data is not None:
            logger.debug("Feed data for %s could not be parsed", self._url)
        return tree

    @property
    def root_node(self) -> Optional[etree._Element]:
        tree = self.xml
        return tree.getroot() if tree is not None else None

    @cached_field
    def channel_node(self) -> Optional[etree._Element]:
        root = self.root_node
        if root is None:
            return None
        channel = self.resolver.first(root, ["channel", "CHANNEL", "feedinfo"])
        return channel if isinstance(channel, etree._Element) else root

    def find_node(self, path: str, select_value: bool = False):
        return self.resolver.first(self.channel_node, [path], select_value=select_value)

    def find_all_nodes(self, path: str, select_value: bool = False):
        return self.resolver.all(self.channel_node, [path], select_value=select_value)

    # Detection

    @cached_field
    def feed_type(self) -> Optional[str]:
        root = self.root_node
        if root is None:
            return None
        name = local_name(root).lower()
        if name == "feed":
            return "atom"
        if name in ("rdf", "rss"):
            return "rss"
        if name == "channel":
            return "cdf"
        return None

    @cached_field
    def feed_version(self) -> Optional[float]:
        """Version of :attr:`feed_type`, e.g. 1.0 for Atom 1.0 or 2.0 for RSS 2.0.

        The Netscape and Userland flavours of RSS 0.91 are not told apart.
        """
        root = self.root_node
        if root is None:
            return None
        version = ex.to_float(get_attribute(root, "version")) or None
        default_namespace = root.nsmap.get(None)
        feed_type = self.feed_type
        if feed_type == "atom":
            if default_namespace == "http://www.w3.org/2005/Atom":
                return 1.0
            if version is not None:
                return version
            if default_namespace == "http://purl.org/atom/ns#":
                return 0.3
            return None
        if feed_type == "rss":
            if default_namespace in _RSS_VERSION_BY_NAMESPACE:
                return _RSS_VERSION_BY_NAMESPACE[default_namespace]
            if version in (2.01, 2.1):
                return 2.0
            return version
        if feed_type == "cdf":
            return 0.4
        return None

    # Identity and links

    @cached_field
    def id(self) -> Optional[str]:
        return ex.first_string_of(
            self.resolver, [self.channel_node, self.root_node], ex.ID_QUERIES
        )

    guid = id

    def _needs_url(self, value: Optional[str]) -> bool:
        if value is not None and urlparse(value).scheme in ("http", "https"):
            return False
        return self.feed_data is not None

    @property
    def url(self) -> Optional[str]:
        """The feed's own url.

        When the known url is missing or not http(s), the document's self
        link, admin:feed or rdf:about is used instead, unless that turns out to
        be the page link.
        """
        original = self._url
        if self._needs_url(original):
            derived = self.resolver.first(
                self.channel_node,
                _URL_QUERIES,
                select_value=True,
                is_blank=lambda value: self._needs_url(normalize_url(value)),
            )
            derived = normalize_url(derived) if isinstance(derived, str) else None
            if derived is None or derived == self.link:
                derived = original
            self._url = derived
        return self._url

    @url.setter
    def url(self, value: Optional[str]) -> None:
        self._url = normalize_url(value) if value else None
        if self._cache_object is not None:
            self._cache_object.url = self._url

    @cached_field(mirror=True)
    def link(self) -> Optional[str]:
        link = ex.extract_link(
            self.resolver, self.channel_node, _LINK_QUERIES, self.id, use_base=True
        )
        if link and self.config.url_normalization_enabled:
            link = normalize_url(link)
        return link

    @cached_field
    def icon(self) -> Optional[str]:
        node = self.resolver.first(self.channel_node, _ICON_QUERIES)
        if not isinstance(node, etree._Element):
            return None
        icon = ex.blank_to_none(unescape_entities(get_attribute(node, "href")))
        if icon is None:
            icon = ex.blank_to_none(unescape_entities(node.text))
            if not is_uri(icon):
                icon = None
        return icon

    @cached_field
    def favicon(self) -> Optional[str]:
        """``http://{host}/favicon.ico`` for the link, else for the feed url."""
        if not self.link:
            return None
        for candidate in (self.link, self.url):
            if not candidate:
                continue
            parsed = urlparse(normalize_url(candidate) or "")
            if parsed.scheme == "http" and parsed.hostname:
                return f"http://{parsed.hostname}/favicon.ico"
        return None

    # Text

    @cached_field(mirror=True)
    def title(self) -> Optional[str]:
        return ex.text_construct(
            self.resolver,
            self.channel_node,
            ex.TITLE_QUERIES,
            self.feed_type,
            self.config,
            is_title=True,
        )

    @cached_field
    def itunes_summary(self) -> Optional[str]:
        return ex.itunes_text(
            self.resolver, [self.channel_node], "itunes:summary/text()", self.config
        )

    @cached_field
    def itunes_subtitle(self) -> Optional[str]:
        return ex.itunes_text(
            self.resolver, [self.channel_node], "itunes:subtitle/text()", self.config
        )

    @cached_field
    def subtitle(self) -> Optional[str]:
        return (
            ex.text_construct(
                self.resolver,
                self.channel_node,
                _SUBTITLE_QUERIES,
                self.feed_type,
                self.config,
            )
            or self.itunes_summary
            or self.itunes_subtitle
        )

    tagline = subtitle
    description = subtitle
    abstract = subtitle
    content = subtitle

    @cached_field
    def copyright(self) -> Optional[str]:
        return ex.text_construct(
            self.resolver, self.channel_node, ex.COPYRIGHT_QUERIES, self.feed_type, self.config
        )

    @cached_field
    def generator(self) -> Optional[str]:
        return strip_html(ex.first_string(self.resolver, self.channel_node, ["generator/text()"]))

    @cached_field
    def docs(self) -> Optional[str]:
        return strip_html(ex.first_string(self.resolver, self.channel_node, ["docs/text()"]))

    @cached_field
    def language(self) -> str:
        language = ex.first_string(
            self.resolver,
            self.channel_node,
            [
                "language/text()",
                "dc:language/text()",
                "@dc:language",
                "@xml:lang",
                "xml:lang/text()",
            ],
        ) or ex.first_string(self.resolver, self.root_node, ["@xml:lang", "xml:lang/text()"])
        return (language or "en-us").lower()

    # People

    @cached_field
    def itunes_author(self) -> Optional[str]:
        return ex.blank_to_none(
            unescape_entities(
                ex.first_string(self.resolver, self.channel_node, ["itunes:author/text()"])
            )
        )

    @cached_field
    def author(self) -> Author:
        author = ex.extract_person(self.resolver, self.channel_node, ex.AUTHOR_QUERIES)
        if not author.name:
            author.name = self.itunes_author
        return author

    @author.coercer
    def author(self, value: Union[Author, str, None]) -> Author:
        return value if isinstance(value, Author) else Author(name=value)

    @cached_field
    def publisher(self) -> Author:
        return ex.extract_publisher(self.resolver, self.channel_node)

    @publisher.coercer
    def publisher(self, value: Union[Author, str, None]) -> Author:
        return value if isinstance(value, Author) else Author(name=value)

    # Timestamps

    @cached_field
    def time(self) -> Optional[datetime.datetime]:
        found = ex.parse_timestamp(self.resolver, self.channel_node, _TIME_QUERIES)
        if found is None and self.config.timestamp_estimation_enabled:
            found = utcnow()
        return found

    @cached_field
    def updated(self) -> Optional[datetime.datetime]:
        return ex.parse_timestamp(self.resolver, self.channel_node, ex.UPDATED_QUERIES)

    @cached_field
    def published(self) -> Optional[datetime.datetime]:
        return ex.parse_timestamp(self.resolver, self.channel_node, _PUBLISHED_QUERIES)

    # Structured fields

    @cached_field
    def categories(self) -> list[Category]:
        return ex.extract_categories(self.resolver, self.channel_node)

    @cached_field
    def images(self) -> list[Image]:
        return ex.extract_images(self.resolver, self.channel_node, self.link)

    @cached_field
    def text_input(self) -> TextInput:
        text_input = TextInput()
        node = self.resolver.first(self.channel_node, ["textInput"])
        if isinstance(node, etree._Element):
            text_input.title = ex.first_string(self.resolver, node, ["title/text()"])
            text_input.description = ex.first_string(
                self.resolver, node, ["description/text()"]
            )
            text_input.link = ex.first_string(self.resolver, node, ["link/text()"])
            text_input.name = ex.first_string(self.resolver, node, ["name/text()"])
        return text_input

    @cached_field
    def cloud(self) -> Cloud:
        channel = self.channel_node
        protocol = ex.first_string(self.resolver, channel, ["cloud/@protocol"])
        return Cloud(
            domain=ex.first_string(self.resolver, channel, ["cloud/@domain"]),
            port=ex.to_int(ex.first_string(self.resolver, channel, ["cloud/@port"])) or None,
            path=ex.first_string(self.resolver, channel, ["cloud/@path"]),
            register_procedure=ex.first_string(
                self.resolver, channel, ["cloud/@registerProcedure"]
            ),
            protocol=protocol.lower() if protocol else None,
        )

    @cached_field
    def explicit(self) -> bool:
        return ex.is_true_flag(
            ex.first_string(self.resolver, self.channel_node, ex.EXPLICIT_QUERIES)
        )

    @explicit.coercer
    def explicit(self, value: Any) -> bool:
        return bool(value)

    def _raw_time_to_live(self) -> Optional[int]:
        channel = self.channel_node
        if channel is None:
            return None
        frequency = ex.first_string(self.resolver, channel, ["syn:updateFrequency/text()"])
        if frequency:
            period = ex.first_string(self.resolver, channel, ["syn:updatePeriod/text()"])
            return ex.to_int(frequency) * _PERIOD_SECONDS.get(period or "", 3600)
        ttl = ex.first_string(self.resolver, channel, ["ttl/text()"])
        if ttl:
            span = ex.first_string(self.resolver, channel, ["ttl/@span"])
            return ex.to_int(ttl) * _SPAN_SECONDS.get(span or "", 60)
        total = 0
        for attribute, seconds in _SCHEDULE_SECONDS:
            value = ex.first_string(
                self.resolver, channel, [f"SCHEDULE/INTERVALTIME/@{attribute}"]
            )
            if value:
                total += ex.to_int(value) * seconds
        return total or None

    @property
    def time_to_live(self) -> int:
        """Seconds the feed may be cached.

        Unset reads as one hour. Declared values are kept between thirty
        minutes and ``config.max_ttl``.
        """
        if "time_to_live" not in self._values:
            self._values["time_to_live"] = self._raw_time_to_live()
        ttl = self._values["time_to_live"]
        if not ttl:
            return DEFAULT_TIME_TO_LIVE
        ttl = max(int(round(ttl)), MIN_TIME_TO_LIVE)
        if self.config.max_ttl and ttl > self.config.max_ttl:
            ttl = int(self.config.max_ttl)
        return ttl

    @time_to_live.setter
    def time_to_live(self, value: Union[int, float]) -> None:
        self._values["time_to_live"] = max(int(round(value)), DEFAULT_TIME_TO_LIVE)

    ttl = time_to_live

    # Entries

    def _entry_nodes(self) -> list[etree._Element]:
        channel = self.channel_node
        root = self.root_node
        for node, queries in (
            (channel, _ATOM_ENTRY_QUERIES),
            (root, _RSS_ITEM_QUERIES + _ATOM_ENTRY_QUERIES),
            (channel, _RSS_ITEM_QUERIES),
        ):
            found = [
                element
                for element in self.resolver.all(node, queries)
                if isinstance(element, etree._Element)
            ]
            if found:
                return found
        return []

    @property
    def unsorted_entries(self) -> list[FeedItem]:
        """Entries in reverse document order, as built from the document."""
        if self._entries is None:
            self._entries = []
            for node in reversed(self._entry_nodes()):
                entry = FeedItem(config=self.config, resolver=self.resolver, node=node)
                entry._attach(self)
                self._entries.append(entry)
        return self._entries

    @property
    def entries(self) -> list[FeedItem]:
        """Entries newest first. Entries without a time sort as 1970-01-01."""
        return sorted(self.unsorted_entries, key=_entry_sort_key, reverse=True)

    @entries.setter
    def entries(self, new_entries: Iterable[FeedItem]) -> None:
        new_entries = list(new_entries)
        for entry in new_entries:
            if not isinstance(entry, FeedItem):
                raise TypeError("You should only add FeedItem objects to the entries list.")
        for entry in new_entries:
            entry._attach(self)
        for entry in self._entries or ():
            if not any(entry is new_entry for new_entry in new_entries):
                entry._detach(self)
        self._entries = new_entries

    items = entries

    def append(self, entry: FeedItem) -> None:
        if not isinstance(entry, FeedItem):
            raise TypeError("You should only add FeedItem objects to the entries list.")
        entries = self.unsorted_entries
        entry._attach(self)
        entries.append(entry)

    @property
    def podcast(self) -> bool:
        """True if any entry carries an audio enclosure."""
        return any(
            enclosure.audio for entry in self.unsorted_entries for enclosure in entry.enclosures
        )

    @property
    def vidlog(self) -> bool:
        return any(
            enclosure.video for entry in self.unsorted_entries for enclosure in entry.enclosures
        )

    # Retrieval

    @property
    def expired(self) -> bool:
        last_retrieved = self.last_retrieved
        if last_retrieved is None:
            return True
        ttl = max(self.time_to_live, MIN_TIME_TO_LIVE)
        return ensure_utc(last_retrieved) + datetime.timedelta(seconds=ttl) < utcnow()

    def expire(self) -> None:
        """Force the next :meth:`update` to retrieve the feed."""
        self.last_retrieved = EPOCH
        self.save()

    def save(self) -> None:
        """Write the current state to the cache.

        Raises:
            CacheNotConfiguredError: The feed has no cache.
            ValueError: The feed has no url.
        """
        url = self.url
        if url is not None and url.startswith("file://"):
            return
        if self.cache is None:
            raise CacheNotConfiguredError(
                "Caching is currently disabled. Cannot save to cache."
            )
        if url is None:
            raise ValueError("The url field must be set to save to the cache.")
        record = self.cache_object
        record.url = url
        if self.feed_data is not None:
            record.title = self.title
            record.link = self.link
            record.feed_data = self.feed_data_utf_8
            record.feed_data_type = self.feed_data_type
        record.http_headers = dump_headers(self.http_headers)
        record.last_retrieved = self.last_retrieved
        self.cache.save(record)

    def update(self) -> "Feed":
        """Retrieve the feed if it has expired, keeping cached data otherwise."""
        if not self._http_headers and self.cache_object is not None:
            self._http_headers = load_headers(self.cache_object.http_headers)
        if not self.expired:
            self.live = False
            logger.debug("Using cached copy of %s", self._url)
            return self
        self._load_remote()
        return self

    def _load_remote(self) -> None:
        self.live = True
        url = self.url
        if url is None:
            self.live = False
            raise FeedAccessError("Cannot retrieve a feed without a url.")
        headers = {}
        http_headers = self.http_headers
        if http_headers.get("etag"):
            headers["If-None-Match"] = http_headers["etag"]
        if http_headers.get("last-modified"):
            headers["If-Modified-Since"] = http_headers["last-modified"]
        if self.config.user_agent:
            headers["User-Agent"] = self.config.user_agent

        try:
            result = self.retriever.retrieve(url, headers)
        except FeedAccessError as e:
            self.live = False
            if self.feed_data is None:
                raise
            logger.info("Retrieving %s failed (%s), using cached data", url, e)
            return

        if result.permanent_redirect and result.final_url and result.final_url != url:
            logger.info("%s moved permanently to %s", url, result.final_url)
            self._cache_object = None
            self.url = result.final_url

        if result.status == 304 or result.data is None:
            self.live = False
            self._http_headers = {**http_headers, **result.http_headers}
        else:
            self._replace_data(result.data)
            self._http_headers = dict(result.http_headers)
        self.last_retrieved = utcnow()

        if self.cache_object is not None:
            try:
                self.save()
            except (CacheError, CacheNotConfiguredError, ValueError) as e:
                logger.warning("Could not save %s to the cache: %s", url, e)

    # Output

    def build_xml(
        self, feed_type: Optional[str] = None, version: Optional[float] = None
    ) -> str:
        """Render the feed as RSS or Atom. See :func:`liberalfeed.serializer.render`."""
        return render(self, feed_type=feed_type, version=version, config=self.config)
