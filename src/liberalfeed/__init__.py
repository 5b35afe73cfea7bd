from .cache import CachedFeed, FeedCache, MemoryFeedCache, SQLiteFeedCache
from .config import DEFAULT_CONFIGURATION, Configuration, __version__
from .errors import (
    CacheError,
    CacheNotConfiguredError,
    FeedAccessError,
    LiberalFeedError,
    MultipleParentFeedsError,
    SerializationError,
    UnknownOptionError,
)
from .feed import Feed
from .item import FeedItem
from .main import build_merged_feed, open_feed, parse
from .models import (
    Author,
    Category,
    Cloud,
    Enclosure,
    EnclosureCredit,
    EnclosureHash,
    EnclosurePlayer,
    EnclosureThumbnail,
    Image,
    Link,
    TextInput,
)
from .retrieval import HttpRetriever, RetrievalResult, Retriever
from .serializer import render
from .text import escape_entities, sanitize_html, strip_html, tidy_html, unescape_entities
from .urls import build_tag_uri, build_urn_uri, is_uri, normalize_url
from .xpath import Resolver, resolve_all, resolve_first

__all__ = [
    "Author",
    "CacheError",
    "CacheNotConfiguredError",
    "CachedFeed",
    "Category",
    "Cloud",
    "Configuration",
    "DEFAULT_CONFIGURATION",
    "Enclosure",
    "EnclosureCredit",
    "EnclosureHash",
    "EnclosurePlayer",
    "EnclosureThumbnail",
    "Feed",
    "FeedAccessError",
    "FeedCache",
    "FeedItem",
    "HttpRetriever",
    "Image",
    "LiberalFeedError",
    "Link",
    "MemoryFeedCache",
    "MultipleParentFeedsError",
    "Resolver",
    "RetrievalResult",
    "Retriever",
    "SQLiteFeedCache",
    "SerializationError",
    "TextInput",
    "UnknownOptionError",
    "__version__",
    "build_merged_feed",
    "build_tag_uri",
    "build_urn_uri",
    "escape_entities",
    "is_uri",
    "normalize_url",
    "open_feed",
    "parse",
    "render",
    "resolve_all",
    "resolve_first",
    "sanitize_html",
    "strip_html",
    "tidy_html",
    "unescape_entities",
]
