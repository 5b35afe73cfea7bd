from __future__ import annotations

import datetime
import logging
import re
import uuid
from typing import Any, Optional
from urllib.parse import urlsplit, urlunsplit

from .dates import ensure_utc

logger = logging.getLogger(__name__)

_RE_DRIVE_LETTER = re.compile(r"^[a-zA-Z]:[\\/]")
_RE_PSEUDO_PROTOCOLS = (
    (re.compile(r"^feed:/*https:/*", re.IGNORECASE), "https://"),
    (re.compile(r"^http:/*(feed:/*)?", re.IGNORECASE), "http://"),
    (re.compile(r"^http:/*(rss:/*)?", re.IGNORECASE), "http://"),
    (re.compile(r"^feed:/*(http:/*)?", re.IGNORECASE), "http://"),
    (re.compile(r"^rss:/*(http:/*)?", re.IGNORECASE), "http://"),
    (re.compile(r"^file:/*", re.IGNORECASE), "file:///"),
    (re.compile(r"^https:/*", re.IGNORECASE), "https://"),
    (re.compile(r"^http:/*(http:/*)*", re.IGNORECASE), "http://"),
)
_RE_PIPE_DRIVE = re.compile(r"^file:///([a-zA-Z])\|")
_RE_HAS_HTTP = re.compile(r"https?://", re.IGNORECASE)
_RE_HIERARCHICAL_SCHEME = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*://")
_RE_OPAQUE_SCHEME = re.compile(r"^(mailto|urn|tag|news|data|about):", re.IGNORECASE)
_RE_URI_SCHEME = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*:")
_RE_INVALID_URI_CHARS = re.compile(r"[\s<>\"{}|\\^`]")
_RE_TAG_STRIP_SCHEME = re.compile(r"^(http|ftp|file):/*")


def normalize_url(url: Optional[str]) -> Optional[str]:
    """Repair a URL found in a feed.

    Never raises. Returns None only for blank input (or a bare ``http://``).
    """
    if url is None:
        return None
    normalized = str(url).strip()
    if not normalized:
        return None

    if normalized.startswith("/"):
        normalized = "file://" + normalized
    if _RE_DRIVE_LETTER.match(normalized):
        normalized = "file:///" + normalized
    if "javascript:" in normalized.lower():
        return "#"

    for pattern, replacement in _RE_PSEUDO_PROTOCOLS:
        normalized = pattern.sub(replacement, normalized, count=1)

    if normalized.lower().startswith("file:"):
        normalized = _RE_PIPE_DRIVE.sub(r"file:///\1:", normalized)
        normalized = normalized.replace("\\", "/")
    else:
        if not (
            _RE_HAS_HTTP.match(normalized)
            or _RE_HIERARCHICAL_SCHEME.match(normalized)
            or _RE_OPAQUE_SCHEME.match(normalized)
        ):
            normalized = "http://" + normalized
        if normalized == "http://":
            return None
        normalized = _normalize_parts(normalized)

    return normalized.replace("%20", " ").replace(" ", "%20")


def _normalize_parts(url: str) -> str:
    try:
        parts = urlsplit(url)
    except ValueError:
        logger.debug("Keeping unparseable URL %r", url)
        return url
    if not parts.netloc:
        return url
    scheme = parts.scheme or "http"
    path = parts.path or "/"
    if path.startswith("//"):
        path = "/" + path.lstrip("/")
    if path.startswith("/.."):
        path = path[3:] or "/"
    netloc = parts.netloc
    host = parts.hostname
    if host:
        userinfo, at, hostport = netloc.rpartition("@")
        netloc = userinfo + at + hostport.lower()
    return urlunsplit((scheme, netloc, path, parts.query, parts.fragment))


def is_uri(url: Any) -> bool:
    """Return True if ``url`` looks like an absolute URI. Never raises."""
    if not isinstance(url, str) or not url:
        return False
    if _RE_INVALID_URI_CHARS.search(url):
        return False
    if not _RE_URI_SCHEME.match(url):
        return False
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    return bool(parts.scheme)


is_valid_uri = is_uri


def build_tag_uri(url: str, date: datetime.datetime) -> str:
    """Build a tag URI (RFC 4151) from a URL and a date."""
    if not isinstance(url, str):
        raise TypeError("Expected a str url, got %s" % type(url).__name__)
    if not isinstance(date, datetime.datetime):
        raise TypeError("Expected a datetime, got %s" % type(date).__name__)
    tag_uri = normalize_url(url)
    if not is_uri(tag_uri):
        raise ValueError("Must supply a valid URL.")
    host = urlsplit(tag_uri).hostname
    if not host:
        raise ValueError("Must supply a valid URL.")
    tag_uri = _RE_TAG_STRIP_SCHEME.sub("", tag_uri, count=1).replace("#", "/")
    rest = tag_uri[tag_uri.index(host) + len(host) :]
    day = (ensure_utc(date) or date).strftime("%Y-%m-%d")
    return f"tag:{host},{day}:{rest}"


def build_urn_uri(url: str) -> str:
    """Build a name-based (SHA-1) UUID URN from a URL."""
    if not isinstance(url, str):
        raise TypeError("Expected a str url, got %s" % type(url).__name__)
    normalized = normalize_url(url)
    if normalized is None:
        raise ValueError("Must supply a valid URL.")
    return uuid.uuid5(uuid.NAMESPACE_URL, normalized).urn
