"""Fetching feed documents over HTTP and from local files."""

from __future__ import annotations

import gzip
import logging
import zlib
from dataclasses import dataclass, field
from typing import Mapping, Optional, Protocol
from urllib.error import HTTPError, URLError
from urllib.parse import unquote, urlparse
from urllib.request import (
    HTTPErrorProcessor,
    HTTPRedirectHandler,
    Request,
    build_opener,
)

try:
    import brotli

    HAS_BROTLI = True
except ImportError:
    HAS_BROTLI = False

from .errors import FeedAccessError

logger = logging.getLogger(__name__)


@dataclass
class RetrievalResult:
    """What one retrieval produced.

    ``data`` is None for a 304 response. ``http_headers`` keys are lower-cased.
    ``permanent_redirect`` is True when every redirect on the way to
    ``final_url`` was a 301.
    """

    data: Optional[bytes]
    http_headers: dict[str, str] = field(default_factory=dict)
    final_url: Optional[str] = None
    status: int = 200
    permanent_redirect: bool = False


class Retriever(Protocol):
    def retrieve(self, url: str, headers: Mapping[str, str]) -> RetrievalResult: ...


class _RecordingRedirectHandler(HTTPRedirectHandler):
    max_redirections = 10

    def __init__(self) -> None:
        self.codes: list[int] = []

    def redirect_request(self, req, fp, code, msg, headers, newurl):
        self.codes.append(code)
        return super().redirect_request(req, fp, code, msg, headers, newurl)


def _decompress(content: bytes, content_encoding: Optional[str]) -> bytes:
    if content_encoding == "gzip":
        return gzip.decompress(content)
    if content_encoding == "deflate":
        return zlib.decompress(content, -zlib.MAX_WBITS)
    if content_encoding == "br":
        if not HAS_BROTLI:
            raise FeedAccessError(
                "Received brotli-compressed response but 'brotli' is not installed"
            )
        return brotli.decompress(content)
    return content


def _lower_headers(headers) -> dict[str, str]:
    return {key.lower(): value for key, value in headers.items()}


class HttpRetriever:
    """Retrieves ``http``, ``https`` and ``file`` urls with urllib.

    Args:
        timeout: Socket timeout in seconds.
    """

    def __init__(self, timeout: float = 30) -> None:
        self.timeout = timeout

    def retrieve(self, url: str, headers: Mapping[str, str]) -> RetrievalResult:
        scheme = urlparse(url).scheme.lower()
        if scheme == "file":
            return self._read_file(url)
        if not scheme:
            raise FeedAccessError("No protocol was specified in the url.")
        if scheme not in ("http", "https"):
            raise FeedAccessError(
                f"Cannot retrieve feed using unrecognized protocol: {scheme}"
            )
        try:
            return self._fetch(url, headers)
        except HTTPError as e:
            if "User-Agent" not in headers:
                raise FeedAccessError(f"HTTP 404 while retrieving {url}") from e
        retry_headers = {k: v for k, v in headers.items() if k != "User-Agent"}
        try:
            result = self._fetch(url, retry_headers)
        except HTTPError as e:
            raise FeedAccessError(f"HTTP 404 while retrieving {url}") from e
        if result.status == 200:
            logger.warning(
                "The server at %s appears to be blocking based on the "
                "User-Agent header",
                url,
            )
        return result

    def _read_file(self, url: str) -> RetrievalResult:
        path = unquote(urlparse(url).path)
        try:
            with open(path, "rb") as fp:
                data = fp.read()
        except OSError as e:
            raise FeedAccessError(f"Cannot read feed file {path!r}: {e}") from e
        logger.info("Read %d bytes from %s", len(data), path)
        return RetrievalResult(data=data, final_url=url)

    def _fetch(self, url: str, headers: Mapping[str, str]) -> RetrievalResult:
        accept_encoding = "gzip, deflate, br" if HAS_BROTLI else "gzip, deflate"
        request = Request(
            url,
            method="GET",
            headers={"Accept-Encoding": accept_encoding, **headers},
        )
        redirects = _RecordingRedirectHandler()
        opener = build_opener(redirects, HTTPErrorProcessor())
        try:
            with opener.open(request, timeout=self.timeout) as response:
                content: bytes = response.read()
                content = _decompress(content, response.headers.get("Content-Encoding"))
                result = RetrievalResult(
                    data=content,
                    http_headers=_lower_headers(response.headers),
                    final_url=response.geturl(),
                    status=response.status,
                    permanent_redirect=bool(redirects.codes)
                    and all(code == 301 for code in redirects.codes),
                )
        except HTTPError as e:
            if e.code == 304:
                logger.info("%s has not been modified", url)
                return RetrievalResult(
                    data=None,
                    http_headers=_lower_headers(e.headers),
                    final_url=url,
                    status=304,
                )
            if e.code == 404:
                raise
            raise FeedAccessError(f"HTTP {e.code} while retrieving {url}") from e
        except (URLError, OSError, zlib.error) as e:
            raise FeedAccessError(f"Cannot retrieve {url}: {e}") from e
        logger.info("Retrieved %d bytes from %s", len(content), result.final_url)
        return result
