"""Persistence of retrieved feeds between runs."""

from __future__ import annotations

import datetime
import json
import logging
import sqlite3
import threading
from dataclasses import dataclass, replace
from typing import Optional, Protocol

try:
    import orjson

    _json_loads = orjson.loads

    def _json_dumps(value) -> str:
        return orjson.dumps(value).decode("utf-8")

except ImportError:
    _json_loads = json.loads
    _json_dumps = json.dumps

from .dates import ensure_utc
from .errors import CacheError

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS cached_feeds (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    href TEXT UNIQUE NOT NULL,
    title TEXT,
    link TEXT,
    feed_data TEXT,
    feed_data_type TEXT DEFAULT 'xml',
    http_headers TEXT,
    last_retrieved TEXT
);
"""


@dataclass
class CachedFeed:
    """A cache record for one feed url. ``http_headers`` is a JSON object."""

    url: Optional[str] = None
    title: Optional[str] = None
    link: Optional[str] = None
    feed_data: Optional[str] = None
    feed_data_type: str = "xml"
    http_headers: Optional[str] = None
    last_retrieved: Optional[datetime.datetime] = None
    id: Optional[int] = None

    @property
    def new_record(self) -> bool:
        return self.id is None


class FeedCache(Protocol):
    def load(self, url: str) -> Optional[CachedFeed]: ...

    def save(self, record: CachedFeed) -> CachedFeed: ...


def dump_headers(headers: Optional[dict[str, str]]) -> str:
    return _json_dumps(dict(headers or {}))


def load_headers(raw: Optional[str]) -> dict[str, str]:
    """Decode stored headers, returning {} for anything that is not a JSON object."""
    if not raw:
        return {}
    try:
        headers = _json_loads(raw)
    except ValueError as e:
        logger.debug("Ignoring undecodable cached headers: %s", e)
        return {}
    if not isinstance(headers, dict):
        return {}
    return {str(key).lower(): str(value) for key, value in headers.items()}


class MemoryFeedCache:
    """Keeps records in a dict for the lifetime of the process."""

    def __init__(self) -> None:
        self._records: dict[str, CachedFeed] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._records)

    def load(self, url: str) -> Optional[CachedFeed]:
        record = self._records.get(url)
        return replace(record) if record is not None else None

    def save(self, record: CachedFeed) -> CachedFeed:
        if not record.url:
            raise ValueError("The url field must be set to save to the cache.")
        with self._lock:
            if record.id is None:
                existing = self._records.get(record.url)
                record.id = existing.id if existing is not None else self._next_id
                if existing is None:
                    self._next_id += 1
            self._records[record.url] = replace(record)
        return record


def _dt_to_str(dt: Optional[datetime.datetime]) -> Optional[str]:
    if dt is None:
        return None
    return ensure_utc(dt).isoformat()


def _str_to_dt(value: Optional[str]) -> Optional[datetime.datetime]:
    if not value:
        return None
    return ensure_utc(datetime.datetime.fromisoformat(value))


def _row_to_record(row: sqlite3.Row) -> CachedFeed:
    return CachedFeed(
        id=row["id"],
        url=row["href"],
        title=row["title"],
        link=row["link"],
        feed_data=row["feed_data"],
        feed_data_type=row["feed_data_type"] or "xml",
        http_headers=row["http_headers"],
        last_retrieved=_str_to_dt(row["last_retrieved"]),
    )


class SQLiteFeedCache:
    """Stores records in the ``cached_feeds`` table of a SQLite database."""

    def __init__(self, db_path: str = ":memory:") -> None:
        self.db_path = db_path
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.Lock()

    def connect(self) -> None:
        """Open the database connection and create the table if needed."""
        try:
            self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.executescript(SCHEMA_SQL)
            self._conn.commit()
        except sqlite3.Error as e:
            raise CacheError(f"Cannot open feed cache {self.db_path!r}: {e}") from e

    def close(self) -> None:
        if self._conn:
            self._conn.close()
            self._conn = None

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self.connect()
        return self._conn

    def load(self, url: str) -> Optional[CachedFeed]:
        try:
            with self._lock:
                row = self.conn.execute(
                    "SELECT * FROM cached_feeds WHERE href = ?", (url,)
                ).fetchone()
        except sqlite3.Error as e:
            raise CacheError(f"Cannot load {url!r} from the feed cache: {e}") from e
        return _row_to_record(row) if row else None

    def save(self, record: CachedFeed) -> CachedFeed:
        if not record.url:
            raise ValueError("The url field must be set to save to the cache.")
        values = (
            record.url,
            record.title,
            record.link,
            record.feed_data,
            record.feed_data_type,
            record.http_headers,
            _dt_to_str(record.last_retrieved),
        )
        try:
            with self._lock:
                self.conn.execute(
                    """INSERT INTO cached_feeds (href, title, link, feed_data,
                       feed_data_type, http_headers, last_retrieved)
                       VALUES (?, ?, ?, ?, ?, ?, ?)
                       ON CONFLICT(href) DO UPDATE SET
                       title = excluded.title,
                       link = excluded.link,
                       feed_data = excluded.feed_data,
                       feed_data_type = excluded.feed_data_type,
                       http_headers = excluded.http_headers,
                       last_retrieved = excluded.last_retrieved""",
                    values,
                )
                self.conn.commit()
                row = self.conn.execute(
                    "SELECT id FROM cached_feeds WHERE href = ?", (record.url,)
                ).fetchone()
        except sqlite3.Error as e:
            raise CacheError(f"Cannot save {record.url!r} to the feed cache: {e}") from e
        record.id = row["id"]
        logger.debug("Saved %s to the feed cache", record.url)
        return record
