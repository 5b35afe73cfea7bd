from __future__ import annotations

import datetime
import re
from email.utils import format_datetime, parsedate_to_datetime
from functools import lru_cache
from typing import Optional

from dateutil import parser as dateutil_parser

_UTC = datetime.timezone.utc
EPOCH = datetime.datetime(1970, 1, 1, tzinfo=_UTC)

_RE_FEB29 = re.compile(r"(\d{4})-02-29")
_RE_WHITESPACE = re.compile(r"\s+")
_RE_ISO_TZ_NO_COLON = re.compile(r"([+-]\d{2})(\d{2})$")
_RE_ISO_TZ_HOUR_ONLY = re.compile(r"([+-]\d{2})$")
_RE_ISO_FRACTION = re.compile(r"\.(\d{7,})(?=(?:[+-]\d{2}:?\d{2}|Z|$))", re.IGNORECASE)
_RE_RFC822 = re.compile(
    r"(?:\w{3},\s+)?(\d{1,2})\s+(\w{3})\s+(\d{4})\s+(\d{2}):(\d{2}):(\d{2})\s+([+-]\d{4}|[A-Z]{2,5})"
)
_RE_HOUR24 = re.compile(r"(\d{4}-\d{2}-\d{2})[T ]24:(\d{2}):(\d{2})")
_MONTHS_RFC822: dict[str, int] = {
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "may": 5,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "sep": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
}

_custom_tzinfos: dict[str, int] = {
    "UTC": 0,
    "UT": 0,
    "GMT": 0,
    "Z": 0,
    "WET": 0,
    "WEST": 3600,
    "BST": 3600,
    "CET": 3600,
    "CEST": 7200,
    "EET": 7200,
    "EEST": 10800,
    "MSK": 10800,
    "IST": 19800,
    "PST": -28800,
    "PDT": -25200,
    "MST": -25200,
    "MDT": -21600,
    "CST": -21600,
    "CDT": -18000,
    "EST": -18000,
    "EDT": -14400,
    "AKST": -32400,
    "AKDT": -28800,
    "HST": -36000,
    "AEST": 36000,
    "AEDT": 39600,
    "ACST": 34200,
    "ACDT": 37800,
    "AWST": 28800,
    "NZST": 43200,
    "NZDT": 46800,
    "JST": 32400,
    "KST": 32400,
    "SGT": 28800,
}


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(_UTC)


def ensure_utc(dt: datetime.datetime) -> Optional[datetime.datetime]:
    """Return a timezone-aware datetime normalized to UTC."""
    try:
        return dt.replace(tzinfo=_UTC) if dt.tzinfo is None else dt.astimezone(_UTC)
    except (ValueError, OverflowError):
        return None


def _normalize_iso_datetime_string(value: str) -> str:
    """Coerce flexible ISO-8601 inputs into a form datetime.fromisoformat can parse."""
    cleaned = value.strip()
    if not cleaned:
        return cleaned

    if cleaned[-1] in ("Z", "z"):
        return cleaned[:-1] + "+00:00"

    if len(cleaned) > 6 and cleaned[-6] in ("+", "-") and cleaned[-3] == ":":
        return cleaned

    upper_cleaned = cleaned.upper()
    for suffix in (" UTC", " GMT", " Z"):
        if upper_cleaned.endswith(suffix):
            cleaned = cleaned[: -len(suffix)].rstrip() + "+00:00"
            break

    if (
        " " in cleaned
        and "T" not in cleaned[:11]
        and len(cleaned) >= 10
        and cleaned[4] == "-"
        and cleaned[0:4].isdigit()
    ):
        date_part, rest = cleaned.split(" ", 1)
        if rest and rest[0].isdigit():
            cleaned = f"{date_part}T{rest}"

    match = _RE_ISO_TZ_NO_COLON.search(cleaned)
    if match and "T" in cleaned:
        cleaned = cleaned[:-5] + f"{match.group(1)}:{match.group(2)}"
    else:
        match = _RE_ISO_TZ_HOUR_ONLY.search(cleaned)
        if match and "T" in cleaned:
            cleaned = cleaned[:-3] + f"{match.group(1)}:00"

    return _RE_ISO_FRACTION.sub(lambda m: "." + m.group(1)[:6], cleaned, count=1)


def _fast_rfc822(value: str) -> Optional[datetime.datetime]:
    m = _RE_RFC822.match(value)
    if not m:
        return None
    day, mon_str, year, hour, minute, second, tz = m.groups()
    month = _MONTHS_RFC822.get(mon_str.lower())
    if month is None:
        return None
    if tz[0] in "+-":
        offset = (int(tz[1:3]) * 3600 + int(tz[3:5]) * 60) * (1 if tz[0] == "+" else -1)
    else:
        offset = _custom_tzinfos.get(tz)
        if offset is None:
            return None
    if not (-86400 < offset < 86400):
        return None
    h = int(hour)
    extra_day = h == 24
    if extra_day:
        h = 0
    try:
        dt = datetime.datetime(
            int(year),
            month,
            int(day),
            h,
            int(minute),
            int(second),
            tzinfo=datetime.timezone(datetime.timedelta(seconds=offset)),
        )
    except ValueError:
        return None
    if extra_day:
        dt += datetime.timedelta(days=1)
    return dt.astimezone(_UTC)


def _parsedate_to_utc(value: str) -> Optional[datetime.datetime]:
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if parsed is None:
        return None
    return ensure_utc(parsed)


@lru_cache(maxsize=512)
def _slow_dateutil_parse(value: str) -> Optional[datetime.datetime]:
    try:
        return dateutil_parser.parse(value, tzinfos=_custom_tzinfos, ignoretz=False)
    except (ValueError, TypeError, OverflowError):
        return None


@lru_cache(maxsize=8192)
def parse_time(value: Optional[str], strict: bool = False) -> Optional[datetime.datetime]:
    """Parse a feed timestamp into an aware UTC datetime.

    Args:
        value: Date string in any common format.
        strict: Only accept ISO 8601 and RFC 822 shapes. Free-form parsing is
            skipped, which keeps words like "May" from turning into dates.

    Returns:
        UTC datetime, or None when parsing fails.
    """
    if not value:
        return None

    candidate = value.strip()
    if not candidate:
        return None

    if "\n" in candidate or "\r" in candidate or "\t" in candidate or "  " in candidate:
        candidate = _RE_WHITESPACE.sub(" ", candidate)

    if "-02-29" in candidate:
        year_match = _RE_FEB29.match(candidate)
        if year_match:
            year = int(year_match.group(1))
            if not ((year % 4 == 0 and year % 100 != 0) or (year % 400 == 0)):
                candidate = candidate.replace(f"{year}-02-29", f"{year}-02-28")

    if "T24:" in candidate or " 24:" in candidate:
        m24 = _RE_HOUR24.search(candidate)
        if m24:
            try:
                base = datetime.date.fromisoformat(m24.group(1))
            except ValueError:
                base = None
            if base is not None:
                mins, secs = int(m24.group(2)), int(m24.group(3))
                next_day = base + datetime.timedelta(days=1)
                candidate = (
                    candidate[: m24.start()]
                    + f"{next_day}T00:{mins:02d}:{secs:02d}"
                    + candidate[m24.end() :]
                )

    if len(candidate) >= 10 and candidate[4] == "-" and candidate[0:4].isdigit():
        try:
            dt = datetime.datetime.fromisoformat(_normalize_iso_datetime_string(candidate))
        except ValueError:
            dt = None
        if dt is not None:
            utc_dt = ensure_utc(dt)
            if utc_dt is not None:
                return utc_dt

    rfc822 = _fast_rfc822(candidate)
    if rfc822 is not None:
        return rfc822

    dt = _parsedate_to_utc(candidate)
    if dt is not None or strict:
        return dt

    slow_dt = _slow_dateutil_parse(candidate)
    if slow_dt is not None:
        return ensure_utc(slow_dt)
    return None


def format_rfc822(dt: datetime.datetime) -> str:
    return format_datetime(ensure_utc(dt) or dt, usegmt=True)


def format_iso8601(dt: datetime.datetime) -> str:
    utc = ensure_utc(dt) or dt
    return utc.strftime("%Y-%m-%dT%H:%M:%SZ")
