from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Optional

_RE_AUDIO_EXTENSION = re.compile(r"\.(mp3|m4a|m4p|wav|ogg|wma)$", re.IGNORECASE)
_RE_VIDEO_EXTENSION = re.compile(r"\.(mov|mp4|avi|wmv|asf)$", re.IGNORECASE)

EXPRESSIONS = ("sample", "full", "nonstop")


@dataclass
class Category:
    term: Optional[str] = None
    scheme: Optional[str] = None
    label: Optional[str] = None


@dataclass
class Author:
    name: Optional[str] = None
    email: Optional[str] = None
    url: Optional[str] = None
    raw: Optional[str] = None


@dataclass
class Image:
    url: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    link: Optional[str] = None
    height: Optional[int] = None
    width: Optional[int] = None
    style: Optional[str] = None


@dataclass
class TextInput:
    title: Optional[str] = None
    description: Optional[str] = None
    link: Optional[str] = None
    name: Optional[str] = None


@dataclass
class Cloud:
    domain: Optional[str] = None
    port: Optional[int] = None
    path: Optional[str] = None
    register_procedure: Optional[str] = None
    protocol: Optional[str] = None


@dataclass
class Link:
    url: Optional[str] = None
    value: Optional[str] = None


@dataclass
class EnclosureThumbnail:
    url: Optional[str] = None
    height: Optional[str] = None
    width: Optional[str] = None


@dataclass
class EnclosureHash:
    hash: Optional[str] = None
    type: str = "md5"


@dataclass
class EnclosurePlayer:
    url: Optional[str] = None
    height: Optional[str] = None
    width: Optional[str] = None


@dataclass
class EnclosureCredit:
    name: Optional[str] = None
    role: Optional[str] = None


class _NonZero:
    """Numeric attribute that reads 0 as None."""

    def __set_name__(self, owner, name: str) -> None:
        self._attr = "_" + name

    def __get__(self, instance, owner=None):
        if instance is None:
            return self
        return getattr(instance, self._attr, None) or None

    def __set__(self, instance, value: Optional[int]) -> None:
        setattr(instance, self._attr, value)


class Enclosure:
    """A media file attached to an entry.

    Numeric fields that were given as 0 read as None.
    """

    file_size = _NonZero()
    duration = _NonZero()
    height = _NonZero()
    width = _NonZero()
    bitrate = _NonZero()
    framerate = _NonZero()

    def __init__(self, url: Optional[str] = None, type: Optional[str] = None) -> None:
        self.url = url
        self.type = type
        self.file_size = None
        self.duration = None
        self.height = None
        self.width = None
        self.bitrate = None
        self.framerate = None
        self.thumbnail: Optional[EnclosureThumbnail] = None
        self.categories: list[Category] = []
        self.hash: Optional[EnclosureHash] = None
        self.player: Optional[EnclosurePlayer] = None
        self.credits: list[EnclosureCredit] = []
        self.text: Optional[str] = None
        self.explicit: Optional[bool] = None
        self.is_default = False
        self.versions: list[Enclosure] = []
        self.default_version: Optional[Enclosure] = None
        self._expression: Optional[str] = None

    def __repr__(self) -> str:
        return f"<Enclosure url={self.url!r} type={self.type!r}>"

    @property
    def expression(self) -> str:
        return self._expression or "full"

    @expression.setter
    def expression(self, value: Optional[str]) -> None:
        if value is not None and value not in EXPRESSIONS:
            raise ValueError(
                f"Invalid enclosure expression {value!r}, expected one of {EXPRESSIONS}"
            )
        self._expression = value

    @property
    def audio(self) -> bool:
        if self.type and self.type.lower().startswith("audio"):
            return True
        return bool(self.url and _RE_AUDIO_EXTENSION.search(self.url))

    @property
    def video(self) -> bool:
        if self.type and (
            self.type.lower().startswith("video") or self.type.lower() == "image/mov"
        ):
            return True
        return bool(self.url and _RE_VIDEO_EXTENSION.search(self.url))


_UNSET = object()


class cached_field:
    """Attribute computed on first access and cached in the owner's ``_values``.

    Assigning replaces the cached value of this field only. Several names can
    share one field, e.g. ``description = subtitle``.
    """

    def __init__(
        self,
        compute: Optional[Callable[[Any], Any]] = None,
        *,
        mirror: bool = False,
    ) -> None:
        self.name: Optional[str] = None
        self.mirror = mirror
        self._compute = compute
        self._coerce: Optional[Callable[[Any, Any], Any]] = None
        if compute is not None:
            self.__doc__ = compute.__doc__

    def __call__(self, compute: Callable[[Any], Any]) -> "cached_field":
        self._compute = compute
        self.__doc__ = compute.__doc__
        return self

    def __set_name__(self, owner, name: str) -> None:
        if self.name is None:
            self.name = name

    def __get__(self, instance, owner=None):
        if instance is None:
            return self
        value = instance._values.get(self.name, _UNSET)
        if value is _UNSET:
            value = self._compute(instance)
            instance._values[self.name] = value
            if self.mirror:
                instance._mirror_field(self.name, value)
        return value

    def __set__(self, instance, value: Any) -> None:
        if self._coerce is not None:
            value = self._coerce(instance, value)
        instance._values[self.name] = value
        if self.mirror:
            instance._mirror_field(self.name, value)

    def coercer(self, func: Callable[[Any, Any], Any]) -> "cached_field":
        """Register a function that converts assigned values."""
        self._coerce = func
        return self
