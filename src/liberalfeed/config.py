from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, Optional

from .errors import UnknownOptionError

__version__ = "0.1.0"

PROJECT_URL = "https://github.com/liberalfeed/liberalfeed"

THREE_DAYS = 3 * 24 * 60 * 60


def validate_options(valid_keys: Iterable[str], supplied_keys: Iterable[str]) -> None:
    """Raise UnknownOptionError for any supplied key not in ``valid_keys``."""
    valid = set(valid_keys)
    for key in supplied_keys:
        if key not in valid:
            raise UnknownOptionError(
                f"Unknown option {key!r}. Valid options: {', '.join(sorted(valid))}"
            )


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes", "on")


@dataclass(frozen=True)
class Configuration:
    """Options consumed while resolving, normalizing and rendering feeds."""

    tidy_enabled: bool = False
    tidy_function: Optional[Callable[[str], str]] = None
    sanitization_enabled: bool = True
    sanitize_with_nofollow: bool = True
    timestamp_estimation_enabled: bool = True
    url_normalization_enabled: bool = True
    strip_comment_count: bool = False
    max_ttl: Optional[int] = THREE_DAYS
    output_encoding: str = "utf-8"
    generator_name: str = "liberalfeed"
    generator_href: str = PROJECT_URL
    user_agent: Optional[str] = f"liberalfeed/{__version__} (+{PROJECT_URL})"
    tab_spaces: Optional[int] = None
    namespaces: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def option_names(cls) -> tuple[str, ...]:
        return tuple(f.name for f in dataclasses.fields(cls))

    @classmethod
    def from_options(cls, options: Mapping[str, Any]) -> "Configuration":
        """Build a configuration, rejecting unrecognised keys."""
        validate_options(cls.option_names(), options.keys())
        return cls(**options)

    @classmethod
    def from_env(
        cls, prefix: str = "LIBERALFEED_", environ: Optional[Mapping[str, str]] = None
    ) -> "Configuration":
        """Read scalar options from environment variables such as
        ``LIBERALFEED_TIDY_ENABLED=true`` or ``LIBERALFEED_MAX_TTL=3600``."""
        environ = os.environ if environ is None else environ
        options: dict[str, Any] = {}
        for f in dataclasses.fields(cls):
            raw = environ.get(prefix + f.name.upper())
            if raw is None or f.name in ("tidy_function", "namespaces"):
                continue
            if f.name.endswith("_enabled") or f.name in (
                "sanitize_with_nofollow",
                "strip_comment_count",
            ):
                options[f.name] = _parse_bool(raw)
            elif f.name in ("max_ttl", "tab_spaces"):
                options[f.name] = int(raw) if raw.strip() else None
            else:
                options[f.name] = raw
        return cls(**options)

    def replace(self, **changes: Any) -> "Configuration":
        validate_options(self.option_names(), changes.keys())
        return dataclasses.replace(self, **changes)


DEFAULT_CONFIGURATION = Configuration()
