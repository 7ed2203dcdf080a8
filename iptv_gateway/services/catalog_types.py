"""
Shared dataclasses used across the playlist/guide pipeline.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


DEFAULT_GROUP = "Uncategorized"
DEFAULT_CHANNEL_NAME = "Unknown Channel"


@dataclass(slots=True)
class Program:
    """Single guide entry; `stop` is always later than `start`."""
    start: datetime
    stop: datetime
    title: str
    desc: str = ""


@dataclass(slots=True)
class Channel:
    """Playlist entry, optionally carrying its correlated guide programs."""
    name: str
    url: str
    group: str = DEFAULT_GROUP
    logo: str | None = None
    programs: list[Program] | None = None


# Raw guide channel id -> programs in document order
EPGIndex = dict[str, list[Program]]


@dataclass(slots=True)
class FetchResult:
    """Outcome of a network fetch: either text or a failure description."""
    ok: bool
    text: str = ""
    status_code: int | None = None
    error: str | None = None

    @classmethod
    def success(cls, text: str, status_code: int = 200) -> FetchResult:
        return cls(ok=True, text=text, status_code=status_code)

    @classmethod
    def failure(cls, error: str, status_code: int | None = None) -> FetchResult:
        return cls(ok=False, status_code=status_code, error=error)


__all__ = [
    "DEFAULT_GROUP",
    "DEFAULT_CHANNEL_NAME",
    "Program",
    "Channel",
    "EPGIndex",
    "FetchResult",
]
