"""
EPG Correlation Service

Attaches guide programs to playlist channels by name and answers
"what is on now / next" for a channel.
"""
from collections.abc import Sequence
from datetime import datetime
from typing import Optional
import logging

from iptv_gateway.services.catalog_types import Channel, EPGIndex, Program
from iptv_gateway.utils.xmltv_time import ensure_utc, utc_now

logger = logging.getLogger(__name__)


def correlate(channels: Sequence[Channel], index: EPGIndex) -> int:
    """
    Attach program lists from the index to each channel in place

    Matching is exact on `name` first, then case-insensitive against the
    index keys (first key in document order wins). Unmatched channels get
    `programs` reset to None, so nothing from a previous guide survives.

    Args:
        channels: Channels to update
        index: Fully built EPG index

    Returns:
        Number of channels that received programs
    """
    lowered: dict[str, str] = {}
    for key in index:
        lowered.setdefault(key.lower(), key)

    mapped_count = 0
    for channel in channels:
        key = channel.name if channel.name in index else lowered.get(channel.name.lower())
        if key is None:
            channel.programs = None
            continue
        channel.programs = index[key]
        mapped_count += 1

    logger.info(f"Mapped EPG for {mapped_count} of {len(channels)} channels")
    return mapped_count


def _current_index(channel: Channel, now: Optional[datetime]) -> int | None:
    if not channel.programs:
        return None
    instant = ensure_utc(now) if now is not None else utc_now()
    for idx, program in enumerate(channel.programs):
        if program.start <= instant < program.stop:
            return idx
    return None


def current_program(channel: Channel, now: Optional[datetime] = None) -> Optional[Program]:
    """Program airing at `now` (half-open interval), if any"""
    idx = _current_index(channel, now)
    return channel.programs[idx] if idx is not None else None


def next_program(channel: Channel, now: Optional[datetime] = None) -> Optional[Program]:
    """Entry following the current program in list order, if any"""
    idx = _current_index(channel, now)
    if idx is None or idx + 1 >= len(channel.programs):
        return None
    return channel.programs[idx + 1]


def program_progress(program: Program, now: Optional[datetime] = None) -> float:
    """Elapsed share of the program, clamped to [0, 1]"""
    instant = ensure_utc(now) if now is not None else utc_now()
    total = (program.stop - program.start).total_seconds()
    elapsed = (instant - program.start).total_seconds()
    return min(1.0, max(0.0, elapsed / total))
