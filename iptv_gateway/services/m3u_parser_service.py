import logging
import re

from iptv_gateway.services.catalog_types import (
    DEFAULT_CHANNEL_NAME,
    DEFAULT_GROUP,
    Channel,
)

logger = logging.getLogger(__name__)

EXTINF_PREFIX = "#EXTINF:"

_LOGO_RE = re.compile(r'tvg-logo="([^"]*)"')
_GROUP_RE = re.compile(r'group-title="([^"]*)"')


def parse_m3u(content: str) -> list[Channel]:
    """
    Parse extended M3U text into channels

    Each `#EXTINF:` line opens a record which is completed by the next
    non-empty, non-comment line (the stream URL). Records without both a
    name and a URL are dropped silently.

    Args:
        content: Raw playlist text

    Returns:
        Channels in document order (empty for degenerate input)
    """
    channels: list[Channel] = []
    pending: dict | None = None

    for raw_line in (content or "").splitlines():
        line = raw_line.strip()
        if not line:
            continue

        if line.startswith(EXTINF_PREFIX):
            pending = _parse_extinf(line)
            continue

        if line.startswith("#"):
            continue

        if pending is None:
            logger.debug("Skipping URL line without metadata")
            continue

        if pending["name"]:
            channels.append(Channel(url=line, **pending))
        pending = None

    logger.info(f"Parsed {len(channels)} channels from playlist")
    return channels


def _parse_extinf(line: str) -> dict:
    """Extract logo, group and display name from a metadata line"""
    logo_match = _LOGO_RE.search(line)
    group_match = _GROUP_RE.search(line)

    _, comma, tail = line.rpartition(",")
    if comma and tail:
        name = tail.strip()
    else:
        name = DEFAULT_CHANNEL_NAME

    return {
        "name": name,
        "group": group_match.group(1) if group_match else DEFAULT_GROUP,
        "logo": logo_match.group(1) if logo_match else None,
    }
