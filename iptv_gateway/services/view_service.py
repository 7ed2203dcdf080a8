"""
View Classification Service

Partitions channels into the live-tv / movies / series views with
substring heuristics kept as data, and derives category facets.
"""
from collections.abc import Callable, Sequence
import logging

from iptv_gateway.services.catalog_types import Channel

logger = logging.getLogger(__name__)

VIEW_LIVE_TV = "live-tv"
VIEW_MOVIES = "movies"
VIEW_SERIES = "series"
ALL_CATEGORIES = "all"

MOVIE_MARKERS: tuple[str, ...] = ("movie", "film", "vod", "cinema")
SERIES_MARKERS: tuple[str, ...] = ("series", "serial", "season", "episode")
# Loose season/episode numbering, e.g. "Show S01E02"; false positives accepted
SERIES_NAME_MARKERS: tuple[str, ...] = ("s0", "e0")

ChannelPredicate = Callable[[Channel], bool]


def _contains_any(text: str, markers: Sequence[str]) -> bool:
    return any(marker in text for marker in markers)


def is_movie(channel: Channel) -> bool:
    group = (channel.group or "").lower()
    name = (channel.name or "").lower()
    return _contains_any(group, MOVIE_MARKERS) or _contains_any(name, MOVIE_MARKERS)


def is_series(channel: Channel) -> bool:
    group = (channel.group or "").lower()
    name = (channel.name or "").lower()
    return (
        _contains_any(group, SERIES_MARKERS)
        or _contains_any(name, SERIES_MARKERS)
        or _contains_any(name, SERIES_NAME_MARKERS)
    )


def is_live(channel: Channel) -> bool:
    return not is_movie(channel) and not is_series(channel)


# Ordered (predicate, view) pairs; a channel may satisfy several
VIEW_RULES: list[tuple[ChannelPredicate, str]] = [
    (is_movie, VIEW_MOVIES),
    (is_series, VIEW_SERIES),
    (is_live, VIEW_LIVE_TV),
]


def views_for_channel(channel: Channel) -> list[str]:
    """All views the channel belongs to, in rule order"""
    return [view for predicate, view in VIEW_RULES if predicate(channel)]


def channels_for_view(channels: Sequence[Channel], view: str) -> list[Channel]:
    """
    Channels belonging to a view

    Unknown view names pass every channel through.
    """
    if view not in {rule_view for _, rule_view in VIEW_RULES}:
        return list(channels)
    return [ch for ch in channels if view in views_for_channel(ch)]


def categories_for_view(channels: Sequence[Channel], view: str) -> list[str]:
    """Distinct group labels present in the view, `all` first"""
    categories = [ALL_CATEGORIES]
    seen = {ALL_CATEGORIES}
    for channel in channels_for_view(channels, view):
        if channel.group and channel.group not in seen:
            seen.add(channel.group)
            categories.append(channel.group)
    return categories


def filter_channels(
    channels: Sequence[Channel],
    view: str,
    category: str = ALL_CATEGORIES,
    query: str = "",
) -> list[Channel]:
    """View, category and name search filters combined with AND"""
    needle = (query or "").lower()
    result = [
        ch for ch in channels_for_view(channels, view)
        if (category == ALL_CATEGORIES or ch.group == category)
        and (not needle or needle in (ch.name or "").lower())
    ]
    logger.debug(
        "Filtered %s channels to %s (view=%s, category=%s, query=%r)",
        len(channels),
        len(result),
        view,
        category,
        query,
    )
    return result
