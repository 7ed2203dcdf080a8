"""
Catalog Service

Client-side session state (channels, guide index, active filters) and the
load pipeline that fetches through the gateway: fetch -> parse -> correlate.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional

import aiofiles
import httpx

from iptv_gateway.services.catalog_types import Channel, EPGIndex, FetchResult, Program
from iptv_gateway.services.correlation_service import correlate, current_program, next_program
from iptv_gateway.services.m3u_parser_service import parse_m3u
from iptv_gateway.services.playback_service import (
    PROXY_PATH,
    Notifier,
    PlaybackRoute,
    PlayerCapabilities,
    proxy_url,
    resolve_playback_route,
)
from iptv_gateway.services.view_service import (
    ALL_CATEGORIES,
    VIEW_LIVE_TV,
    categories_for_view,
    filter_channels,
)
from iptv_gateway.services.xmltv_parser_service import parse_xmltv


logger = logging.getLogger(__name__)


def _log_notification(message: str, level: str) -> None:
    logger.info("[%s] %s", level, message)


@dataclass
class CatalogSession:
    """In-memory state for one viewing session"""
    channels: list[Channel] = field(default_factory=list)
    epg_index: EPGIndex = field(default_factory=dict)
    current_view: str = VIEW_LIVE_TV
    current_category: str = ALL_CATEGORIES
    search_query: str = ""

    def load_playlist_text(self, content: str) -> list[Channel]:
        """Replace the channel list with a fresh parse"""
        self.channels = parse_m3u(content)
        self.current_category = ALL_CATEGORIES
        return self.channels

    def load_epg_text(self, content: str | bytes) -> int:
        """
        Rebuild the guide index and correlate it with the channels

        The index is cleared before parsing, so a broken document leaves an
        empty (or partial) index rather than the previous one.

        Returns:
            Number of channels that received programs
        """
        self.epg_index = {}
        parse_xmltv(content, into=self.epg_index)
        return correlate(self.channels, self.epg_index)

    def set_view(self, view: str) -> None:
        self.current_view = view
        self.current_category = ALL_CATEGORIES

    def visible_channels(self) -> list[Channel]:
        return filter_channels(
            self.channels,
            self.current_view,
            self.current_category,
            self.search_query,
        )

    def categories(self) -> list[str]:
        return categories_for_view(self.channels, self.current_view)

    def current_program(self, channel: Channel, now: Optional[datetime] = None) -> Optional[Program]:
        return current_program(channel, now)

    def next_program(self, channel: Channel, now: Optional[datetime] = None) -> Optional[Program]:
        return next_program(channel, now)

    def resolve_route(self, channel: Channel, capabilities: PlayerCapabilities) -> PlaybackRoute:
        return resolve_playback_route(channel, capabilities)


class GatewayClient:
    """HTTP client for the gateway endpoints; every call returns a FetchResult"""

    def __init__(self, client: httpx.AsyncClient, proxy_path: str = PROXY_PATH):
        self._client = client
        self.proxy_path = proxy_path

    async def fetch_playlist(self) -> FetchResult:
        return await self._get_text("/api/playlist")

    async def fetch_epg(self) -> FetchResult:
        return await self._get_text("/api/epg")

    async def fetch_via_proxy(self, target_url: str) -> FetchResult:
        return await self._get_text(proxy_url(target_url, self.proxy_path))

    async def _get_text(self, path: str) -> FetchResult:
        try:
            response = await self._client.get(path)
        except httpx.HTTPError as e:
            logger.error(f"Request to {path.split('?', 1)[0]} failed: {type(e).__name__}: {e}")
            return FetchResult.failure(str(e) or type(e).__name__)

        if response.is_error:
            logger.warning(f"Request to {path.split('?', 1)[0]} returned HTTP {response.status_code}")
            return FetchResult.failure(f"HTTP {response.status_code}", status_code=response.status_code)

        return FetchResult.success(response.text, status_code=response.status_code)


class CatalogLoader:
    """
    Sequential load pipeline for a CatalogSession.

    Loads are serialized: a load issued while another is running waits for
    it, so the last issued load is the one whose result stays.
    """

    def __init__(
        self,
        session: CatalogSession,
        gateway: GatewayClient,
        notify: Notifier | None = None,
    ):
        self.session = session
        self.gateway = gateway
        self._notify = notify or _log_notification
        self._lock = asyncio.Lock()

    async def load_from_gateway(self) -> FetchResult:
        """Load the operator playlist, then its guide"""
        async with self._lock:
            result = await self.gateway.fetch_playlist()
            if not result.ok:
                if result.status_code == 404:
                    logger.info("No playlist configured on the gateway; waiting for manual upload")
                else:
                    self._notify("Failed to load the channel list", "error")
                return result

            self._apply_playlist(result.text)
            self._notify("Channel list loaded", "success")
            await self._load_epg_locked()
            return result

    async def load_from_url(self, url: str) -> FetchResult:
        """Load a user-supplied playlist URL through the proxy"""
        async with self._lock:
            result = await self.gateway.fetch_via_proxy(url.strip())
            if not result.ok:
                self._notify("Could not download the playlist. Check that the gateway is running.", "error")
                return result
            self._apply_playlist(result.text)
            await self._load_epg_locked()
            return result

    async def load_from_file(self, path: str | Path) -> FetchResult:
        """Load a local playlist file (manual upload fallback)"""
        async with self._lock:
            try:
                async with aiofiles.open(path, "r", encoding="utf-8", errors="replace") as f:
                    content = await f.read()
            except OSError as e:
                logger.error(f"Failed to read playlist file {path}: {e}")
                self._notify("Could not read the playlist file", "error")
                return FetchResult.failure(str(e))
            self._apply_playlist(content)
            await self._load_epg_locked()
            return FetchResult.success(content)

    async def load_epg(self) -> FetchResult:
        async with self._lock:
            return await self._load_epg_locked()

    def _apply_playlist(self, content: str) -> None:
        channels = self.session.load_playlist_text(content)
        logger.info(f"Loaded {len(channels)} channels")

    async def _load_epg_locked(self) -> FetchResult:
        if not self.session.channels:
            return FetchResult.failure("No channels loaded")

        self._notify("Downloading TV guide...", "info")
        result = await self.gateway.fetch_epg()
        if not result.ok:
            self._notify("Failed to download the TV guide", "warning")
            return result

        mapped = self.session.load_epg_text(result.text)
        self._notify(f"TV guide updated ({mapped} channels)", "success")
        return result
