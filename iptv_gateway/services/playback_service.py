"""
Playback Route Service

Decides which streaming protocol a channel needs and how its URLs must be
rewritten to go through the gateway proxy. The players themselves are
external collaborators described by the protocols below.
"""
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Protocol
from urllib.parse import quote
import logging

from iptv_gateway.services.catalog_types import Channel

logger = logging.getLogger(__name__)

PROXY_PATH = "/api/proxy"

# Same unescaped set as JavaScript's encodeURIComponent
_URI_COMPONENT_SAFE = "-_.!~*'()"

UNSUPPORTED_FORMAT_MESSAGE = "Unsupported format in this player"


class PlaybackProtocol(str, Enum):
    HLS = "hls"
    MPEGTS = "mpegts"
    NATIVE = "native"
    DIRECT = "direct"


class ErrorKind(str, Enum):
    NETWORK = "network"
    MEDIA = "media"
    OTHER = "other"


@dataclass(slots=True)
class PlayerCapabilities:
    """What the playback runtime can do"""
    hls_supported: bool = True
    mse_live_playback: bool = True
    native_hls: bool = False


@dataclass(slots=True)
class PlaybackRoute:
    protocol: PlaybackProtocol
    source_url: str
    original_url: str
    rewrite_request: Optional[Callable[[str], str]] = field(default=None, compare=False)

    @property
    def proxied(self) -> bool:
        return self.protocol in (PlaybackProtocol.HLS, PlaybackProtocol.MPEGTS)


def proxy_url(target_url: str, proxy_path: str = PROXY_PATH) -> str:
    """Address a target URL through the gateway proxy endpoint"""
    return f"{proxy_path}?url={quote(target_url, safe=_URI_COMPONENT_SAFE)}"


def make_request_rewriter(proxy_path: str = PROXY_PATH) -> Callable[[str], str]:
    """Per-request rewriter: wrap every URL not already addressed to the proxy"""
    def rewrite(request_url: str) -> str:
        if request_url.startswith(proxy_path):
            return request_url
        return proxy_url(request_url, proxy_path)
    return rewrite


def resolve_playback_route(
    channel: Channel,
    capabilities: PlayerCapabilities,
    proxy_path: str = PROXY_PATH
) -> PlaybackRoute:
    """
    Pick the playback protocol for a channel

    Order: HLS for `.m3u8` URLs (every manifest/segment request rewritten),
    MPEG-TS for `.ts`, `/mpegts` or any other non-`.m3u8` URL (whole URL
    proxied once), native playback, and finally a direct attempt.

    Args:
        channel: Selected channel
        capabilities: Runtime capabilities
        proxy_path: Gateway proxy endpoint path

    Returns:
        The route for the external player
    """
    url = channel.url.strip()
    is_m3u8 = ".m3u8" in url
    is_ts = ".ts" in url or "/mpegts" in url or not is_m3u8

    if is_m3u8 and capabilities.hls_supported:
        route = PlaybackRoute(
            protocol=PlaybackProtocol.HLS,
            source_url=url,
            original_url=url,
            rewrite_request=make_request_rewriter(proxy_path),
        )
    elif is_ts and capabilities.mse_live_playback:
        route = PlaybackRoute(
            protocol=PlaybackProtocol.MPEGTS,
            source_url=proxy_url(url, proxy_path),
            original_url=url,
        )
    elif capabilities.native_hls:
        route = PlaybackRoute(protocol=PlaybackProtocol.NATIVE, source_url=url, original_url=url)
    else:
        route = PlaybackRoute(protocol=PlaybackProtocol.DIRECT, source_url=url, original_url=url)

    logger.info(f"Playing {channel.name!r} via {route.protocol.value} (m3u8={is_m3u8}, ts={is_ts})")
    return route


class AdaptivePlayer(Protocol):
    def load_source(self, url: str) -> None: ...
    def attach_media(self, output: "MediaOutput") -> None: ...
    def start_load(self) -> None: ...
    def recover_media_error(self) -> None: ...
    def destroy(self) -> None: ...


class TransportStreamPlayer(Protocol):
    def attach_media_element(self, output: "MediaOutput") -> None: ...
    def load(self) -> None: ...
    def play(self) -> None: ...
    def destroy(self) -> None: ...


class MediaOutput(Protocol):
    def set_source(self, url: str) -> None: ...
    def play(self) -> None: ...
    def clear(self) -> None: ...


Notifier = Callable[[str, str], None]
AdaptivePlayerFactory = Callable[[Callable[[str], str]], AdaptivePlayer]
TransportStreamPlayerFactory = Callable[[str], TransportStreamPlayer]


@dataclass(slots=True)
class PlaybackSession:
    route: PlaybackRoute
    player: object | None = None
    network_reloads: int = 0
    media_recoveries: int = 0


class PlaybackController:
    """
    Owns the single active playback session.

    Every `play` tears down the previous session before starting a new one.
    Fatal HLS network errors get one reload and media errors one in-place
    recovery. A repeat of either, like any other fatal error, ends the
    session and notifies the user.
    """

    MAX_NETWORK_RELOADS = 1
    MAX_MEDIA_RECOVERIES = 1

    def __init__(
        self,
        capabilities: PlayerCapabilities,
        output: MediaOutput,
        adaptive_factory: AdaptivePlayerFactory,
        transport_factory: TransportStreamPlayerFactory,
        notify: Notifier,
        proxy_path: str = PROXY_PATH,
    ):
        self.capabilities = capabilities
        self.output = output
        self._adaptive_factory = adaptive_factory
        self._transport_factory = transport_factory
        self._notify = notify
        self.proxy_path = proxy_path
        self.session: PlaybackSession | None = None

    @property
    def active(self) -> bool:
        return self.session is not None

    def play(self, channel: Channel) -> PlaybackRoute:
        self.close()

        route = resolve_playback_route(channel, self.capabilities, self.proxy_path)
        session = PlaybackSession(route=route)

        if route.protocol is PlaybackProtocol.HLS:
            player = self._adaptive_factory(route.rewrite_request)
            player.load_source(route.source_url)
            player.attach_media(self.output)
            session.player = player
        elif route.protocol is PlaybackProtocol.MPEGTS:
            player = self._transport_factory(route.source_url)
            player.attach_media_element(self.output)
            player.load()
            player.play()
            session.player = player
        else:
            self.output.set_source(route.source_url)
            self.output.play()

        self.session = session
        return route

    def close(self) -> None:
        """Tear down the active session, if any"""
        session = self.session
        if session is None:
            return
        self.session = None
        if session.player is not None:
            session.player.destroy()
        self.output.clear()
        logger.debug("Playback session closed (%s)", session.route.protocol.value)

    def handle_adaptive_error(self, kind: ErrorKind, fatal: bool, details: str = "") -> None:
        session = self.session
        if session is None or session.route.protocol is not PlaybackProtocol.HLS:
            return
        logger.error(f"HLS error: {kind.value} fatal={fatal} {details}")
        if not fatal:
            return

        player = session.player
        if kind is ErrorKind.NETWORK and session.network_reloads < self.MAX_NETWORK_RELOADS:
            session.network_reloads += 1
            self._notify("Network error (HLS): check the connection", "error")
            player.start_load()
        elif kind is ErrorKind.MEDIA and session.media_recoveries < self.MAX_MEDIA_RECOVERIES:
            session.media_recoveries += 1
            player.recover_media_error()
        else:
            self._notify(f"Fatal playback error (HLS): {details or kind.value}", "error")
            self.close()

    def handle_transport_error(self, kind: ErrorKind, details: str = "") -> None:
        session = self.session
        if session is None or session.route.protocol is not PlaybackProtocol.MPEGTS:
            return
        logger.error(f"MPEGTS error: {kind.value} {details}")
        if kind is ErrorKind.NETWORK:
            self._notify(f"Network error (MPEGTS): {details}", "error")

    def handle_direct_failure(self, details: str = "") -> None:
        session = self.session
        if session is None or session.route.protocol is not PlaybackProtocol.DIRECT:
            return
        logger.error(f"Direct playback failed: {details}")
        self._notify(UNSUPPORTED_FORMAT_MESSAGE, "error")
