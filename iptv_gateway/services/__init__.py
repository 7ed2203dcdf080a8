"""
Services package for the IPTV gateway

This package contains the playlist/guide ingestion engine and the proxy
gateway business logic.
"""
from iptv_gateway.services.allowlist_service import AllowedDomains
from iptv_gateway.services.catalog_service import CatalogLoader, CatalogSession, GatewayClient
from iptv_gateway.services.correlation_service import correlate, current_program, next_program
from iptv_gateway.services.m3u_parser_service import parse_m3u
from iptv_gateway.services.playback_service import (
    PlaybackController,
    PlayerCapabilities,
    resolve_playback_route,
)
from iptv_gateway.services.view_service import (
    categories_for_view,
    channels_for_view,
    filter_channels,
)
from iptv_gateway.services.xmltv_parser_service import parse_xmltv

__all__ = [
    'AllowedDomains',
    'CatalogLoader',
    'CatalogSession',
    'GatewayClient',
    'correlate',
    'current_program',
    'next_program',
    'parse_m3u',
    'PlaybackController',
    'PlayerCapabilities',
    'resolve_playback_route',
    'categories_for_view',
    'channels_for_view',
    'filter_channels',
    'parse_xmltv',
]
