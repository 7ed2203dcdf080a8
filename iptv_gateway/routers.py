from typing import Annotated
import logging

import httpx
from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import Response

from iptv_gateway.dependencies import AllowedDomainsDep, HttpClientDep, SettingsDep
from iptv_gateway.schemas import ErrorResponse, HealthResponse
from iptv_gateway.services.proxy_service import (
    ProxyError,
    ProxyOptions,
    build_proxy_response,
    open_upstream,
    validate_target,
)
from iptv_gateway.services.source_fetch_service import fetch_source_text
from iptv_gateway.utils.static_files import (
    PathTraversalError,
    guess_content_type,
    read_static_file,
    resolve_static_path,
)


logger = logging.getLogger(__name__)

api_router = APIRouter(prefix="/api")
main_router = APIRouter()


@api_router.get("/playlist", responses={404: {"model": ErrorResponse}, 502: {"model": ErrorResponse}})
async def get_playlist(
    settings: SettingsDep,
    client: HttpClientDep,
    allowed: AllowedDomainsDep
) -> Response:
    """
    Fetch the operator playlist server-side

    Rebuilds the proxy allow-list from the stream hosts it contains.
    """
    if not settings.m3u_url:
        raise HTTPException(status_code=404, detail="No M3U_URL configured")

    logger.info("[PLAYLIST] Fetching M3U server-side")
    try:
        content = await fetch_source_text(
            client,
            settings.m3u_url,
            max_retries=settings.source_fetch_max_retries,
            backoff_factor=settings.source_fetch_backoff_factor,
        )
    except httpx.HTTPError as e:
        logger.error(f"[PLAYLIST] Fetch failed: {type(e).__name__}")
        raise HTTPException(status_code=502, detail="Failed to fetch playlist") from e

    allowed.rebuild_from_playlist(content)
    return Response(content=content, media_type="audio/x-mpegurl")


@api_router.get("/epg", responses={502: {"model": ErrorResponse}})
async def get_epg(settings: SettingsDep, client: HttpClientDep) -> Response:
    """Fetch the operator guide server-side and return it verbatim"""
    logger.info("[EPG] Fetching EPG server-side")
    try:
        content = await fetch_source_text(
            client,
            settings.epg_url,
            max_retries=settings.source_fetch_max_retries,
            backoff_factor=settings.source_fetch_backoff_factor,
        )
    except httpx.HTTPError as e:
        logger.error(f"[EPG] Fetch failed: {type(e).__name__}")
        raise HTTPException(status_code=502, detail="Failed to fetch EPG") from e

    return Response(content=content, media_type="application/xml")


@api_router.get("/proxy", responses={code: {"model": ErrorResponse} for code in (400, 403, 502, 504)})
async def proxy(
    settings: SettingsDep,
    client: HttpClientDep,
    allowed: AllowedDomainsDep,
    url: Annotated[str | None, Query(description="Absolute URL of an allow-listed resource")] = None
) -> Response:
    """
    Stream an allow-listed resource through the gateway

    Status code and body are passed through; only content type/length and
    CORS headers are forwarded.
    """
    try:
        target = validate_target(url, allowed)
        upstream = await open_upstream(
            client,
            target,
            allowed,
            ProxyOptions(
                user_agent=settings.proxy_user_agent,
                timeout=settings.proxy_timeout_sec,
                validate_redirects=settings.proxy_validate_redirects,
                chunk_size=settings.proxy_chunk_size,
            ),
        )
    except ProxyError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message) from e

    return build_proxy_response(upstream, settings.proxy_chunk_size)


@main_router.get("/health", response_model=HealthResponse)
async def health_check(settings: SettingsDep, allowed: AllowedDomainsDep) -> HealthResponse:
    """Health check endpoint"""
    return HealthResponse(
        status="ok",
        allowed_domains=len(allowed),
        playlist_configured=bool(settings.m3u_url),
        epg_configured=bool(settings.epg_url),
    )


@main_router.get("/{file_path:path}", include_in_schema=False)
async def static_file(file_path: str, settings: SettingsDep) -> Response:
    """Serve the application's own files from the static root"""
    try:
        path = resolve_static_path(settings.static_dir, file_path)
    except PathTraversalError as e:
        raise HTTPException(status_code=403, detail="Forbidden") from e

    try:
        data = await read_static_file(path)
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=f"Not found: /{file_path}") from e
    except OSError as e:
        logger.error(f"[STATIC] Failed to read {path}: {e}")
        raise HTTPException(status_code=500, detail="Server error") from e

    return Response(content=data, media_type=guess_content_type(path))
