"""
Streaming Proxy Service

Forwards a single GET to an allow-listed upstream host and streams the body
back without buffering it. At most one redirect hop is followed.
"""
from collections.abc import AsyncIterator
from dataclasses import dataclass
import logging

import httpx
from starlette.background import BackgroundTask
from starlette.responses import StreamingResponse

from iptv_gateway.services.allowlist_service import AllowedDomains
from iptv_gateway.utils.logging_helpers import sanitize_url_for_logging


logger = logging.getLogger(__name__)

FORWARDED_HEADERS = ("content-type", "content-length")
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "*",
}


class ProxyError(Exception):
    """Proxy request failure carrying the HTTP status returned to the client"""

    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ProxyRejected(ProxyError):
    """Request refused before any network I/O (bad or disallowed target)"""


@dataclass(slots=True)
class ProxyOptions:
    user_agent: str
    timeout: float
    validate_redirects: bool = False
    chunk_size: int = 64 * 1024


def validate_target(target_url: str | None, allowed: AllowedDomains) -> str:
    """
    Check a proxy target against the allow-list

    Args:
        target_url: Value of the `url` query parameter
        allowed: Current allow-list

    Returns:
        The target URL

    Raises:
        ProxyRejected: 400 when missing or not a well-formed absolute http(s)
            URL, 403 when the host is not allowed
    """
    if not target_url:
        raise ProxyRejected("Missing ?url= parameter", status_code=400)

    try:
        parsed = httpx.URL(target_url)
    except httpx.InvalidURL as e:
        logger.warning(f"[PROXY] Invalid URL: {e}")
        raise ProxyRejected("Invalid URL", status_code=400) from e

    host = parsed.host
    if parsed.scheme not in ("http", "https") or not host:
        raise ProxyRejected("Invalid URL", status_code=400)

    if not allowed.is_allowed(host):
        logger.warning(f"[PROXY] Blocked: {host}")
        raise ProxyRejected("Domain not allowed", status_code=403)

    return target_url


async def open_upstream(
    client: httpx.AsyncClient,
    target_url: str,
    allowed: AllowedDomains,
    options: ProxyOptions
) -> httpx.Response:
    """
    Send the upstream request and return the streamed response

    A redirect answer is followed once; the second response is returned
    as-is even when it is itself a redirect. The redirect target is only
    checked against the allow-list when `options.validate_redirects` is set.

    Raises:
        ProxyRejected: Redirect target refused (validation enabled)
        ProxyError: 504 on timeout, 502 on any other transport failure
    """
    headers = {
        "User-Agent": options.user_agent,
        "Accept": "*/*",
        "Accept-Encoding": "identity",
    }
    timeout = httpx.Timeout(options.timeout)

    logger.info(f"[PROXY] {sanitize_url_for_logging(target_url)}")
    response = await _send(client, client.build_request("GET", target_url, headers=headers, timeout=timeout))

    if response.is_redirect and response.next_request is not None:
        redirect_request = response.next_request
        await response.aclose()

        redirect_host = redirect_request.url.host
        logger.info(f"[PROXY] Redirect -> {sanitize_url_for_logging(str(redirect_request.url))}")
        if not allowed.is_allowed(redirect_host):
            if options.validate_redirects:
                logger.warning(f"[PROXY] Blocked redirect to: {redirect_host}")
                raise ProxyRejected("Redirect target not allowed", status_code=403)
            logger.warning(f"[PROXY] Redirect leaves allow-list: {redirect_host}")

        response = await _send(client, redirect_request)

    return response


async def _send(client: httpx.AsyncClient, request: httpx.Request) -> httpx.Response:
    try:
        return await client.send(request, stream=True, follow_redirects=False)
    except httpx.TimeoutException as e:
        logger.error(f"[PROXY] Timeout: {sanitize_url_for_logging(str(request.url))}")
        raise ProxyError("Proxy timeout", status_code=504) from e
    except httpx.HTTPError as e:
        logger.error(f"[PROXY] Error: {type(e).__name__}: {e}")
        raise ProxyError(f"Proxy error: {e}", status_code=502) from e


async def _stream_body(upstream: httpx.Response, chunk_size: int) -> AsyncIterator[bytes]:
    try:
        async for chunk in upstream.aiter_bytes(chunk_size):
            yield chunk
    except httpx.HTTPError as e:
        logger.warning(f"[PROXY] Upstream stream interrupted: {type(e).__name__}: {e}")
    finally:
        await upstream.aclose()


def build_proxy_response(upstream: httpx.Response, chunk_size: int) -> StreamingResponse:
    """
    Wrap an upstream response for the client

    Only content type and length are forwarded (length only for
    identity-encoded bodies), plus permissive CORS headers. The upstream is
    closed on every exit path of the body stream, client disconnect included.
    """
    headers = dict(CORS_HEADERS)
    for name in FORWARDED_HEADERS:
        if name in upstream.headers:
            headers[name.title()] = upstream.headers[name]

    # Body is decoded on the way through, so an encoded length no longer holds
    if "content-encoding" in upstream.headers:
        headers.pop("Content-Length", None)

    return StreamingResponse(
        _stream_body(upstream, chunk_size),
        status_code=upstream.status_code,
        headers=headers,
        background=BackgroundTask(upstream.aclose),
    )
