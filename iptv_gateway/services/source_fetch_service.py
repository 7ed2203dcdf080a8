"""
Source Fetch Service

Downloads the operator-configured playlist and guide documents with retry
logic. Source URLs stay server-side and are only logged sanitized.
"""
import asyncio
import logging

import httpx

from iptv_gateway.utils.logging_helpers import sanitize_url_for_logging


logger = logging.getLogger(__name__)


async def fetch_source_text(
    client: httpx.AsyncClient,
    url: str,
    *,
    max_retries: int = 2,
    backoff_factor: float = 2.0
) -> str:
    """
    Download a text document with exponential backoff retry logic

    Retries on transient network errors (timeouts, connection errors) and
    5xx responses. Does NOT retry on 4xx HTTP errors. At most one redirect
    hop is followed.

    Args:
        client: Shared HTTP client
        url: Source URL
        max_retries: Maximum number of attempts
        backoff_factor: Exponential backoff multiplier (wait = backoff_factor ^ attempt)

    Returns:
        Response body decoded as text

    Raises:
        httpx.HTTPError: If download fails after all retries
    """
    safe_url = sanitize_url_for_logging(url)
    last_error: Exception | None = None

    for attempt in range(max_retries):
        try:
            response = await client.get(url)
            if response.is_redirect and response.next_request is not None:
                logger.debug(f"Following redirect for {safe_url}")
                response = await client.send(response.next_request)
            response.raise_for_status()

            logger.info(f"Fetched {len(response.content) / 1024:.1f} KB from {safe_url}")
            return response.text

        except (httpx.TimeoutException, httpx.TransportError) as e:
            last_error = e
            if attempt < max_retries - 1:
                wait_time = backoff_factor ** attempt
                logger.warning(
                    f"Fetch attempt {attempt + 1}/{max_retries} failed (transient error): {type(e).__name__}. "
                    f"Retrying in {wait_time:.1f}s..."
                )
                await asyncio.sleep(wait_time)
            else:
                logger.error(f"Fetch of {safe_url} failed after {max_retries} attempts (transient error)")

        except httpx.HTTPStatusError as e:
            if 400 <= e.response.status_code < 500:
                logger.error(f"HTTP {e.response.status_code} (client error) fetching {safe_url}")
                raise

            last_error = e
            if attempt < max_retries - 1:
                wait_time = backoff_factor ** attempt
                logger.warning(
                    f"Fetch attempt {attempt + 1}/{max_retries} failed "
                    f"(HTTP {e.response.status_code} server error). "
                    f"Retrying in {wait_time:.1f}s..."
                )
                await asyncio.sleep(wait_time)
            else:
                logger.error(f"Fetch of {safe_url} failed after {max_retries} attempts (HTTP {e.response.status_code})")

    if last_error:
        raise last_error

    raise RuntimeError(f"Failed to fetch {safe_url} after {max_retries} attempts")
