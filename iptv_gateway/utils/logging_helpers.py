"""
Logging helpers shared by the gateway handlers.
"""
import logging
from urllib.parse import urlsplit, urlunsplit


def sanitize_url_for_logging(url: str) -> str:
    """Remove credentials and query string from a URL for safe logging."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return "<invalid url>"
    if not parts.scheme or not parts.netloc:
        return url

    netloc = parts.netloc
    if "@" in netloc:
        netloc = "***:***@" + netloc.rsplit("@", 1)[1]
    query = "***" if parts.query else ""
    return urlunsplit((parts.scheme, netloc, parts.path, query, ""))


def log_lifecycle(logger: logging.Logger, message: str) -> None:
    """Log a service lifecycle event between separators."""
    logger.info("=" * 60)
    logger.info(message)
    logger.info("=" * 60)
