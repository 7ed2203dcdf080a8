"""
Static asset helpers

Resolves request paths inside the static root and reads files with aiofiles.
"""
import logging
import mimetypes
from pathlib import Path

import aiofiles


logger = logging.getLogger(__name__)

INDEX_FILE = "index.html"

MIME_TYPES = {
    ".html": "text/html; charset=utf-8",
    ".css": "text/css; charset=utf-8",
    ".js": "application/javascript; charset=utf-8",
    ".json": "application/json; charset=utf-8",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".woff2": "font/woff2",
}


class PathTraversalError(ValueError):
    """Raised when a request path resolves outside the static root"""
    pass


def resolve_static_path(root: Path, request_path: str) -> Path:
    """
    Map a request path onto a file below `root`

    Args:
        root: Static root directory
        request_path: URL path without the leading slash ('' means index)

    Returns:
        Absolute path of the requested file

    Raises:
        PathTraversalError: If the resolved path escapes `root`
    """
    base = root.resolve()
    relative = request_path.lstrip("/") or INDEX_FILE
    candidate = (base / relative).resolve()
    if candidate != base and not candidate.is_relative_to(base):
        logger.warning(f"[STATIC] Path traversal attempt: {request_path!r}")
        raise PathTraversalError(request_path)
    return candidate


def guess_content_type(path: Path) -> str:
    suffix = path.suffix.lower()
    if suffix in MIME_TYPES:
        return MIME_TYPES[suffix]
    guessed, _ = mimetypes.guess_type(path.name)
    return guessed or "application/octet-stream"


async def read_static_file(path: Path) -> bytes:
    """
    Read a static file

    Raises:
        FileNotFoundError: If the file does not exist (or is a directory)
        OSError: If the file cannot be read
    """
    if path.is_dir():
        raise FileNotFoundError(str(path))
    async with aiofiles.open(path, "rb") as f:
        return await f.read()
