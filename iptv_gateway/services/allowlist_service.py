"""
Allowed Domains Registry

Holds the set of stream hostnames the proxy may forward to. The set is
derived from the playlist and replaced as a whole on every rebuild, so
readers always see either the previous or the new snapshot.
"""
from urllib.parse import urlsplit
import logging


logger = logging.getLogger(__name__)


def extract_stream_hosts(m3u_content: str) -> frozenset[str]:
    """
    Collect hostnames of every URL line in a playlist

    Args:
        m3u_content: Raw playlist text

    Returns:
        Lower-cased hostnames; lines that are not absolute URLs are skipped
    """
    hosts: set[str] = set()
    for raw_line in (m3u_content or "").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        host = hostname_of(line)
        if host:
            hosts.add(host)
    return frozenset(hosts)


def hostname_of(url: str) -> str | None:
    """Lower-cased hostname of an absolute URL, or None"""
    try:
        parts = urlsplit(url)
    except ValueError:
        return None
    if not parts.scheme or not parts.hostname:
        return None
    return parts.hostname


class AllowedDomains:
    """
    Process-wide allow-list of proxy egress hosts.

    Empty until the first playlist fetch; `replace` swaps in a fully built
    frozenset with a single assignment.
    """

    def __init__(self, domains: frozenset[str] | None = None):
        self._domains: frozenset[str] = domains or frozenset()

    @property
    def snapshot(self) -> frozenset[str]:
        return self._domains

    def __len__(self) -> int:
        return len(self._domains)

    def replace(self, domains: frozenset[str]) -> None:
        self._domains = frozenset(domains)
        logger.info(f"Allowed {len(self._domains)} stream domains")

    def rebuild_from_playlist(self, m3u_content: str) -> frozenset[str]:
        """Derive a new allow-list from playlist text and swap it in"""
        domains = extract_stream_hosts(m3u_content)
        self.replace(domains)
        return domains

    def is_allowed(self, hostname: str | None) -> bool:
        """Exact match or subdomain of an allowed entry"""
        if not hostname:
            return False
        host = hostname.lower().rstrip(".")
        domains = self._domains
        if host in domains:
            return True
        return any(host.endswith("." + domain) for domain in domains)
