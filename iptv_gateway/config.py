from pathlib import Path
import logging

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


logger = logging.getLogger(__name__)

DEFAULT_STATIC_DIR = Path(__file__).resolve().parent / "static"


class CustomSettings(BaseSettings):
    """Gateway settings loaded from environment variables and `.env`.

    Source URLs are operator secrets: they are validated here and never
    logged or returned verbatim.
    """

    m3u_url: str | None = None
    epg_url: str = "https://epg.ovh/pl.xml"

    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"
    static_dir: Path = DEFAULT_STATIC_DIR

    proxy_timeout_sec: float = 30.0
    proxy_user_agent: str = "Mozilla/5.0 (IPTV Player Proxy)"
    proxy_validate_redirects: bool = False
    proxy_chunk_size: int = 64 * 1024

    source_fetch_max_retries: int = 2
    source_fetch_backoff_factor: float = 2.0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("m3u_url", mode="before")
    @classmethod
    def blank_m3u_url_is_unset(cls, value):
        """Treat an empty M3U_URL as not configured."""
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("m3u_url", "epg_url")
    @classmethod
    def validate_source_url(cls, value: str | None, info) -> str | None:
        """Validate source URLs are HTTP/HTTPS."""
        if value is None:
            return value
        value = value.strip()
        if not value.lower().startswith(("http://", "https://")):
            raise ValueError(f"{info.field_name} must be an HTTP/HTTPS URL")
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        normalized = value.upper()
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if normalized not in allowed:
            raise ValueError(f"log_level must be one of {sorted(allowed)}")
        return normalized

    @field_validator("port")
    @classmethod
    def validate_port(cls, value: int) -> int:
        if not 0 < value < 65536:
            raise ValueError("port must be between 1 and 65535")
        return value

    @field_validator("proxy_timeout_sec", "source_fetch_backoff_factor")
    @classmethod
    def validate_positive_floats(cls, value: float, info) -> float:
        """Ensure timeouts and backoff values are positive."""
        if value <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return value

    @field_validator("proxy_chunk_size", "source_fetch_max_retries")
    @classmethod
    def validate_positive_ints(cls, value: int, info) -> int:
        if value <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return value

    def __init__(self, **data):
        """Initialize settings and log configuration."""
        super().__init__(**data)

        logger.info("Configuration loaded:")
        logger.info("  Playlist source: %s", "configured" if self.m3u_url else "not configured")
        logger.info("  Guide source: configured")
        logger.info("  Static root: %s", self.static_dir)
        logger.info("  Proxy timeout: %ss", self.proxy_timeout_sec)
        logger.info(
            "  Proxy redirect validation: %s",
            "enabled" if self.proxy_validate_redirects else "disabled",
        )
        logger.info("  Source fetch attempts: %s", self.source_fetch_max_retries)


settings = CustomSettings()


def setup_logging(level: str | None = None) -> None:
    """Configure application logging."""
    logging.basicConfig(
        level=getattr(logging, (level or settings.log_level).upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
