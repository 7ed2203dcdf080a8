"""
Date and Time utilities

Parsing of compact XMLTV timestamps and the "now" used by guide lookups.
"""
from datetime import datetime, timedelta, timezone
import logging
import re

logger = logging.getLogger(__name__)

XMLTV_TIME_MIN_LENGTH = 14

_OFFSET_RE = re.compile(r"^[+-]\d{4}$")


class DateFormatError(ValueError):
    """Raised when an XMLTV timestamp cannot be parsed"""
    pass


def parse_xmltv_time(time_str: str | None) -> datetime:
    """
    Convert XMLTV time to a timezone-aware UTC datetime

    Args:
        time_str: XMLTV time like '20080715003000 -0600' (offset optional)

    Returns:
        Timezone-aware datetime in UTC

    Raises:
        DateFormatError: If the value is shorter than 14 characters or malformed
    """
    if not time_str:
        raise DateFormatError("Empty XMLTV timestamp")

    parts = time_str.strip().split()
    time_part = parts[0] if parts else ""
    if len(time_part) < XMLTV_TIME_MIN_LENGTH:
        raise DateFormatError(f"XMLTV timestamp too short: '{time_str}'")

    try:
        dt = datetime.strptime(time_part[:XMLTV_TIME_MIN_LENGTH], "%Y%m%d%H%M%S")
    except ValueError as e:
        raise DateFormatError(f"Invalid XMLTV timestamp: '{time_str}'") from e

    tz_part = parts[1] if len(parts) > 1 else "+0000"
    if not _OFFSET_RE.match(tz_part):
        raise DateFormatError(f"Invalid XMLTV timezone offset: '{time_str}'")

    tz_sign = 1 if tz_part[0] == "+" else -1
    tz_offset_minutes = tz_sign * (int(tz_part[1:3]) * 60 + int(tz_part[3:5]))

    dt_utc = dt - timedelta(minutes=tz_offset_minutes)
    return dt_utc.replace(tzinfo=timezone.utc)


def utc_now() -> datetime:
    """Current instant as an aware UTC datetime"""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC; convert aware ones to UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
