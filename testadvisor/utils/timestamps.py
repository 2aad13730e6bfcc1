"""
Timestamp Utilities for TestAdvisor

Instants are tz-aware UTC datetimes. Recorder output may carry up to nine
fractional digits; datetimes hold six, so extra digits are truncated.
"""

import re
from datetime import datetime, timezone
from typing import Any, Optional

_ISO_INSTANT = re.compile(
    r"^(?P<base>\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}(?::\d{2})?)"
    r"(?:\.(?P<fraction>\d+))?"
    r"(?P<zone>Z|z|[+-]\d{2}:?\d{2})?$"
)


def parse_instant(value: Any) -> Optional[datetime]:
    """
    Parse an instant from an ISO-8601 string, epoch seconds or a datetime

    Naive values are taken as UTC. Returns None for None or empty strings.

    Raises:
        ValueError: If the value cannot be interpreted as an instant
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return to_utc(value)
    if isinstance(value, bool):
        raise ValueError(f"Not an instant: {value!r}")
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    if not isinstance(value, str):
        raise ValueError(f"Not an instant: {value!r}")

    text = value.strip()
    if not text:
        return None

    match = _ISO_INSTANT.match(text)
    if not match:
        raise ValueError(f"Not an ISO-8601 instant: {value!r}")

    normalized = match.group("base")
    fraction = match.group("fraction")
    if fraction:
        normalized += "." + fraction[:6].ljust(6, "0")
    zone = match.group("zone")
    if zone and zone not in ("Z", "z"):
        if ":" not in zone:
            zone = zone[:3] + ":" + zone[3:]
        normalized += zone

    return to_utc(datetime.fromisoformat(normalized))


def format_instant(value: datetime) -> str:
    """
    ISO-8601 UTC string with nine fractional digits

    Digits below the microsecond are always zero since datetimes do not hold
    them, e.g. ``2021-05-25T03:36:13.420563000Z``.
    """
    return to_utc(value).strftime("%Y-%m-%dT%H:%M:%S.%f") + "000Z"


def to_utc(value: datetime) -> datetime:
    """Return ``value`` as a tz-aware UTC datetime"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    """Current time as a tz-aware UTC datetime"""
    return datetime.now(timezone.utc)


__all__ = ["format_instant", "parse_instant", "to_utc", "utc_now"]
