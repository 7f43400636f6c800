"""Timestamp formatting helpers for forged upstream headers."""

from __future__ import annotations

import datetime

UPSTREAM_UTC_OFFSET = datetime.timedelta(hours=8)
UPSTREAM_OFFSET_SUFFIX = "+08:00"


def to_iso_millis_utc(dt_value: datetime.datetime) -> str:
    """Render ``dt_value`` as UTC ISO-8601 with milliseconds and a 'Z' suffix.

    Naive datetimes are assumed to already be in UTC.

    Returns:
        A string such as '2025-11-17T13:42:00.123Z'
    """
    if dt_value.tzinfo is not None:
        dt_value = dt_value.astimezone(datetime.timezone.utc).replace(tzinfo=None)
    return dt_value.isoformat(timespec="milliseconds") + "Z"


def format_upstream_timestamp(now: datetime.datetime) -> str:
    """Format ``now`` the way the upstream web client does.

    The instant is shifted forward by eight hours and the UTC marker is
    swapped for a literal '+08:00'. This is string surgery, not a timezone
    conversion.
    """
    shifted = to_iso_millis_utc(now + UPSTREAM_UTC_OFFSET)
    return shifted.replace("Z", UPSTREAM_OFFSET_SUFFIX)


__all__ = ["format_upstream_timestamp", "to_iso_millis_utc"]
