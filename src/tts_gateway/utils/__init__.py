"""Utility helpers for gateway services."""

from .datetime_utils import format_upstream_timestamp, to_iso_millis_utc

__all__ = ["format_upstream_timestamp", "to_iso_millis_utc"]
