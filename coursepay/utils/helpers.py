"""Datetime helpers."""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime.

    MySQL DATETIME columns keep no offset; values are always written in UTC.
    """
    return datetime.now(UTC)
