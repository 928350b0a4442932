"""Timestamp helpers for DHIS2 date-time parameters."""

import datetime


def timestamp_seconds(value: datetime.datetime) -> str:
    """Format *value* as ``YYYY-MM-DDTHH:MM:SS``."""
    return value.strftime("%Y-%m-%dT%H:%M:%S")


def timestamp_millis(value: datetime.datetime) -> str:
    """Format *value* as ``YYYY-MM-DDTHH:MM:SS.mmm``."""
    return value.isoformat(timespec="milliseconds")[:23]


def timestamp() -> str:
    """Return the current UTC timestamp as an ISO-8601 string."""
    return datetime.datetime.now(tz=datetime.UTC).isoformat()
