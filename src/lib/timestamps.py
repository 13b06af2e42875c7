"""Timestamps and unique names."""

from datetime import datetime, timezone
from uuid import uuid4


def generate_uuid() -> str:
    """Random id, used for temporary download file names."""
    return str(uuid4())


def generate_timestamp() -> datetime:
    """Current time, timezone-aware UTC."""
    return datetime.now(timezone.utc)


def format_timestamp(dt: datetime) -> str:
    """ISO 8601 to the second, as written to note frontmatter."""
    return dt.isoformat(timespec="seconds")


def file_stamp(dt: datetime) -> str:
    """
    Filesystem-safe stamp appended to note titles.

    Returns:
        str: e.g. "2025-12-18 14-30"
    """
    return dt.strftime("%Y-%m-%d %H-%M")
