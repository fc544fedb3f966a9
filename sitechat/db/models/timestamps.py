"""Timezone-aware UTC timestamps for model columns."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def timestamp_column(index: bool = False) -> Column:  # type: ignore[type-arg]
    """A fresh non-null ``timestamptz`` column (one per model field)."""
    return Column(DateTime(timezone=True), nullable=False, index=index)
