"""Database-agnostic type definitions for SQLAlchemy models.

This module provides type definitions that work with both SQLite and PostgreSQL.
"""
from datetime import datetime, timezone, tzinfo
from typing import Optional

from sqlalchemy import DateTime, Uuid
from sqlalchemy.types import TypeDecorator


# Native UUID on PostgreSQL, CHAR(32) on SQLite
UUIDType = Uuid


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime], assume: tzinfo = timezone.utc) -> Optional[datetime]:
    """Aware UTC copy of `value`; naive values are read as wall time in `assume`."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=assume)
    return value.astimezone(timezone.utc)


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware timestamp column.

    PostgreSQL stores TIMESTAMPTZ natively; SQLite drops the offset, so values
    are normalised to UTC on the way in and re-tagged as UTC on the way out.
    Every datetime read from the database is therefore aware and comparable.
    """
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        if value.tzinfo is None:
            raise ValueError("naive datetime is not allowed; use an aware UTC value")
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
