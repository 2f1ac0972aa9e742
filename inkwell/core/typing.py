"""
Type and time helpers for SQLModel code.

SQLModel fields are declared with Python types but at class level they are
InstrumentedAttribute descriptors; `col` tells the type checker so.

Timestamps are stored in timezone-aware columns, but SQLite hands them back
naive. `as_utc` normalizes anything read from the database before it is
compared with `utc_now()`.
"""

from typing import TYPE_CHECKING, Optional, TypeVar
from datetime import datetime, timezone

if TYPE_CHECKING:
    from sqlalchemy.orm.attributes import InstrumentedAttribute

T = TypeVar("T")


def col(attr: T) -> "InstrumentedAttribute[T]":
    """
    Type helper for SQLAlchemy column operations in queries.

    Usage:
        select(Post).order_by(col(Post.created_at).desc())
    """
    return attr  # type: ignore[return-value]


def utc_now() -> datetime:
    """Current UTC time (timezone-aware). Use as default_factory in SQLModel fields."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


__all__ = ["col", "utc_now", "as_utc"]
