"""
Base configurations and mixins for database models.

This module provides the foundation for all database models in the Taskboard
application: the declarative base with dict serialization, and mixins for
timestamps and ObjectId-shaped primary keys.
"""

from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, String, inspect
from sqlalchemy.orm import declarative_base

from taskboard.utils.object_id import generate_object_id


def utc_now() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from backends without tz support."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class CustomBase:
    """
    Custom base class for SQLAlchemy models with enhanced serialization.

    ``to_dict`` converts model instances to plain dictionaries keyed by column
    name, rendering datetimes as ISO-8601 strings.
    """

    def to_dict(self) -> dict:
        d = {}
        if not self:
            return d
        for column in inspect(self).mapper.column_attrs:
            value = getattr(self, column.key)
            if isinstance(value, datetime):
                d[column.key] = as_utc(value).isoformat()
            else:
                d[column.key] = value
        return d


# Create the base class for all models
Base = declarative_base(cls=CustomBase)


class TimestampMixin:
    """
    Adds created_at/updated_at columns.

    Both are set on insert; updated_at is refreshed on every ORM update.
    """

    created_at = Column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
        comment="Timestamp when the record was created",
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        nullable=False,
        comment="Timestamp when the record was last updated",
    )


class ObjectIdMixin:
    """Adds a 24-hex-character string primary key generated on insert."""

    id = Column(
        String(24),
        primary_key=True,
        default=generate_object_id,
        index=True,
        comment="Primary key, 24 hexadecimal characters",
    )


__all__ = ["Base", "TimestampMixin", "ObjectIdMixin", "utc_now", "as_utc"]
