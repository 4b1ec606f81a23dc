"""Base model utilities for SQLAlchemy."""

from enum import Enum as PyEnum
from uuid import uuid4

from sqlalchemy import Column, DateTime, Enum, Integer, Uuid

from jasb.utils.time_utils import utc_now


def enum_column_type(enum_cls: type[PyEnum], name: str) -> Enum:
    """Portable enum column storing member values rather than names."""
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        length=32,
        values_callable=lambda members: [m.value for m in members],
    )


class UUIDMixin:
    """Mixin that adds UUID primary key."""

    id = Column(
        Uuid,
        primary_key=True,
        default=uuid4,
        nullable=False,
        comment="Unique identifier",
    )


class TimestampMixin:
    """Mixin that adds created and modified fields to models."""

    created = Column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        comment="When the record was created",
    )

    modified = Column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        comment="When the record was last modified",
    )


class VersionedMixin(TimestampMixin):
    """
    Optimistic-concurrency token.

    ``version`` only ever moves through ``services.version_guard``; writers must
    present the version they read.
    """

    version = Column(
        Integer,
        nullable=False,
        default=0,
        comment="Compare-and-swap token, incremented on every write",
    )
