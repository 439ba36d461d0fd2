"""
Module: portfolio_kernel.db.base
Responsibility: Declarative bases for the registry ORM models.
Architecture position: Kernel > DB.  Lowest import target in the kernel;
    must not import models/, selectors/ or domain/.

Invariants enforced:
    - Every row has a uuid4 primary key, stored as a 36-char string so the
      same schema runs on PostgreSQL and SQLite.
    - Timestamps are timezone-aware.
    - Money columns are Numeric(38, 9), never floating point.
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import DateTime, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """UUID in Python, String(36) in the database."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else UUID(value)


class Base(DeclarativeBase):

    type_annotation_map: ClassVar[dict] = {
        datetime: DateTime(timezone=True),
        Decimal: Numeric(38, 9),
        UUID: UUIDString(),
    }

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)


class TrackedBase(Base):
    """Adds server-set ``created_at`` and ``updated_at`` columns."""

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
