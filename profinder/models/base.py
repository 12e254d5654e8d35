"""
Declarative base and column mixins shared by the ProFinder tables.
"""
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, String, func
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(AsyncAttrs, DeclarativeBase):
    """Declarative base; alembic autogenerate reads its metadata."""


def new_record_id() -> str:
    """Opaque ID for server-created records (messages, reports)."""
    return str(uuid.uuid4())


class TimestampMixin:
    """Server-stamped creation time and last-write time."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        onupdate=func.now(),
        nullable=True,
    )


class GeneratedIdMixin:
    """
    String primary key filled with ``new_record_id()`` on insert.

    User rows do not use this: their ID is the identity provider's subject.
    """

    id: Mapped[str] = mapped_column(String(255), primary_key=True, default=new_record_id)
