"""Base model classes for all SQLAlchemy models."""

from datetime import datetime
from typing import Optional
from uuid import uuid4

from sqlalchemy import Boolean, DateTime, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Declarative base shared by every table."""

    pass


class SoftDeleteMixin:
    """Mixin that adds soft delete capability to any model.

    Soft-deleted rows stay in the table but are invisible to workflow
    writes: entity stores only update rows where ``is_deleted`` is False.
    """

    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None, index=True
    )
    is_deleted: Mapped[bool] = mapped_column(
        Boolean, default=False, index=True
    )


class TenantMixin:
    """Owning tenant; every read and write is scoped by it."""

    tenant_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)


class BaseModel(Base):
    """Abstract base model with a UUID key and timestamps.

    Provides:
    - id: UUID primary key
    - created_at / updated_at: automatic timestamps
    """

    __abstract__ = True

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid4())
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=func.now(), onupdate=func.now()
    )
