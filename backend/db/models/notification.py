"""User notification inbox model."""

from typing import Optional

from sqlalchemy import JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from db.base import BaseModel, TenantMixin


class Notification(TenantMixin, BaseModel):
    """One notification for one user, written before any channel delivers it.

    Attributes:
        user_id: Recipient
        title / message: Notification content
        type: info, success, warning, error
        category: Free-form grouping (``workflow`` for engine notifications)
        priority: low, medium, high, urgent
        details: Extra metadata (stored in the ``metadata`` column)
        action_url: Optional link the UI opens
        status: unread or read
    """

    __tablename__ = "notifications"

    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(20), default="info")
    category: Mapped[str] = mapped_column(String(50), default="workflow", index=True)
    priority: Mapped[str] = mapped_column(String(20), default="medium")
    details: Mapped[dict] = mapped_column("metadata", JSON, default=dict)
    action_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="unread", index=True)
