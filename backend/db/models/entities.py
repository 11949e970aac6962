"""Operations entities that workflows may create or update.

Only the columns workflows commonly set are mapped; any other keys in a
workflow's record data are kept in ``attributes``.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import JSON, DateTime, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from db.base import BaseModel, SoftDeleteMixin, TenantMixin


class _WorkflowWritable(TenantMixin, SoftDeleteMixin, BaseModel):
    __abstract__ = True

    status: Mapped[Optional[str]] = mapped_column(String(30), nullable=True, index=True)
    created_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    updated_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    attributes: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)


class Supplier(_WorkflowWritable):
    __tablename__ = "suppliers"

    name: Mapped[Optional[str]] = mapped_column(nullable=True, index=True)
    supplier_code: Mapped[Optional[str]] = mapped_column(nullable=True)
    email: Mapped[Optional[str]] = mapped_column(nullable=True)


class InventoryItem(_WorkflowWritable):
    __tablename__ = "inventory_items"

    sku: Mapped[Optional[str]] = mapped_column(nullable=True, index=True)
    name: Mapped[Optional[str]] = mapped_column(nullable=True)
    quantity_on_hand: Mapped[Optional[int]] = mapped_column(nullable=True)
    reorder_point: Mapped[Optional[int]] = mapped_column(nullable=True)


class PurchaseOrder(_WorkflowWritable):
    __tablename__ = "purchase_orders"

    po_number: Mapped[Optional[str]] = mapped_column(nullable=True, index=True)
    supplier_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    total_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(15, 2), nullable=True)
    expected_delivery_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )


class Order(_WorkflowWritable):
    __tablename__ = "orders"

    order_number: Mapped[Optional[str]] = mapped_column(nullable=True, index=True)
    customer_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    total_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(15, 2), nullable=True)
    priority: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
