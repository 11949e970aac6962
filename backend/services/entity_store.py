"""Tenant-scoped entity stores for workflow create/update actions.

One ``SqlEntityStore`` wraps one entity model. Keys of a workflow's record
data that match a mapped column are written to it; every other key is kept
in the row's ``attributes`` JSON so no data is dropped.
"""

from datetime import datetime
from typing import Any, Generic, Type, TypeVar

from sqlalchemy import DateTime, inspect, select
from sqlalchemy.ext.asyncio import async_sessionmaker

from core.constants import EntityKind
from db.models.entities import InventoryItem, Order, PurchaseOrder, Supplier
from workflow.interfaces import EntityStore

ModelType = TypeVar("ModelType")

ENTITY_MODELS: dict[EntityKind, type] = {
    EntityKind.SUPPLIERS: Supplier,
    EntityKind.INVENTORY_ITEMS: InventoryItem,
    EntityKind.PURCHASE_ORDERS: PurchaseOrder,
    EntityKind.ORDERS: Order,
}


class SqlEntityStore(EntityStore, Generic[ModelType]):
    """Insert/update access to one entity table.

    Usage:
        store = SqlEntityStore(Supplier, session_factory)
        await store.insert(tenant_id, {"id": ..., "name": "Acme"})
    """

    def __init__(self, model: Type[ModelType], session_factory: async_sessionmaker):
        self.model = model
        self.session_factory = session_factory
        self._columns = {col.key: col for col in inspect(model).columns}

    def _coerce(self, key: str, value: Any) -> Any:
        column = self._columns[key]
        # SQLite's DateTime type only accepts datetime objects
        if isinstance(value, str) and isinstance(column.type, DateTime):
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        return value

    def _split(self, data: dict[str, Any]) -> tuple[dict[str, Any], dict[str, Any]]:
        columns: dict[str, Any] = {}
        extra: dict[str, Any] = {}
        for key, value in data.items():
            if key in self._columns and key != "attributes":
                columns[key] = self._coerce(key, value)
            else:
                extra[key] = value
        return columns, extra

    # ─── Create ────────────────────────────────────────────

    async def insert(self, tenant_id: str, record: dict[str, Any]) -> None:
        columns, extra = self._split(record)
        columns["tenant_id"] = tenant_id
        if extra:
            columns["attributes"] = extra

        async with self.session_factory() as session:
            session.add(self.model(**columns))
            await session.commit()

    # ─── Update ────────────────────────────────────────────

    async def update(
        self, tenant_id: str, record_id: str, fields: dict[str, Any]
    ) -> bool:
        """Update a live record by id within the tenant.

        Returns:
            True if a record matched, False otherwise
        """
        columns, extra = self._split(fields)
        columns.pop("tenant_id", None)
        columns.pop("id", None)

        async with self.session_factory() as session:
            result = await session.execute(
                select(self.model).where(
                    self.model.id == record_id,
                    self.model.tenant_id == tenant_id,
                    self.model.is_deleted == False,  # noqa: E712
                )
            )
            instance = result.scalar_one_or_none()
            if instance is None:
                return False

            for key, value in columns.items():
                setattr(instance, key, value)
            if extra:
                instance.attributes = {**(instance.attributes or {}), **extra}

            await session.commit()
            return True


def build_entity_stores(session_factory: async_sessionmaker) -> dict[EntityKind, EntityStore]:
    """One store per supported entity table."""
    return {
        kind: SqlEntityStore(model, session_factory)
        for kind, model in ENTITY_MODELS.items()
    }
