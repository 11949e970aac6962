"""Collaborator interfaces the engine depends on.

The engine never talks to a database, mail server or notification service
directly; it is handed implementations of these at construction. SQL,
SMTP and channel-based defaults live in ``services`` and ``notifications``.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence

from workflow.models import (
    EmailMessage,
    NotificationPayload,
    NotificationRecipient,
    StoredWorkflow,
)


class WorkflowRepository(ABC):
    @abstractmethod
    async def get(self, tenant_id: str, workflow_id: str) -> Optional[StoredWorkflow]:
        """Return the workflow with its ordered steps, or None if absent."""


class ExecutionStore(ABC):
    """Audit store for executions and their step runs.

    Every write carries the tenant and must be scoped by it.
    """

    @abstractmethod
    async def create_execution(self, fields: dict[str, Any]) -> str:
        """Insert an execution record and return its id."""

    @abstractmethod
    async def update_execution(
        self, tenant_id: str, execution_id: str, fields: dict[str, Any]
    ) -> None:
        ...

    @abstractmethod
    async def create_step_run(self, fields: dict[str, Any]) -> str:
        """Insert a step run record and return its id."""

    @abstractmethod
    async def update_step_run(
        self, tenant_id: str, step_run_id: str, fields: dict[str, Any]
    ) -> None:
        ...


class EmailTransport(ABC):
    @abstractmethod
    async def send(self, message: EmailMessage) -> None:
        """Deliver ``message``; delivery errors are raised, not returned."""


class NotificationSender(ABC):
    @abstractmethod
    async def send_notification(
        self,
        recipients: Sequence[NotificationRecipient],
        payload: NotificationPayload,
    ) -> None:
        ...


class NotificationStore(ABC):
    """Inbox of per-user notification rows."""

    @abstractmethod
    async def record(
        self, recipient: NotificationRecipient, payload: NotificationPayload
    ) -> str:
        """Persist one notification for ``recipient`` and return its id."""


class EntityStore(ABC):
    """Tenant-scoped write access to one entity table."""

    @abstractmethod
    async def insert(self, tenant_id: str, record: dict[str, Any]) -> None:
        ...

    @abstractmethod
    async def update(
        self, tenant_id: str, record_id: str, fields: dict[str, Any]
    ) -> bool:
        """Update the row matching id and tenant; False if none matched."""
