"""Workflow actions — the side effects an action step can perform.

Each action is registered under its ActionKind in an ActionRegistry and
receives its collaborators (email transport, entity stores, notification
sender) at construction.
"""

from abc import ABC, abstractmethod
from typing import Mapping, Optional
from uuid import uuid4

import structlog

from core.constants import ActionKind, EntityKind
from core.exceptions import UnsupportedActionError, UnsupportedEntityError
from core.utils import utc_now
from workflow.context import ExecutionContext
from workflow.definitions import (
    ActionParameters,
    CreateRecordParameters,
    RecipientConfig,
    SendEmailParameters,
    SendNotificationParameters,
    UpdateRecordParameters,
)
from workflow.interfaces import EmailTransport, EntityStore, NotificationSender
from workflow.models import EmailMessage, NotificationPayload, NotificationRecipient

logger = structlog.get_logger(__name__)


class WorkflowAction(ABC):
    kind: ActionKind

    @abstractmethod
    async def perform(self, parameters: ActionParameters, context: ExecutionContext) -> None:
        ...


class SendEmailAction(WorkflowAction):
    kind = ActionKind.SEND_EMAIL

    def __init__(self, transport: EmailTransport, default_sender: str):
        self.transport = transport
        self.default_sender = default_sender

    async def perform(self, parameters: SendEmailParameters, context: ExecutionContext) -> None:
        message = EmailMessage(
            from_address=parameters.from_address or self.default_sender,
            to=parameters.to,
            subject=parameters.subject,
            html=parameters.body,
        )
        await context.token.guard(self.transport.send(message))
        logger.info("Workflow email sent", to=parameters.to, subject=parameters.subject)


class _EntityAction(WorkflowAction):
    def __init__(self, stores: Mapping[EntityKind, EntityStore]):
        self.stores = dict(stores)

    def store_for(self, table: EntityKind) -> EntityStore:
        store = self.stores.get(table)
        if store is None:
            raise UnsupportedEntityError(getattr(table, "value", table))
        return store


class CreateRecordAction(_EntityAction):
    kind = ActionKind.CREATE_RECORD

    async def perform(self, parameters: CreateRecordParameters, context: ExecutionContext) -> None:
        store = self.store_for(parameters.table)
        record = {
            "id": str(uuid4()),
            "created_at": utc_now(),
            "created_by": context.user_id,
            **parameters.data,
            # Tenant always comes from the run, never from step data
            "tenant_id": context.tenant_id,
        }
        await context.token.guard(store.insert(context.tenant_id, record))
        logger.info("Workflow created record", table=parameters.table.value, record_id=record["id"])


class UpdateRecordAction(_EntityAction):
    kind = ActionKind.UPDATE_RECORD

    async def perform(self, parameters: UpdateRecordParameters, context: ExecutionContext) -> None:
        store = self.store_for(parameters.table)
        fields = {
            **parameters.data,
            "updated_at": utc_now(),
            "updated_by": context.user_id,
        }
        fields.pop("tenant_id", None)
        record_id = str(parameters.record_id)
        matched = await context.token.guard(store.update(context.tenant_id, record_id, fields))
        if matched:
            logger.info("Workflow updated record", table=parameters.table.value, record_id=record_id)
        else:
            logger.warning(
                "Workflow update matched no record",
                table=parameters.table.value,
                record_id=record_id,
            )


def normalize_recipient(recipient: RecipientConfig, tenant_id: str) -> NotificationRecipient:
    """Bind a validated recipient to the tenant of the run."""
    return NotificationRecipient(
        user_id=recipient.user_id,
        tenant_id=tenant_id,
        channels=recipient.channels,
    )


class SendNotificationAction(WorkflowAction):
    kind = ActionKind.SEND_NOTIFICATION

    def __init__(self, sender: NotificationSender):
        self.sender = sender

    async def perform(
        self, parameters: SendNotificationParameters, context: ExecutionContext
    ) -> None:
        recipients = [normalize_recipient(r, context.tenant_id) for r in parameters.recipients]
        payload = NotificationPayload(
            title=parameters.title,
            message=parameters.message,
            type=parameters.type,
            category=parameters.category,
            priority=parameters.priority,
            metadata={"source": "workflow"},
        )
        await context.token.guard(self.sender.send_notification(recipients, payload))
        logger.info(
            "Workflow notification sent",
            recipients=len(recipients),
            title=parameters.title,
        )


class ActionRegistry:
    """Maps action kinds to configured action instances."""

    def __init__(self, actions: Optional[list[WorkflowAction]] = None):
        self._actions: dict[ActionKind, WorkflowAction] = {}
        for action in actions or []:
            self.register(action)

    def register(self, action: WorkflowAction) -> None:
        self._actions[action.kind] = action

    def resolve(self, kind: ActionKind) -> WorkflowAction:
        action = self._actions.get(kind)
        if action is None:
            raise UnsupportedActionError(getattr(kind, "value", kind))
        return action

    @property
    def available_actions(self) -> list[ActionKind]:
        return list(self._actions.keys())


def build_action_registry(
    *,
    email_transport: Optional[EmailTransport] = None,
    default_sender: str = "noreply@pls-scm.com",
    entity_stores: Optional[Mapping[EntityKind, EntityStore]] = None,
    notification_sender: Optional[NotificationSender] = None,
) -> ActionRegistry:
    """Register every action whose collaborator was supplied."""
    registry = ActionRegistry()
    if email_transport is not None:
        registry.register(SendEmailAction(email_transport, default_sender))
    if entity_stores is not None:
        registry.register(CreateRecordAction(entity_stores))
        registry.register(UpdateRecordAction(entity_stores))
    if notification_sender is not None:
        registry.register(SendNotificationAction(notification_sender))
    return registry
