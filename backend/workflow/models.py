"""Plain data types exchanged between the engine and its collaborators."""

from dataclasses import dataclass, field
from typing import Any, Optional, Union

from core.constants import (
    NotificationChannel,
    NotificationPriority,
    NotificationType,
)

DEFAULT_NOTIFICATION_CHANNELS = (NotificationChannel.IN_APP, NotificationChannel.EMAIL)


@dataclass(frozen=True)
class StoredWorkflow:
    """A workflow row as the repository returns it, before validation."""

    id: str
    tenant_id: str
    name: str = ""
    steps: list[dict[str, Any]] = field(default_factory=list)
    variables: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class EmailMessage:
    from_address: str
    to: Union[str, list[str]]
    subject: str
    html: str

    @property
    def recipients(self) -> list[str]:
        if isinstance(self.to, str):
            return [addr.strip() for addr in self.to.split(",") if addr.strip()]
        return list(self.to)


@dataclass(frozen=True)
class NotificationRecipient:
    user_id: str
    tenant_id: str
    channels: tuple[NotificationChannel, ...] = DEFAULT_NOTIFICATION_CHANNELS


@dataclass(frozen=True)
class NotificationPayload:
    title: str
    message: str
    type: NotificationType = NotificationType.INFO
    category: str = "workflow"
    priority: NotificationPriority = NotificationPriority.MEDIUM
    metadata: dict[str, Any] = field(default_factory=dict)
    action_url: Optional[str] = None
