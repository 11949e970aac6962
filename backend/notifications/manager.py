"""Notification Manager — central dispatcher for notification channels.

Writes one inbox row per recipient (when a store is configured), then
routes the notification to the channels the recipient asked for, skipping
channels that have not been registered.
"""

from typing import Optional, Sequence

import structlog

from core.constants import NotificationChannel
from notifications.channels import (
    AddressResolver,
    BaseChannel,
    EmailNotificationChannel,
    InAppChannel,
    InAppPublisher,
)
from workflow.interfaces import EmailTransport, NotificationSender, NotificationStore
from workflow.models import NotificationPayload, NotificationRecipient

logger = structlog.get_logger(__name__)


class NotificationManager(NotificationSender):
    """Central notification dispatcher.

    Channel errors propagate: a failed delivery fails the caller.
    """

    def __init__(
        self,
        from_address: str = "noreply@pls-scm.com",
        store: Optional[NotificationStore] = None,
    ):
        self.from_address = from_address
        self.store = store
        self._channels: dict[NotificationChannel, BaseChannel] = {}

    def register_channel(self, channel: BaseChannel) -> None:
        """Register a notification channel."""
        self._channels[channel.channel_type] = channel
        logger.info("Notification channel registered", channel=channel.channel_type.value)

    def configure_channels(
        self,
        email_transport: Optional[EmailTransport] = None,
        address_resolver: Optional[AddressResolver] = None,
        publisher: Optional[InAppPublisher] = None,
    ) -> None:
        """Register the channels whose collaborators are available.

        Email needs both a transport and a way to look up a user's address.
        """
        if publisher is not None:
            self.register_channel(InAppChannel(publisher))

        if email_transport is not None and address_resolver is not None:
            self.register_channel(
                EmailNotificationChannel(email_transport, address_resolver, self.from_address)
            )

    @property
    def channels(self) -> list[NotificationChannel]:
        return list(self._channels.keys())

    async def send_notification(
        self,
        recipients: Sequence[NotificationRecipient],
        payload: NotificationPayload,
    ) -> None:
        for recipient in recipients:
            if self.store is not None:
                await self.store.record(recipient, payload)

            for channel_type in recipient.channels:
                channel = self._channels.get(channel_type)
                if channel is None:
                    logger.warning(
                        "Notification channel not configured",
                        channel=channel_type.value,
                        user_id=recipient.user_id,
                    )
                    continue

                await channel.send(recipient, payload)
                logger.debug(
                    "Notification delivered",
                    channel=channel_type.value,
                    user_id=recipient.user_id,
                )
