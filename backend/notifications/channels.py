"""Notification channel implementations.

Each channel handles delivery for one transport (in-app, email).
The NotificationManager dispatches to the appropriate channel(s).
Delivery errors are raised to the caller, never swallowed.
"""

import asyncio
import html
import smtplib
from abc import ABC, abstractmethod
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Awaitable, Callable, Optional

import structlog

from app.config import SmtpConfig
from core.constants import NotificationChannel
from workflow.interfaces import EmailTransport
from workflow.models import EmailMessage, NotificationPayload, NotificationRecipient

logger = structlog.get_logger(__name__)

InAppPublisher = Callable[[NotificationRecipient, dict[str, Any]], Awaitable[None]]
AddressResolver = Callable[[NotificationRecipient], Awaitable[Optional[str]]]


# ─── SMTP Transport ────────────────────────────────────────────

class SmtpEmailTransport(EmailTransport):
    """Send HTML email over SMTP.

    Config comes from ``Settings.smtp``: STARTTLS is used on plain
    connections, implicit TLS when ``secure`` is set, and login only when
    credentials are configured.
    """

    def __init__(self, config: SmtpConfig):
        self.config = config

    async def send(self, message: EmailMessage) -> None:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = message.subject
        msg["From"] = message.from_address
        msg["To"] = ", ".join(message.recipients)
        msg.attach(MIMEText(message.html, "html"))

        # Run in executor to avoid blocking the event loop
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(
            None, lambda: self._send_smtp(message.from_address, message.recipients, msg)
        )
        logger.info("Email sent", to=message.recipients, subject=message.subject)

    def _send_smtp(self, from_addr: str, to_addrs: list[str], msg: MIMEMultipart) -> None:
        """Synchronous SMTP send."""
        config = self.config
        smtp_cls = smtplib.SMTP_SSL if config.secure else smtplib.SMTP
        with smtp_cls(config.host, config.port) as server:
            if not config.secure:
                server.starttls()
            if config.user and config.password:
                server.login(config.user, config.password)
            server.sendmail(from_addr, to_addrs, msg.as_string())


# ─── Base Channel ──────────────────────────────────────────────

class BaseChannel(ABC):
    """Abstract base for notification channels."""

    channel_type: NotificationChannel

    @abstractmethod
    async def send(
        self, recipient: NotificationRecipient, payload: NotificationPayload
    ) -> None:
        """Deliver ``payload`` to one recipient through this channel."""
        ...


# ─── In-App Channel ───────────────────────────────────────────

class InAppChannel(BaseChannel):
    """Hand in-app notifications to a publisher (e.g. a websocket hub or inbox table)."""

    channel_type = NotificationChannel.IN_APP

    def __init__(self, publisher: InAppPublisher):
        self._publisher = publisher

    async def send(
        self, recipient: NotificationRecipient, payload: NotificationPayload
    ) -> None:
        await self._publisher(
            recipient,
            {
                "type": "notification",
                "title": payload.title,
                "message": payload.message,
                "notification_type": payload.type.value,
                "category": payload.category,
                "priority": payload.priority.value,
                "metadata": payload.metadata,
                "action_url": payload.action_url,
            },
        )


# ─── Email Channel ─────────────────────────────────────────────

class EmailNotificationChannel(BaseChannel):
    """Email a notification to the address the resolver finds for a user."""

    channel_type = NotificationChannel.EMAIL

    def __init__(
        self,
        transport: EmailTransport,
        address_resolver: AddressResolver,
        from_address: str,
    ):
        self.transport = transport
        self.address_resolver = address_resolver
        self.from_address = from_address

    async def send(
        self, recipient: NotificationRecipient, payload: NotificationPayload
    ) -> None:
        address = await self.address_resolver(recipient)
        if not address:
            logger.warning("No email address for recipient", user_id=recipient.user_id)
            return

        await self.transport.send(
            EmailMessage(
                from_address=self.from_address,
                to=address,
                subject=payload.title,
                html=render_notification_html(payload),
            )
        )


def render_notification_html(payload: NotificationPayload) -> str:
    body = html.escape(payload.message).replace("\n", "<br>")
    link = ""
    if payload.action_url:
        link = f'<p><a href="{html.escape(payload.action_url)}">Open</a></p>'
    return f"""
    <div style="font-family: sans-serif; max-width: 600px; margin: 0 auto;">
        <h2 style="color: #333;">{html.escape(payload.title)}</h2>
        <div style="color: #555; line-height: 1.6;">{body}</div>
        {link}
    </div>
    """
