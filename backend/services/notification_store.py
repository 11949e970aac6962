"""SQL-backed notification inbox."""

from uuid import uuid4

import structlog
from sqlalchemy.ext.asyncio import async_sessionmaker

from db.models.notification import Notification
from workflow.interfaces import NotificationStore
from workflow.models import NotificationPayload, NotificationRecipient

logger = structlog.get_logger(__name__)


class SqlNotificationStore(NotificationStore):
    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def record(
        self, recipient: NotificationRecipient, payload: NotificationPayload
    ) -> str:
        notification_id = str(uuid4())
        async with self.session_factory() as session:
            session.add(Notification(
                id=notification_id,
                tenant_id=recipient.tenant_id,
                user_id=recipient.user_id,
                title=payload.title,
                message=payload.message,
                type=payload.type.value,
                category=payload.category,
                priority=payload.priority.value,
                details=dict(payload.metadata),
                action_url=payload.action_url,
                status="unread",
            ))
            await session.commit()
        logger.debug("Notification stored", notification_id=notification_id, user_id=recipient.user_id)
        return notification_id
