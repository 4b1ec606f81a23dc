"""Per-user notification reads."""

import logging
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from jasb.database.session import in_transaction
from jasb.errors import NotFoundError
from jasb.models import Notification, User

logger = logging.getLogger(__name__)


class NotificationService:
    async def get_notifications(
        self,
        db: AsyncSession,
        user: User,
        include_read: bool = False,
        limit: int = 100,
    ) -> list[Notification]:
        """Get a user's notifications, newest first."""
        stmt = select(Notification).where(Notification.user_id == user.id)
        if not include_read:
            stmt = stmt.where(Notification.read.is_(False))
        result = await db.execute(
            stmt.order_by(Notification.happened.desc()).limit(limit)
        )
        return list(result.scalars().all())

    async def mark_read(self, db: AsyncSession, user: User, notification_id: UUID) -> None:
        async with in_transaction(db):
            result = await db.execute(
                update(Notification)
                .where(
                    Notification.id == notification_id,
                    Notification.user_id == user.id,
                )
                .values(read=True)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise NotFoundError(f"Notification {notification_id} not found")
        logger.debug(f"{user.slug} read notification {notification_id}")


notification_service = NotificationService()
