from typing import List, Tuple

from fastapi import Depends
from sqlalchemy import delete, desc, func, or_, select, update
from sqlalchemy.orm import Session

from smart_waste.db.models import Notification
from smart_waste.db.session import get_sync_session
from smart_waste.schemas.notification_schemas import NotificationResponse
from smart_waste.utils.datetime_utils import naive_utc_now
from smart_waste.utils.errors import NotFoundError
from smart_waste.utils.logging import get_logger

logger = get_logger()


def _not_expired():
    return or_(
        Notification.expires_at.is_(None), Notification.expires_at > naive_utc_now()
    )


class UserNotificationService:
    """Service for retrieving and managing user notifications"""

    def __init__(self, db_session: Session):
        self.db = db_session

    async def purge_expired(self) -> int:
        """Delete notifications past their expiry; they are never returned."""
        result = self.db.execute(
            delete(Notification)
            .where(
                Notification.expires_at.is_not(None),
                Notification.expires_at <= naive_utc_now(),
            )
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        if result.rowcount:
            logger.info(f"Purged {result.rowcount} expired notifications")
        return result.rowcount or 0

    async def get_user_notifications(
        self,
        user_id: str,
        page: int = 1,
        limit: int = 20,
        unread_only: bool = False,
    ) -> Tuple[List[NotificationResponse], int, int]:
        """
        Get notifications for a user, newest first.

        Returns:
            The page of notifications, the total matching count and the
            user's overall unread count
        """
        await self.purge_expired()

        conditions = [Notification.user_id == user_id]
        if unread_only:
            conditions.append(Notification.read.is_(False))

        total = self.db.execute(
            select(func.count(Notification.id)).where(*conditions)
        ).scalar_one()
        notifications = (
            self.db.execute(
                select(Notification)
                .where(*conditions)
                .order_by(desc(Notification.created_at))
                .offset((page - 1) * limit)
                .limit(limit)
            )
            .scalars()
            .all()
        )

        return (
            [NotificationResponse.model_validate(n) for n in notifications],
            total,
            await self.get_unread_count(user_id),
        )

    async def get_unread_count(self, user_id: str) -> int:
        return self.db.execute(
            select(func.count(Notification.id)).where(
                Notification.user_id == user_id,
                Notification.read.is_(False),
                _not_expired(),
            )
        ).scalar_one()

    async def get_notification(
        self, user_id: str, notification_id: str
    ) -> NotificationResponse:
        return NotificationResponse.model_validate(
            await self._get_owned(user_id, notification_id)
        )

    async def mark_as_read(
        self, user_id: str, notification_id: str
    ) -> NotificationResponse:
        notification = await self._get_owned(user_id, notification_id)
        if not notification.read:
            notification.read = True
            notification.read_at = naive_utc_now()
            self.db.commit()
            self.db.refresh(notification)
        return NotificationResponse.model_validate(notification)

    async def mark_all_as_read(self, user_id: str) -> int:
        result = self.db.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.read.is_(False))
            .values(read=True, read_at=naive_utc_now())
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        logger.info(f"Marked {result.rowcount} notifications read for user {user_id}")
        return result.rowcount or 0

    async def delete_notification(self, user_id: str, notification_id: str) -> None:
        notification = await self._get_owned(user_id, notification_id)
        self.db.delete(notification)
        self.db.commit()

    async def clear_all(self, user_id: str) -> int:
        result = self.db.execute(
            delete(Notification)
            .where(Notification.user_id == user_id)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        logger.info(f"Cleared {result.rowcount} notifications for user {user_id}")
        return result.rowcount or 0

    async def _get_owned(self, user_id: str, notification_id: str) -> Notification:
        notification = self.db.execute(
            select(Notification).where(
                Notification.id == notification_id,
                Notification.user_id == user_id,
                _not_expired(),
            )
        ).scalar_one_or_none()
        if not notification:
            raise NotFoundError("Notification not found", "NOTIFICATION_NOT_FOUND")
        return notification


def get_user_notification_service(
    db: Session = Depends(get_sync_session),
) -> UserNotificationService:
    return UserNotificationService(db)
