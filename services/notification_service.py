from typing import List
from sqlalchemy.orm import Session
import logging
import uuid

from domain.enums import NotificationType
from domain.models import Notification
from repositories import NotificationRepository
from app.exceptions import NotFoundError

logger = logging.getLogger("homechef.notifications")


class NotificationService:
    @staticmethod
    def notify(
        db: Session,
        recipient_id: uuid.UUID,
        title: str,
        message: str,
        type: NotificationType = NotificationType.SYSTEM,
        order_id: uuid.UUID = None,
        chat_id: uuid.UUID = None,
        commit: bool = True,
    ) -> Notification:
        """
        Create a notification for one user.

        With ``commit=False`` the row is only added to the session so it is
        persisted together with the caller's own changes.
        """
        notification = Notification(
            recipient_id=recipient_id,
            type=type,
            title=title,
            message=message,
            order_id=order_id,
            chat_id=chat_id,
        )
        db.add(notification)
        if commit:
            db.commit()
            db.refresh(notification)
        logger.debug(
            f"notification_created recipient={recipient_id} type={type.value} title={title!r}"
        )
        return notification

    @staticmethod
    def list_for_user(
        db: Session, user_id: uuid.UUID, unread_only: bool = False
    ) -> List[Notification]:
        return NotificationRepository(db).get_by_recipient(user_id, unread_only)

    @staticmethod
    def mark_read(db: Session, notification_id: uuid.UUID) -> Notification:
        notification = NotificationRepository(db).mark_read(notification_id)
        if notification is None:
            raise NotFoundError(f"Notification {notification_id} not found")
        return notification

    @staticmethod
    def mark_all_read(db: Session, user_id: uuid.UUID) -> int:
        count = NotificationRepository(db).mark_all_read(user_id)
        logger.info(f"notifications_marked_read user_id={user_id} count={count}")
        return count
