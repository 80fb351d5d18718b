"""
Notification Repository - Data access layer for in-app notifications
"""

from typing import List, Optional
from uuid import UUID
from sqlalchemy.orm import Session

from repositories.base import BaseRepository
from domain.models import Notification


class NotificationRepository(BaseRepository[Notification]):
    """Repository for notification data access"""

    def __init__(self, db: Session):
        super().__init__(db, Notification)

    def get_by_recipient(
        self, recipient_id: UUID, unread_only: bool = False, limit: int = 100
    ) -> List[Notification]:
        """Newest notifications first"""
        query = self.db.query(Notification).filter(
            Notification.recipient_id == recipient_id
        )
        if unread_only:
            query = query.filter(Notification.is_read.is_(False))
        return query.order_by(Notification.created_at.desc()).limit(limit).all()

    def mark_read(self, notification_id: UUID) -> Optional[Notification]:
        notification = self.get_by_id(notification_id)
        if notification:
            notification.is_read = True
            self.db.commit()
            self.db.refresh(notification)
        return notification

    def mark_all_read(self, recipient_id: UUID) -> int:
        count = (
            self.db.query(Notification)
            .filter(
                Notification.recipient_id == recipient_id,
                Notification.is_read.is_(False),
            )
            .update({Notification.is_read: True}, synchronize_session="fetch")
        )
        self.db.commit()
        return count
