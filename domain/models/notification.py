"""
User notification model.
"""

from datetime import datetime
import uuid

from sqlalchemy import Boolean, Column, DateTime, Text, Uuid

from domain.models.database import Base, enum_column_type
from domain.enums import NotificationType


class Notification(Base):
    """In-app notification shown to a single user"""

    __tablename__ = "notification"

    notification_id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    recipient_id = Column(Uuid, nullable=False, index=True)
    type = Column(
        enum_column_type(NotificationType, "notification_type"),
        nullable=False,
        default=NotificationType.SYSTEM,
    )
    title = Column(Text, nullable=False)
    message = Column(Text, nullable=False)
    is_read = Column(Boolean, nullable=False, default=False)
    order_id = Column(Uuid)
    chat_id = Column(Uuid)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
