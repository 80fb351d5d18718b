from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from uuid import UUID

from domain.enums import NotificationType


class NotificationResponse(BaseModel):
    notification_id: UUID
    recipient_id: UUID
    type: NotificationType
    title: str
    message: str
    is_read: bool
    order_id: Optional[UUID] = None
    chat_id: Optional[UUID] = None
    created_at: datetime

    model_config = {"from_attributes": True}
