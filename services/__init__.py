"""Services package - Business logic layer"""

from services.notification_service import NotificationService
from services.order_service import OrderService, CancellationPolicy
from services.chat_service import ChatService, deliver_auto_reply

__all__ = [
    "NotificationService",
    "OrderService",
    "CancellationPolicy",
    "ChatService",
    "deliver_auto_reply",
]
