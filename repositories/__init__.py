"""
Repositories package - Data access layer.
"""

from repositories.base import BaseRepository
from repositories.order_repository import OrderRepository, TipRepository
from repositories.chat_repository import ChatSessionRepository, ChatMessageRepository
from repositories.notification_repository import NotificationRepository

__all__ = [
    "BaseRepository",
    "OrderRepository",
    "TipRepository",
    "ChatSessionRepository",
    "ChatMessageRepository",
    "NotificationRepository",
]
