"""
Domain models package - SQLAlchemy ORM models.
"""

from domain.models.database import (
    Base,
    engine,
    SessionLocal,
    init_database,
    get_db_session,
)
from domain.models.order import Order, OrderItem, OrderStatusHistory, Tip
from domain.models.chat import ChatSession, ChatMessage, ChatAttachment
from domain.models.notification import Notification

__all__ = [
    # Database
    "Base",
    "engine",
    "SessionLocal",
    "init_database",
    "get_db_session",
    # Order models
    "Order",
    "OrderItem",
    "OrderStatusHistory",
    "Tip",
    # Chat models
    "ChatSession",
    "ChatMessage",
    "ChatAttachment",
    # Notification models
    "Notification",
]
