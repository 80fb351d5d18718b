"""API routes package"""

from . import chats, health, notifications, orders

__all__ = ["chats", "health", "notifications", "orders"]
