"""
Domain enums for the HomeChef marketplace.
Contains all enumeration types used across the domain models.
"""

import enum


class OrderStatus(str, enum.Enum):
    """Order lifecycle labels, in progression order"""

    PENDING = "pending"
    ACCEPTED = "accepted"
    PREPARING = "preparing"
    READY = "ready"
    PICKED_UP = "picked_up"
    DELIVERING = "delivering"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class OrderFilter(str, enum.Enum):
    """Status groups offered as tabs on order lists"""

    ALL = "all"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class UserRole(str, enum.Enum):
    """Marketplace roles"""

    CUSTOMER = "customer"
    CHEF = "chef"
    DELIVERY = "delivery"
    ADMIN = "admin"


class ChatType(str, enum.Enum):
    """Which pair of order parties may talk in a chat session"""

    CUSTOMER_DELIVERY = "customer-delivery"
    CHEF_DELIVERY = "chef-delivery"


class ChatStatus(str, enum.Enum):
    ACTIVE = "active"
    ENDED = "ended"


class AttachmentKind(str, enum.Enum):
    IMAGE = "image"
    DOCUMENT = "document"


class NotificationType(str, enum.Enum):
    SYSTEM = "system"
    CHAT = "chat"
    ORDER = "order"


class CancellationType(str, enum.Enum):
    FREE = "free"
    PENALTY = "penalty"


class TipRecipient(str, enum.Enum):
    CHEF = "chef"
    DELIVERY = "delivery"
