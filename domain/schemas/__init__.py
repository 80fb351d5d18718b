"""
Domain schemas package - Pydantic models for validation.
"""

from domain.schemas.order_schemas import (
    OrderItemCreate,
    OrderCreate,
    OrderItemResponse,
    OrderResponse,
    OrderStatusUpdate,
    DeliveryAssignment,
    CancelOrderRequest,
    StatusInfo,
    OrderStatusView,
    CancellationInfo,
    CountdownStatus,
    CancellationResult,
    OrderJourney,
    TipCreate,
    TipResponse,
)
from domain.schemas.chat_schemas import (
    AttachmentCreate,
    ChatSessionCreate,
    MessageCreate,
    ChatMessageResponse,
    ChatSessionResponse,
    UnreadCountResponse,
    ModerationCheckRequest,
    ModerationCheckResponse,
)
from domain.schemas.notification_schemas import NotificationResponse

__all__ = [
    # Order schemas
    "OrderItemCreate",
    "OrderCreate",
    "OrderItemResponse",
    "OrderResponse",
    "OrderStatusUpdate",
    "DeliveryAssignment",
    "CancelOrderRequest",
    "StatusInfo",
    "OrderStatusView",
    "CancellationInfo",
    "CountdownStatus",
    "CancellationResult",
    "OrderJourney",
    "TipCreate",
    "TipResponse",
    # Chat schemas
    "AttachmentCreate",
    "ChatSessionCreate",
    "MessageCreate",
    "ChatMessageResponse",
    "ChatSessionResponse",
    "UnreadCountResponse",
    "ModerationCheckRequest",
    "ModerationCheckResponse",
    # Notification schemas
    "NotificationResponse",
]
