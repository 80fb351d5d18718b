from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from uuid import UUID
from decimal import Decimal

from domain.enums import (
    CancellationType,
    OrderStatus,
    TipRecipient,
    UserRole,
)


class OrderItemCreate(BaseModel):
    """A dish line in a new order"""

    dish_id: UUID
    dish_name: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1, description="Number of portions")
    price: Decimal = Field(..., ge=0, description="Unit price at order time")
    special_instructions: Optional[str] = None


class OrderCreate(BaseModel):
    """Schema for placing a new order"""

    customer_id: UUID
    customer_name: Optional[str] = None
    chef_id: UUID
    chef_name: Optional[str] = None
    items: List[OrderItemCreate] = Field(..., min_length=1)
    delivery_address: Optional[str] = None
    special_instructions: Optional[str] = None


class OrderItemResponse(BaseModel):
    order_item_id: UUID
    dish_id: UUID
    dish_name: str
    quantity: int
    price: Decimal
    special_instructions: Optional[str] = None

    model_config = {"from_attributes": True}


class OrderResponse(BaseModel):
    """Schema for order response"""

    order_id: UUID
    order_number: str
    customer_id: UUID
    customer_name: Optional[str] = None
    chef_id: UUID
    chef_name: Optional[str] = None
    delivery_partner_id: Optional[UUID] = None
    delivery_partner_name: Optional[str] = None
    status: OrderStatus
    subtotal: Decimal
    delivery_fee: Decimal
    tax: Decimal
    total: Decimal
    delivery_address: Optional[str] = None
    special_instructions: Optional[str] = None
    placed_at: datetime
    updated_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    penalty_amount: Optional[Decimal] = None
    refund_amount: Optional[Decimal] = None
    items: List[OrderItemResponse] = []

    model_config = {"from_attributes": True}


class OrderStatusUpdate(BaseModel):
    """Request body of the single status-change endpoint"""

    status: OrderStatus
    message: Optional[str] = Field(None, description="Shown on the order timeline")
    expected_status: Optional[OrderStatus] = Field(
        None,
        description="Reject the change if the order is no longer in this status",
    )


class DeliveryAssignment(BaseModel):
    delivery_partner_id: UUID
    delivery_partner_name: Optional[str] = None


class CancelOrderRequest(BaseModel):
    reason: str = Field(..., min_length=1, description="e.g. 'customer_request'")
    notes: Optional[str] = None


class StatusActionResponse(BaseModel):
    role: UserRole
    label: str
    target: OrderStatus


class StatusInfo(BaseModel):
    """Display metadata of one status"""

    status: OrderStatus
    label: str
    color: str
    terminal: bool
    next_action: Optional[StatusActionResponse] = None


class ProgressStepResponse(BaseModel):
    label: str
    status: OrderStatus
    completed: bool
    current: bool


class OrderStatusView(BaseModel):
    """Everything a screen derives from an order's current status"""

    order_id: UUID
    status: OrderStatus
    label: str
    color: str
    is_active: bool
    can_cancel: bool
    allowed_targets: List[OrderStatus]
    next_action: Optional[StatusActionResponse] = None
    progress: List[ProgressStepResponse]


class CancellationPenaltyInfo(BaseModel):
    penalty_rate: Decimal
    penalty_amount: Decimal
    refund_amount: Decimal
    min_penalty: Decimal
    max_penalty: Decimal


class CancellationInfo(BaseModel):
    order_id: UUID
    can_cancel: bool
    is_free_cancellation: bool
    seconds_since_placed: int
    free_cancellation_window: int
    penalty_info: CancellationPenaltyInfo


class CountdownStatus(BaseModel):
    order_id: UUID
    is_active: bool
    time_remaining: int
    total_window: int
    progress_percentage: float
    can_cancel_free: bool
    penalty_after_expiry: Decimal


class CancellationResult(BaseModel):
    order_id: UUID
    cancellation_type: CancellationType
    penalty_amount: Decimal
    refund_amount: Decimal
    refund_timeline: str
    cancelled_at: datetime


class TimelineEvent(BaseModel):
    status: OrderStatus
    label: str
    message: Optional[str] = None
    updated_by: Optional[UUID] = None
    timestamp: datetime


class TippingInfo(BaseModel):
    chef_tip: Decimal
    delivery_tip: Decimal
    can_tip_chef: bool
    can_tip_delivery: bool


class OrderJourney(BaseModel):
    order_id: UUID
    order_number: str
    current_status: OrderStatus
    timeline: List[TimelineEvent]
    cancellation_info: Optional[CancellationInfo] = None
    tipping_info: TippingInfo


class TipCreate(BaseModel):
    recipient_type: TipRecipient
    amount: Decimal = Field(..., gt=0)
    message: Optional[str] = None


class TipResponse(BaseModel):
    tip_id: UUID
    order_id: UUID
    customer_id: UUID
    recipient_type: TipRecipient
    recipient_id: UUID
    amount: Decimal
    message: Optional[str] = None
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}

