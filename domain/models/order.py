"""
Order-related database models.
"""

from datetime import datetime
import uuid

from sqlalchemy import (
    Column,
    Text,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    CheckConstraint,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import relationship

from domain.models.database import Base, enum_column_type
from domain.enums import OrderStatus, TipRecipient


class Order(Base):
    """A customer's order from one chef"""

    __tablename__ = "customer_order"

    order_id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    order_number = Column(Text, unique=True, nullable=False)
    customer_id = Column(Uuid, nullable=False, index=True)
    customer_name = Column(Text)
    chef_id = Column(Uuid, nullable=False, index=True)
    chef_name = Column(Text)
    delivery_partner_id = Column(Uuid, index=True)
    delivery_partner_name = Column(Text)
    status = Column(
        enum_column_type(OrderStatus, "order_status"),
        nullable=False,
        default=OrderStatus.PENDING,
    )

    subtotal = Column(Numeric(10, 2), nullable=False, default=0)
    delivery_fee = Column(Numeric(10, 2), nullable=False, default=0)
    tax = Column(Numeric(10, 2), nullable=False, default=0)
    total = Column(Numeric(10, 2), nullable=False, default=0)
    delivery_address = Column(Text)
    special_instructions = Column(Text)

    placed_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    accepted_at = Column(DateTime)
    preparing_at = Column(DateTime)
    ready_at = Column(DateTime)
    picked_up_at = Column(DateTime)
    delivering_at = Column(DateTime)
    delivered_at = Column(DateTime)
    cancelled_at = Column(DateTime)
    refunded_at = Column(DateTime)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    cancellation_reason = Column(Text)
    cancellation_notes = Column(Text)
    cancelled_by = Column(Uuid)
    penalty_amount = Column(Numeric(10, 2))
    refund_amount = Column(Numeric(10, 2))

    # Relationships
    items = relationship(
        "OrderItem", back_populates="order", cascade="all, delete-orphan"
    )
    status_history = relationship(
        "OrderStatusHistory",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderStatusHistory.created_at",
    )
    tips = relationship("Tip", back_populates="order", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("total >= 0", name="ck_order_total_nonneg"),
    )


class OrderItem(Base):
    """A dish line on an order, priced at order time"""

    __tablename__ = "order_item"

    order_item_id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id = Column(
        Uuid,
        ForeignKey("customer_order.order_id", ondelete="CASCADE"),
        nullable=False,
    )
    dish_id = Column(Uuid, nullable=False)
    dish_name = Column(Text, nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    price = Column(Numeric(10, 2), nullable=False)
    special_instructions = Column(Text)

    order = relationship("Order", back_populates="items")

    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_order_item_quantity_positive"),
        CheckConstraint("price >= 0", name="ck_order_item_price_nonneg"),
    )


class OrderStatusHistory(Base):
    """One entry per status change; the order journey timeline"""

    __tablename__ = "order_status_history"

    history_id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id = Column(
        Uuid,
        ForeignKey("customer_order.order_id", ondelete="CASCADE"),
        nullable=False,
    )
    status = Column(enum_column_type(OrderStatus, "order_status"), nullable=False)
    message = Column(Text)
    updated_by = Column(Uuid)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    order = relationship("Order", back_populates="status_history")


class Tip(Base):
    """Tip from the customer to the chef or the delivery partner"""

    __tablename__ = "order_tip"

    tip_id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id = Column(
        Uuid,
        ForeignKey("customer_order.order_id", ondelete="CASCADE"),
        nullable=False,
    )
    customer_id = Column(Uuid, nullable=False)
    recipient_type = Column(
        enum_column_type(TipRecipient, "tip_recipient"), nullable=False
    )
    recipient_id = Column(Uuid, nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    message = Column(Text)
    status = Column(Text, nullable=False, default="completed")
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    order = relationship("Order", back_populates="tips")

    __table_args__ = (
        UniqueConstraint("order_id", "recipient_type", name="uq_tip_order_recipient"),
        CheckConstraint("amount > 0", name="ck_tip_amount_positive"),
    )
