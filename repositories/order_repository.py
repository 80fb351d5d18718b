"""
Order Repository - Data access layer for orders, their history and tips
"""

from typing import Iterable, List, Optional
from uuid import UUID
from sqlalchemy.orm import Session, selectinload
from sqlalchemy import or_, select

from repositories.base import BaseRepository
from domain.enums import OrderStatus, TipRecipient
from domain.models import Order, OrderItem, OrderStatusHistory, Tip


class OrderRepository(BaseRepository[Order]):
    """Repository for order data access"""

    def __init__(self, db: Session):
        super().__init__(db, Order)

    def get_by_id(self, order_id: UUID, with_lock: bool = False) -> Optional[Order]:
        """Get order by ID, optionally locking the row for a status change"""
        query = self.db.query(Order).filter(Order.order_id == order_id)
        if with_lock:
            query = query.with_for_update()
        return query.first()

    def get_by_number(self, order_number: str) -> Optional[Order]:
        return self.db.query(Order).filter(Order.order_number == order_number).first()

    def get_with_details(self, order_id: UUID) -> Optional[Order]:
        """Get order with items, history and tips eagerly loaded"""
        return (
            self.db.query(Order)
            .options(
                selectinload(Order.items),
                selectinload(Order.status_history),
                selectinload(Order.tips),
            )
            .filter(Order.order_id == order_id)
            .first()
        )

    def list_orders(
        self,
        participant_id: UUID = None,
        statuses: Optional[Iterable[OrderStatus]] = None,
        search: str = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Order]:
        """
        List orders newest first.

        Args:
            participant_id: restrict to orders where this user is the customer,
                the chef or the delivery partner
            statuses: restrict to these statuses (None = any)
            search: case-insensitive match on order number or dish name
        """
        query = self.db.query(Order).options(selectinload(Order.items))

        if participant_id is not None:
            query = query.filter(
                or_(
                    Order.customer_id == participant_id,
                    Order.chef_id == participant_id,
                    Order.delivery_partner_id == participant_id,
                )
            )
        if statuses is not None:
            query = query.filter(Order.status.in_(list(statuses)))
        if search:
            pattern = f"%{search.lower()}%"
            item_match = select(OrderItem.order_id).where(
                OrderItem.dish_name.ilike(pattern)
            )
            query = query.filter(
                or_(Order.order_number.ilike(pattern), Order.order_id.in_(item_match))
            )

        return (
            query.order_by(Order.placed_at.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def add_history(
        self,
        order: Order,
        status: OrderStatus,
        message: str = None,
        updated_by: UUID = None,
    ) -> OrderStatusHistory:
        """Append a timeline entry; committed together with the order change"""
        entry = OrderStatusHistory(
            status=status, message=message, updated_by=updated_by
        )
        order.status_history.append(entry)
        return entry


class TipRepository(BaseRepository[Tip]):
    """Repository for tip data access"""

    def __init__(self, db: Session):
        super().__init__(db, Tip)

    def get_by_order(self, order_id: UUID) -> List[Tip]:
        return self.db.query(Tip).filter(Tip.order_id == order_id).all()

    def get_by_order_and_recipient(
        self, order_id: UUID, recipient_type: TipRecipient
    ) -> Optional[Tip]:
        return (
            self.db.query(Tip)
            .filter(Tip.order_id == order_id, Tip.recipient_type == recipient_type)
            .first()
        )
