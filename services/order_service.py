from dataclasses import dataclass
from typing import List, Optional
from sqlalchemy.orm import Session
import logging
import uuid
from decimal import Decimal, ROUND_HALF_UP
from datetime import datetime

from app.config import settings
from app.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    ServiceValidationError,
)
from domain import order_status
from domain.enums import (
    CancellationType,
    NotificationType,
    OrderFilter,
    OrderStatus,
    TipRecipient,
    UserRole,
)
from domain.models import Order, OrderItem, Tip
from domain.schemas.order_schemas import (
    CancellationInfo,
    CancellationPenaltyInfo,
    CancellationResult,
    CountdownStatus,
    OrderCreate,
    OrderJourney,
    OrderStatusView,
    ProgressStepResponse,
    StatusActionResponse,
    TimelineEvent,
    TipCreate,
    TippingInfo,
)
from repositories import OrderRepository, TipRepository
from services.notification_service import NotificationService

logger = logging.getLogger("homechef.orders")

CENT = Decimal("0.01")
REFUND_TIMELINE = "3-5 business days"


def _money(value) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def _new_order_number() -> str:
    return f"HC-{uuid.uuid4().hex[:8].upper()}"


@dataclass(frozen=True)
class CancellationPolicy:
    """Free cancellation window, then a clamped share of the order total"""

    free_window_seconds: int
    penalty_rate: Decimal
    min_penalty: Decimal
    max_penalty: Decimal

    @classmethod
    def from_settings(cls, cfg=settings) -> "CancellationPolicy":
        return cls(
            free_window_seconds=cfg.cancellation_free_window_sec,
            penalty_rate=Decimal(cfg.cancellation_penalty_rate),
            min_penalty=Decimal(cfg.cancellation_min_penalty),
            max_penalty=Decimal(cfg.cancellation_max_penalty),
        )

    def penalty_for(self, total: Decimal) -> Decimal:
        """Penalty charged outside the free window; never more than the total"""
        penalty = Decimal(total) * self.penalty_rate
        penalty = max(penalty, self.min_penalty)
        penalty = min(penalty, self.max_penalty)
        return _money(min(penalty, Decimal(total)))

    def is_free(self, seconds_since_placed: float) -> bool:
        return seconds_since_placed <= self.free_window_seconds


class OrderService:
    @staticmethod
    def place_order(db: Session, data: OrderCreate) -> Order:
        """
        Create a pending order with priced items.

        Subtotal is the sum of unit price times quantity; a flat delivery fee
        and tax on the subtotal are added from settings.

        Returns:
            Order: the persisted order, with its first timeline entry
        """
        subtotal = _money(sum(item.price * item.quantity for item in data.items))
        delivery_fee = _money(settings.order_delivery_fee)
        tax = _money(subtotal * Decimal(settings.order_tax_rate))

        order = Order(
            order_id=uuid.uuid4(),
            order_number=_new_order_number(),
            customer_id=data.customer_id,
            customer_name=data.customer_name,
            chef_id=data.chef_id,
            chef_name=data.chef_name,
            status=OrderStatus.PENDING,
            subtotal=subtotal,
            delivery_fee=delivery_fee,
            tax=tax,
            total=subtotal + delivery_fee + tax,
            delivery_address=data.delivery_address,
            special_instructions=data.special_instructions,
            items=[
                OrderItem(
                    dish_id=item.dish_id,
                    dish_name=item.dish_name,
                    quantity=item.quantity,
                    price=_money(item.price),
                    special_instructions=item.special_instructions,
                )
                for item in data.items
            ],
        )
        repo = OrderRepository(db)
        db.add(order)
        repo.add_history(order, OrderStatus.PENDING, "Order placed", data.customer_id)
        NotificationService.notify(
            db,
            data.chef_id,
            "New Order",
            f"Order {order.order_number} is waiting for you to accept",
            type=NotificationType.ORDER,
            order_id=order.order_id,
            commit=False,
        )
        db.commit()
        db.refresh(order)

        logger.info(
            f"order_placed order_id={order.order_id} number={order.order_number} "
            f"customer_id={order.customer_id} chef_id={order.chef_id} total={order.total}"
        )
        return order

    @staticmethod
    def get_order(db: Session, order_id: uuid.UUID) -> Order:
        order = OrderRepository(db).get_with_details(order_id)
        if not order:
            raise NotFoundError(f"Order {order_id} not found")
        return order

    @staticmethod
    def list_orders(
        db: Session,
        participant_id: uuid.UUID = None,
        filter_group: OrderFilter = OrderFilter.ALL,
        search: str = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Order]:
        """List orders for a status tab, optionally searching number or dish name"""
        statuses = order_status.statuses_for_filter(filter_group)
        return OrderRepository(db).list_orders(
            participant_id=participant_id,
            statuses=statuses,
            search=search.strip() if search else None,
            skip=skip,
            limit=limit,
        )

    @staticmethod
    def status_view(order: Order, role: Optional[UserRole] = None) -> OrderStatusView:
        """Badge, actions and progress bar for the order's current status"""
        status = OrderStatus(order.status)
        shown = order_status.display(status)
        action = order_status.next_action(status, role)
        return OrderStatusView(
            order_id=order.order_id,
            status=status,
            label=shown.label,
            color=shown.color,
            is_active=order_status.is_active(status),
            can_cancel=order_status.can_cancel(status),
            allowed_targets=order_status.allowed_targets(status, role) if role else [],
            next_action=(
                StatusActionResponse(role=action.role, label=action.label, target=action.target)
                if action
                else None
            ),
            progress=[
                ProgressStepResponse(
                    label=step.label,
                    status=step.status,
                    completed=step.completed,
                    current=step.current,
                )
                for step in order_status.progress(status)
            ],
        )

    @staticmethod
    def _check_actor(order: Order, actor_id: uuid.UUID, actor_role: UserRole) -> None:
        role = UserRole(actor_role)
        if role == UserRole.ADMIN:
            return
        owner = {
            UserRole.CUSTOMER: order.customer_id,
            UserRole.CHEF: order.chef_id,
            UserRole.DELIVERY: order.delivery_partner_id,
        }[role]
        if owner is None or owner != actor_id:
            raise ForbiddenError(
                f"User {actor_id} is not the {role.value} of order {order.order_id}"
            )

    @staticmethod
    def _notify_parties(
        db: Session, order: Order, title: str, message: str, exclude: uuid.UUID = None
    ) -> None:
        recipients = [order.customer_id, order.chef_id, order.delivery_partner_id]
        for recipient in dict.fromkeys(recipients):
            if recipient is None or recipient == exclude:
                continue
            NotificationService.notify(
                db,
                recipient,
                title,
                message,
                type=NotificationType.ORDER,
                order_id=order.order_id,
                commit=False,
            )

    @staticmethod
    def update_status(
        db: Session,
        order_id: uuid.UUID,
        target: OrderStatus,
        actor_id: uuid.UUID,
        actor_role: UserRole,
        message: str = None,
        expected_status: OrderStatus = None,
        now: datetime = None,
    ) -> Order:
        """
        Move an order to ``target``.

        Chefs drive pending -> accepted -> preparing -> ready and may decline
        a pending order; the assigned delivery partner drives ready ->
        picked_up -> delivering -> delivered; admins may make any legal
        move. Customers cancel through ``cancel_order``.

        Raises:
            NotFoundError: order does not exist
            ForbiddenError: actor is not the party that owns this move
            ConflictError: ``expected_status`` no longer matches
            InvalidTransitionError: move is not legal from the current status
        """
        target = OrderStatus(target)
        role = UserRole(actor_role)
        now = now or datetime.utcnow()

        repo = OrderRepository(db)
        order = repo.get_by_id(order_id, with_lock=True)
        if not order:
            raise NotFoundError(f"Order {order_id} not found")

        OrderService._check_actor(order, actor_id, role)
        current = OrderStatus(order.status)

        if expected_status is not None and OrderStatus(expected_status) != current:
            raise ConflictError(
                f"Order {order.order_number} is '{current.value}', "
                f"expected '{OrderStatus(expected_status).value}'",
                details={"current_status": current.value},
                code="STALE_ORDER_STATUS",
            )

        if not order_status.can_transition(current, target):
            raise InvalidTransitionError(current, target)

        if role == UserRole.CUSTOMER:
            raise ForbiddenError("Customers cancel orders through the cancellation endpoint")
        if target not in order_status.allowed_targets(current, role):
            raise ForbiddenError(
                f"A {role.value} cannot move an order from '{current.value}' to '{target.value}'"
            )

        order.status = target
        setattr(order, f"{target.value}_at", now)
        if target == OrderStatus.CANCELLED:
            order.cancelled_by = actor_id
            order.cancellation_reason = (
                "chef_declined" if role == UserRole.CHEF else "cancelled_by_admin"
            )
            order.cancellation_notes = message
            order.penalty_amount = _money(0)
            order.refund_amount = _money(order.total)
        elif target == OrderStatus.REFUNDED:
            order.refund_amount = _money(order.total - (order.penalty_amount or 0))

        label = order_status.display(target).label
        repo.add_history(order, target, message or label, actor_id)
        OrderService._notify_parties(
            db,
            order,
            "Order Update",
            f"Order {order.order_number} is now {label}",
            exclude=actor_id,
        )
        db.commit()
        db.refresh(order)

        logger.info(
            f"order_status_changed order_id={order.order_id} from={current.value} "
            f"to={target.value} actor_id={actor_id} role={role.value}"
        )
        return order

    @staticmethod
    def assign_delivery_partner(
        db: Session,
        order_id: uuid.UUID,
        delivery_partner_id: uuid.UUID,
        delivery_partner_name: str = None,
    ) -> Order:
        """
        Attach a delivery partner to an order that has not been picked up yet.

        Assigning the same partner twice is a no-op; a different partner on an
        already assigned order is a conflict.
        """
        repo = OrderRepository(db)
        order = repo.get_by_id(order_id, with_lock=True)
        if not order:
            raise NotFoundError(f"Order {order_id} not found")

        current = OrderStatus(order.status)
        if order_status.is_terminal(current) or order_status.sequence_index(
            current
        ) >= order_status.sequence_index(OrderStatus.PICKED_UP):
            raise ServiceValidationError(
                f"Cannot assign a delivery partner to an order that is '{current.value}'"
            )

        if order.delivery_partner_id is not None:
            if order.delivery_partner_id == delivery_partner_id:
                return order
            raise ConflictError(
                f"Order {order.order_number} already has a delivery partner",
                code="DELIVERY_ALREADY_ASSIGNED",
            )

        order.delivery_partner_id = delivery_partner_id
        order.delivery_partner_name = delivery_partner_name
        OrderService._notify_parties(
            db,
            order,
            "Delivery Partner Assigned",
            f"{delivery_partner_name or 'A delivery partner'} will deliver order {order.order_number}",
            exclude=delivery_partner_id,
        )
        db.commit()
        db.refresh(order)

        logger.info(
            f"delivery_assigned order_id={order.order_id} partner_id={delivery_partner_id}"
        )
        return order

    @staticmethod
    def _seconds_since_placed(order: Order, now: datetime) -> float:
        return max((now - order.placed_at).total_seconds(), 0.0)

    @staticmethod
    def get_cancellation_info(
        db: Session, order_id: uuid.UUID, now: datetime = None
    ) -> CancellationInfo:
        order = OrderService.get_order(db, order_id)
        return OrderService._cancellation_info(order, now or datetime.utcnow())

    @staticmethod
    def _cancellation_info(order: Order, now: datetime) -> CancellationInfo:
        policy = CancellationPolicy.from_settings()
        elapsed = OrderService._seconds_since_placed(order, now)
        penalty = policy.penalty_for(order.total)
        return CancellationInfo(
            order_id=order.order_id,
            can_cancel=order_status.can_cancel(order.status),
            is_free_cancellation=policy.is_free(elapsed),
            seconds_since_placed=int(elapsed),
            free_cancellation_window=policy.free_window_seconds,
            penalty_info=CancellationPenaltyInfo(
                penalty_rate=policy.penalty_rate,
                penalty_amount=penalty,
                refund_amount=_money(order.total - penalty),
                min_penalty=policy.min_penalty,
                max_penalty=policy.max_penalty,
            ),
        )

    @staticmethod
    def get_countdown_status(
        db: Session, order_id: uuid.UUID, now: datetime = None
    ) -> CountdownStatus:
        """Remaining free-cancellation time for the countdown banner"""
        order = OrderService.get_order(db, order_id)
        policy = CancellationPolicy.from_settings()
        elapsed = OrderService._seconds_since_placed(order, now or datetime.utcnow())
        window = policy.free_window_seconds

        remaining = max(window - int(elapsed), 0)
        if window > 0:
            progress_pct = min(elapsed / window * 100, 100.0)
        else:
            progress_pct = 100.0

        return CountdownStatus(
            order_id=order.order_id,
            is_active=remaining > 0,
            time_remaining=remaining,
            total_window=window,
            progress_percentage=round(progress_pct, 2),
            can_cancel_free=remaining > 0 and order_status.can_cancel(order.status),
            penalty_after_expiry=policy.penalty_for(order.total),
        )

    @staticmethod
    def cancel_order(
        db: Session,
        order_id: uuid.UUID,
        actor_id: uuid.UUID,
        reason: str,
        notes: str = None,
        actor_role: UserRole = UserRole.CUSTOMER,
        now: datetime = None,
    ) -> CancellationResult:
        """
        Cancel an order on behalf of its customer (or an admin).

        Inside the free window the whole total is refunded; afterwards the
        policy penalty is kept and the rest refunded.
        """
        now = now or datetime.utcnow()
        repo = OrderRepository(db)
        order = repo.get_by_id(order_id, with_lock=True)
        if not order:
            raise NotFoundError(f"Order {order_id} not found")

        role = UserRole(actor_role)
        if role not in (UserRole.CUSTOMER, UserRole.ADMIN):
            raise ForbiddenError("Only the customer or an admin can cancel an order here")
        OrderService._check_actor(order, actor_id, role)

        current = OrderStatus(order.status)
        if not order_status.can_cancel(current):
            raise InvalidTransitionError(current, OrderStatus.CANCELLED)

        policy = CancellationPolicy.from_settings()
        elapsed = OrderService._seconds_since_placed(order, now)
        if policy.is_free(elapsed):
            cancellation_type = CancellationType.FREE
            penalty = _money(0)
        else:
            cancellation_type = CancellationType.PENALTY
            penalty = policy.penalty_for(order.total)
        refund = _money(order.total - penalty)

        order.status = OrderStatus.CANCELLED
        order.cancelled_at = now
        order.cancelled_by = actor_id
        order.cancellation_reason = reason
        order.cancellation_notes = notes
        order.penalty_amount = penalty
        order.refund_amount = refund

        repo.add_history(order, OrderStatus.CANCELLED, f"Cancelled: {reason}", actor_id)
        OrderService._notify_parties(
            db,
            order,
            "Order Cancelled",
            f"Order {order.order_number} was cancelled",
            exclude=actor_id,
        )
        db.commit()

        logger.info(
            f"order_cancelled order_id={order.order_id} type={cancellation_type.value} "
            f"elapsed={elapsed:.0f}s penalty={penalty} refund={refund}"
        )
        return CancellationResult(
            order_id=order.order_id,
            cancellation_type=cancellation_type,
            penalty_amount=penalty,
            refund_amount=refund,
            refund_timeline=REFUND_TIMELINE,
            cancelled_at=now,
        )

    @staticmethod
    def get_journey(db: Session, order_id: uuid.UUID, now: datetime = None) -> OrderJourney:
        """Timeline, cancellation terms and tipping state of one order"""
        order = OrderService.get_order(db, order_id)
        status = OrderStatus(order.status)

        timeline = [
            TimelineEvent(
                status=entry.status,
                label=order_status.display(entry.status).label,
                message=entry.message,
                updated_by=entry.updated_by,
                timestamp=entry.created_at,
            )
            for entry in order.status_history
        ]

        chef_tip = sum(
            (t.amount for t in order.tips if t.recipient_type == TipRecipient.CHEF),
            Decimal("0"),
        )
        delivery_tip = sum(
            (t.amount for t in order.tips if t.recipient_type == TipRecipient.DELIVERY),
            Decimal("0"),
        )
        delivered = status == OrderStatus.DELIVERED

        return OrderJourney(
            order_id=order.order_id,
            order_number=order.order_number,
            current_status=status,
            timeline=timeline,
            cancellation_info=(
                OrderService._cancellation_info(order, now or datetime.utcnow())
                if order_status.can_cancel(status)
                else None
            ),
            tipping_info=TippingInfo(
                chef_tip=_money(chef_tip),
                delivery_tip=_money(delivery_tip),
                can_tip_chef=delivered and chef_tip == 0,
                can_tip_delivery=delivered
                and delivery_tip == 0
                and order.delivery_partner_id is not None,
            ),
        )

    @staticmethod
    def add_tip(
        db: Session, order_id: uuid.UUID, customer_id: uuid.UUID, tip: TipCreate
    ) -> Tip:
        """
        Tip the chef or the delivery partner of a delivered order.

        Raises:
            NotFoundError: order does not exist
            ForbiddenError: caller is not the order's customer
            ServiceValidationError: order not delivered, or no delivery partner
            ConflictError: that recipient was already tipped
        """
        order = OrderService.get_order(db, order_id)
        if order.customer_id != customer_id:
            raise ForbiddenError(f"User {customer_id} is not the customer of this order")
        if OrderStatus(order.status) != OrderStatus.DELIVERED:
            raise ServiceValidationError("Tips can only be added to delivered orders")

        if tip.recipient_type == TipRecipient.CHEF:
            recipient_id = order.chef_id
        else:
            if order.delivery_partner_id is None:
                raise ServiceValidationError("No delivery partner assigned to this order")
            recipient_id = order.delivery_partner_id

        tip_repo = TipRepository(db)
        if tip_repo.get_by_order_and_recipient(order_id, tip.recipient_type):
            raise ConflictError(
                f"This order already has a {tip.recipient_type.value} tip",
                code="TIP_ALREADY_SENT",
            )

        record = Tip(
            order_id=order_id,
            customer_id=customer_id,
            recipient_type=tip.recipient_type,
            recipient_id=recipient_id,
            amount=_money(tip.amount),
            message=tip.message,
            status="completed",
        )
        db.add(record)
        NotificationService.notify(
            db,
            recipient_id,
            "You received a tip!",
            f"{order.customer_name or 'A customer'} tipped {_money(tip.amount)} "
            f"on order {order.order_number}",
            type=NotificationType.ORDER,
            order_id=order_id,
            commit=False,
        )
        db.commit()
        db.refresh(record)

        logger.info(
            f"tip_added order_id={order_id} recipient={tip.recipient_type.value} amount={record.amount}"
        )
        return record
