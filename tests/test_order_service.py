"""
Tests for OrderService with a real (in-memory) database.

Covers placing and listing orders, status changes with role and
concurrency checks, delivery assignment, the cancellation policy, the
order journey and tipping.
"""

import uuid
from decimal import Decimal

import pytest
from sqlalchemy.orm import Session

from test_fixtures import db_session, make_order, make_order_payload, placed_at_plus
from app.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    ServiceValidationError,
)
from domain.enums import (
    CancellationType,
    OrderFilter,
    OrderStatus,
    TipRecipient,
    UserRole,
)
from domain.schemas.order_schemas import OrderItemCreate, TipCreate
from services.notification_service import NotificationService
from services.order_service import CancellationPolicy, OrderService


# =============================================================================
# PLACING AND LISTING
# =============================================================================


def test_place_order_computes_totals(db_session: Session):
    order = OrderService.place_order(db_session, make_order_payload())

    assert order.status == OrderStatus.PENDING
    assert order.order_number.startswith("HC-")
    assert len(order.order_number) == 11
    assert order.subtotal == Decimal("540.00")
    assert order.delivery_fee == Decimal("50.00")
    assert order.tax == Decimal("27.00")
    assert order.total == Decimal("617.00")
    assert len(order.items) == 2


def test_place_order_records_history_and_notifies_chef(db_session: Session):
    order = OrderService.place_order(db_session, make_order_payload())

    assert [h.status for h in order.status_history] == [OrderStatus.PENDING]
    assert order.status_history[0].message == "Order placed"

    notes = NotificationService.list_for_user(db_session, order.chef_id)
    assert [n.title for n in notes] == ["New Order"]
    assert notes[0].order_id == order.order_id


def test_get_order_not_found(db_session: Session):
    with pytest.raises(NotFoundError):
        OrderService.get_order(db_session, uuid.uuid4())


def test_list_orders_by_filter_group(db_session: Session):
    customer_id = uuid.uuid4()
    pending = make_order(db_session, customer_id=customer_id)
    delivered = make_order(db_session, OrderStatus.DELIVERED, customer_id=customer_id)
    declined = make_order(db_session, OrderStatus.CANCELLED, customer_id=customer_id)

    def ids(group):
        orders = OrderService.list_orders(db_session, customer_id, group)
        return {o.order_id for o in orders}

    assert ids(OrderFilter.ALL) == {pending.order_id, delivered.order_id, declined.order_id}
    assert ids(OrderFilter.ACTIVE) == {pending.order_id}
    assert ids(OrderFilter.COMPLETED) == {delivered.order_id}
    assert ids(OrderFilter.CANCELLED) == {declined.order_id}


def test_list_orders_restricts_to_participant(db_session: Session):
    mine = make_order(db_session)
    make_order(db_session)

    orders = OrderService.list_orders(db_session, mine.chef_id)
    assert [o.order_id for o in orders] == [mine.order_id]


def test_list_orders_search_by_dish_and_number(db_session: Session):
    naan = make_order(db_session)
    dosa = OrderService.place_order(
        db_session,
        make_order_payload(
            items=[
                OrderItemCreate(
                    dish_id=uuid.uuid4(),
                    dish_name="Masala Dosa",
                    quantity=1,
                    price=Decimal("120.00"),
                )
            ]
        ),
    )

    by_dish = OrderService.list_orders(db_session, search="DOSA")
    assert [o.order_id for o in by_dish] == [dosa.order_id]

    by_number = OrderService.list_orders(db_session, search=naan.order_number.lower())
    assert [o.order_id for o in by_number] == [naan.order_id]


# =============================================================================
# STATUS CHANGES
# =============================================================================


def test_full_lifecycle_sets_timestamps_and_history(db_session: Session):
    order = make_order(db_session, OrderStatus.DELIVERED)

    assert order.status == OrderStatus.DELIVERED
    for attr in ("accepted_at", "preparing_at", "ready_at", "picked_up_at", "delivering_at", "delivered_at"):
        assert getattr(order, attr) is not None
    assert [h.status for h in order.status_history] == [
        OrderStatus.PENDING,
        OrderStatus.ACCEPTED,
        OrderStatus.PREPARING,
        OrderStatus.READY,
        OrderStatus.PICKED_UP,
        OrderStatus.DELIVERING,
        OrderStatus.DELIVERED,
    ]


def test_update_status_notifies_other_parties(db_session: Session):
    order = make_order(db_session)

    OrderService.update_status(
        db_session, order.order_id, OrderStatus.ACCEPTED, order.chef_id, UserRole.CHEF
    )

    customer_notes = NotificationService.list_for_user(db_session, order.customer_id)
    assert customer_notes[0].title == "Order Update"
    assert "Accepted" in customer_notes[0].message
    chef_titles = [n.title for n in NotificationService.list_for_user(db_session, order.chef_id)]
    assert "Order Update" not in chef_titles


def test_update_status_rejects_backward_move(db_session: Session):
    order = make_order(db_session, OrderStatus.PREPARING)

    with pytest.raises(InvalidTransitionError) as exc:
        OrderService.update_status(
            db_session, order.order_id, OrderStatus.ACCEPTED, order.chef_id, UserRole.CHEF
        )
    assert exc.value.http_status == 409
    assert exc.value.details["current_status"] == "preparing"


def test_update_status_rejects_stale_expected_status(db_session: Session):
    order = make_order(db_session, OrderStatus.ACCEPTED)

    with pytest.raises(ConflictError) as exc:
        OrderService.update_status(
            db_session,
            order.order_id,
            OrderStatus.PREPARING,
            order.chef_id,
            UserRole.CHEF,
            expected_status=OrderStatus.PENDING,
        )
    assert exc.value.code == "STALE_ORDER_STATUS"
    assert OrderService.get_order(db_session, order.order_id).status == OrderStatus.ACCEPTED


def test_update_status_accepts_matching_expected_status(db_session: Session):
    order = make_order(db_session, OrderStatus.ACCEPTED)

    updated = OrderService.update_status(
        db_session,
        order.order_id,
        OrderStatus.PREPARING,
        order.chef_id,
        UserRole.CHEF,
        message="Started cooking",
        expected_status=OrderStatus.ACCEPTED,
    )
    assert updated.status == OrderStatus.PREPARING
    assert updated.status_history[-1].message == "Started cooking"


def test_update_status_rejects_other_chef(db_session: Session):
    order = make_order(db_session)

    with pytest.raises(ForbiddenError):
        OrderService.update_status(
            db_session, order.order_id, OrderStatus.ACCEPTED, uuid.uuid4(), UserRole.CHEF
        )


def test_chef_cannot_perform_delivery_steps(db_session: Session):
    order = make_order(db_session, OrderStatus.READY, with_partner=True)

    with pytest.raises(ForbiddenError):
        OrderService.update_status(
            db_session, order.order_id, OrderStatus.PICKED_UP, order.chef_id, UserRole.CHEF
        )


def test_delivery_requires_assignment(db_session: Session):
    order = make_order(db_session, OrderStatus.READY)

    with pytest.raises(ForbiddenError):
        OrderService.update_status(
            db_session, order.order_id, OrderStatus.PICKED_UP, uuid.uuid4(), UserRole.DELIVERY
        )


def test_customer_cannot_change_status_directly(db_session: Session):
    order = make_order(db_session)

    with pytest.raises(ForbiddenError):
        OrderService.update_status(
            db_session, order.order_id, OrderStatus.CANCELLED, order.customer_id, UserRole.CUSTOMER
        )


def test_chef_decline_refunds_in_full(db_session: Session):
    order = make_order(db_session, OrderStatus.CANCELLED)

    assert order.status == OrderStatus.CANCELLED
    assert order.cancellation_reason == "chef_declined"
    assert order.cancelled_by == order.chef_id
    assert order.penalty_amount == Decimal("0.00")
    assert order.refund_amount == order.total


def test_chef_cannot_decline_after_accepting(db_session: Session):
    order = make_order(db_session, OrderStatus.ACCEPTED)

    with pytest.raises(ForbiddenError):
        OrderService.update_status(
            db_session, order.order_id, OrderStatus.CANCELLED, order.chef_id, UserRole.CHEF
        )


def test_admin_refunds_delivered_order(db_session: Session):
    order = make_order(db_session, OrderStatus.DELIVERED)

    refunded = OrderService.update_status(
        db_session, order.order_id, OrderStatus.REFUNDED, uuid.uuid4(), UserRole.ADMIN
    )
    assert refunded.status == OrderStatus.REFUNDED
    assert refunded.refunded_at is not None
    assert refunded.refund_amount == order.total


# =============================================================================
# DELIVERY ASSIGNMENT
# =============================================================================


def test_assign_delivery_partner(db_session: Session):
    order = make_order(db_session, OrderStatus.PREPARING)
    partner = uuid.uuid4()

    updated = OrderService.assign_delivery_partner(db_session, order.order_id, partner, "Ravi Kumar")
    assert updated.delivery_partner_id == partner
    assert updated.delivery_partner_name == "Ravi Kumar"

    # same partner again is a no-op
    again = OrderService.assign_delivery_partner(db_session, order.order_id, partner)
    assert again.delivery_partner_id == partner

    titles = [n.title for n in NotificationService.list_for_user(db_session, order.customer_id)]
    assert titles.count("Delivery Partner Assigned") == 1


def test_assign_different_partner_conflicts(db_session: Session):
    order = make_order(db_session, with_partner=True)

    with pytest.raises(ConflictError):
        OrderService.assign_delivery_partner(db_session, order.order_id, uuid.uuid4())


def test_assign_after_pickup_rejected(db_session: Session):
    order = make_order(db_session, OrderStatus.DELIVERED)

    with pytest.raises(ServiceValidationError):
        OrderService.assign_delivery_partner(db_session, order.order_id, uuid.uuid4())


# =============================================================================
# CANCELLATION POLICY
# =============================================================================


def _policy():
    return CancellationPolicy(
        free_window_seconds=30,
        penalty_rate=Decimal("0.40"),
        min_penalty=Decimal("20.00"),
        max_penalty=Decimal("500.00"),
    )


@pytest.mark.parametrize(
    "total, penalty",
    [
        (Decimal("617.00"), Decimal("246.80")),
        (Decimal("30.00"), Decimal("20.00")),  # raised to the minimum
        (Decimal("2000.00"), Decimal("500.00")),  # capped at the maximum
        (Decimal("10.00"), Decimal("10.00")),  # never more than the order
    ],
)
def test_penalty_is_clamped(total, penalty):
    assert _policy().penalty_for(total) == penalty


def test_free_window_boundary():
    policy = _policy()
    assert policy.is_free(0)
    assert policy.is_free(30)
    assert not policy.is_free(30.5)


def test_cancellation_info_inside_and_after_window(db_session: Session):
    order = make_order(db_session)

    inside = OrderService.get_cancellation_info(
        db_session, order.order_id, now=placed_at_plus(order, 10)
    )
    assert inside.can_cancel
    assert inside.is_free_cancellation
    assert inside.seconds_since_placed == 10
    assert inside.free_cancellation_window == 30

    after = OrderService.get_cancellation_info(
        db_session, order.order_id, now=placed_at_plus(order, 45)
    )
    assert not after.is_free_cancellation
    assert after.penalty_info.penalty_amount == Decimal("246.80")
    assert after.penalty_info.refund_amount == Decimal("370.20")


def test_countdown_status(db_session: Session):
    order = make_order(db_session)

    running = OrderService.get_countdown_status(
        db_session, order.order_id, now=placed_at_plus(order, 12)
    )
    assert running.is_active
    assert running.time_remaining == 18
    assert running.progress_percentage == 40.0
    assert running.can_cancel_free

    expired = OrderService.get_countdown_status(
        db_session, order.order_id, now=placed_at_plus(order, 90)
    )
    assert not expired.is_active
    assert expired.time_remaining == 0
    assert expired.progress_percentage == 100.0
    assert expired.penalty_after_expiry == Decimal("246.80")


def test_cancel_order_free_inside_window(db_session: Session):
    order = make_order(db_session)

    result = OrderService.cancel_order(
        db_session,
        order.order_id,
        order.customer_id,
        "customer_request",
        now=placed_at_plus(order, 5),
    )
    assert result.cancellation_type == CancellationType.FREE
    assert result.penalty_amount == Decimal("0.00")
    assert result.refund_amount == Decimal("617.00")
    assert result.refund_timeline == "3-5 business days"

    stored = OrderService.get_order(db_session, order.order_id)
    assert stored.status == OrderStatus.CANCELLED
    assert stored.cancellation_reason == "customer_request"
    assert stored.status_history[-1].message == "Cancelled: customer_request"


def test_cancel_order_with_penalty_after_window(db_session: Session):
    order = make_order(db_session, OrderStatus.PREPARING)

    result = OrderService.cancel_order(
        db_session,
        order.order_id,
        order.customer_id,
        "changed_mind",
        notes="Ordered twice",
        now=placed_at_plus(order, 120),
    )
    assert result.cancellation_type == CancellationType.PENALTY
    assert result.penalty_amount == Decimal("246.80")
    assert result.refund_amount == Decimal("370.20")

    chef_titles = [n.title for n in NotificationService.list_for_user(db_session, order.chef_id)]
    assert "Order Cancelled" in chef_titles


def test_cancel_delivered_order_rejected(db_session: Session):
    order = make_order(db_session, OrderStatus.DELIVERED)

    with pytest.raises(InvalidTransitionError):
        OrderService.cancel_order(db_session, order.order_id, order.customer_id, "late")


def test_cancel_order_only_by_customer(db_session: Session):
    order = make_order(db_session)

    with pytest.raises(ForbiddenError):
        OrderService.cancel_order(db_session, order.order_id, uuid.uuid4(), "not mine")
    with pytest.raises(ForbiddenError):
        OrderService.cancel_order(
            db_session, order.order_id, order.chef_id, "busy", actor_role=UserRole.CHEF
        )


# =============================================================================
# JOURNEY AND TIPS
# =============================================================================


def test_journey_of_active_order(db_session: Session):
    order = make_order(db_session, OrderStatus.ACCEPTED)

    journey = OrderService.get_journey(db_session, order.order_id, now=placed_at_plus(order, 5))

    assert journey.current_status == OrderStatus.ACCEPTED
    assert [e.label for e in journey.timeline] == ["Pending", "Accepted"]
    assert journey.cancellation_info is not None
    assert journey.cancellation_info.is_free_cancellation
    assert not journey.tipping_info.can_tip_chef
    assert not journey.tipping_info.can_tip_delivery


def test_journey_of_delivered_order_offers_tips(db_session: Session):
    order = make_order(db_session, OrderStatus.DELIVERED)

    journey = OrderService.get_journey(db_session, order.order_id)

    assert journey.cancellation_info is None
    assert journey.tipping_info.can_tip_chef
    assert journey.tipping_info.can_tip_delivery
    assert journey.tipping_info.chef_tip == Decimal("0.00")


def test_add_tip_to_chef(db_session: Session):
    order = make_order(db_session, OrderStatus.DELIVERED)

    tip = OrderService.add_tip(
        db_session,
        order.order_id,
        order.customer_id,
        TipCreate(recipient_type=TipRecipient.CHEF, amount=Decimal("50"), message="Lovely food"),
    )
    assert tip.recipient_id == order.chef_id
    assert tip.amount == Decimal("50.00")
    assert tip.status == "completed"

    journey = OrderService.get_journey(db_session, order.order_id)
    assert journey.tipping_info.chef_tip == Decimal("50.00")
    assert not journey.tipping_info.can_tip_chef
    assert journey.tipping_info.can_tip_delivery

    chef_titles = [n.title for n in NotificationService.list_for_user(db_session, order.chef_id)]
    assert "You received a tip!" in chef_titles


def test_add_tip_twice_conflicts(db_session: Session):
    order = make_order(db_session, OrderStatus.DELIVERED)
    tip = TipCreate(recipient_type=TipRecipient.DELIVERY, amount=Decimal("30"))

    created = OrderService.add_tip(db_session, order.order_id, order.customer_id, tip)
    assert created.recipient_id == order.delivery_partner_id

    with pytest.raises(ConflictError):
        OrderService.add_tip(db_session, order.order_id, order.customer_id, tip)


def test_add_tip_requires_delivered_order(db_session: Session):
    order = make_order(db_session, OrderStatus.READY)

    with pytest.raises(ServiceValidationError):
        OrderService.add_tip(
            db_session,
            order.order_id,
            order.customer_id,
            TipCreate(recipient_type=TipRecipient.CHEF, amount=Decimal("20")),
        )


def test_add_tip_only_by_customer(db_session: Session):
    order = make_order(db_session, OrderStatus.DELIVERED)

    with pytest.raises(ForbiddenError):
        OrderService.add_tip(
            db_session,
            order.order_id,
            uuid.uuid4(),
            TipCreate(recipient_type=TipRecipient.CHEF, amount=Decimal("20")),
        )
