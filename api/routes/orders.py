"""Order lifecycle routes"""

from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session
import logging
from uuid import UUID
from typing import List, Optional

from api.dependencies import get_db
from domain import order_status
from domain.enums import OrderFilter, OrderStatus, UserRole
from domain.schemas.order_schemas import (
    CancellationInfo,
    CancellationResult,
    CancelOrderRequest,
    CountdownStatus,
    DeliveryAssignment,
    OrderCreate,
    OrderJourney,
    OrderResponse,
    OrderStatusUpdate,
    OrderStatusView,
    StatusActionResponse,
    StatusInfo,
    TipCreate,
    TipResponse,
)
from services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["Orders"])
logger = logging.getLogger("homechef.api.orders")


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
def place_order(order: OrderCreate, db: Session = Depends(get_db)):
    """Place a new order; it starts out pending"""
    created = OrderService.place_order(db, order)
    return OrderResponse.model_validate(created)


@router.get("", response_model=List[OrderResponse])
def list_orders(
    participant_id: Optional[UUID] = Query(
        None, description="Customer, chef or delivery partner id"
    ),
    filter: OrderFilter = Query(OrderFilter.ALL, description="Status tab"),
    search: Optional[str] = Query(None, description="Order number or dish name"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
):
    orders = OrderService.list_orders(db, participant_id, filter, search, skip, limit)
    return [OrderResponse.model_validate(o) for o in orders]


@router.get("/statuses", response_model=List[StatusInfo])
def list_statuses():
    """Label, badge color and forward action of every status"""
    result = []
    for s in OrderStatus:
        shown = order_status.display(s)
        action = order_status.next_action(s)
        result.append(
            StatusInfo(
                status=s,
                label=shown.label,
                color=shown.color,
                terminal=order_status.is_terminal(s),
                next_action=(
                    StatusActionResponse(
                        role=action.role, label=action.label, target=action.target
                    )
                    if action
                    else None
                ),
            )
        )
    return result


@router.get("/{order_id}", response_model=OrderResponse)
def get_order(order_id: UUID, db: Session = Depends(get_db)):
    return OrderResponse.model_validate(OrderService.get_order(db, order_id))


@router.get("/{order_id}/status-view", response_model=OrderStatusView)
def get_status_view(
    order_id: UUID,
    role: Optional[UserRole] = Query(None, description="Viewer role for actions"),
    db: Session = Depends(get_db),
):
    order = OrderService.get_order(db, order_id)
    return OrderService.status_view(order, role)


@router.put("/{order_id}/status", response_model=OrderResponse)
def update_order_status(
    order_id: UUID,
    update: OrderStatusUpdate,
    actor_id: UUID = Query(...),
    actor_role: UserRole = Query(...),
    db: Session = Depends(get_db),
):
    """
    Move an order to a new status.

    Pass ``expected_status`` to have the change rejected with 409 when
    someone else updated the order first.
    """
    order = OrderService.update_status(
        db,
        order_id,
        update.status,
        actor_id,
        actor_role,
        message=update.message,
        expected_status=update.expected_status,
    )
    return OrderResponse.model_validate(order)


@router.put("/{order_id}/delivery-partner", response_model=OrderResponse)
def assign_delivery_partner(
    order_id: UUID, assignment: DeliveryAssignment, db: Session = Depends(get_db)
):
    order = OrderService.assign_delivery_partner(
        db,
        order_id,
        assignment.delivery_partner_id,
        assignment.delivery_partner_name,
    )
    return OrderResponse.model_validate(order)


@router.get("/{order_id}/cancellation-info", response_model=CancellationInfo)
def get_cancellation_info(order_id: UUID, db: Session = Depends(get_db)):
    return OrderService.get_cancellation_info(db, order_id)


@router.get("/{order_id}/countdown", response_model=CountdownStatus)
def get_countdown_status(order_id: UUID, db: Session = Depends(get_db)):
    """Free-cancellation countdown"""
    return OrderService.get_countdown_status(db, order_id)


@router.post("/{order_id}/cancel", response_model=CancellationResult)
def cancel_order(
    order_id: UUID,
    request: CancelOrderRequest,
    actor_id: UUID = Query(...),
    actor_role: UserRole = Query(UserRole.CUSTOMER),
    db: Session = Depends(get_db),
):
    return OrderService.cancel_order(
        db, order_id, actor_id, request.reason, request.notes, actor_role=actor_role
    )


@router.get("/{order_id}/journey", response_model=OrderJourney)
def get_order_journey(order_id: UUID, db: Session = Depends(get_db)):
    return OrderService.get_journey(db, order_id)


@router.post(
    "/{order_id}/tips", response_model=TipResponse, status_code=status.HTTP_201_CREATED
)
def add_tip(
    order_id: UUID,
    tip: TipCreate,
    customer_id: UUID = Query(...),
    db: Session = Depends(get_db),
):
    record = OrderService.add_tip(db, order_id, customer_id, tip)
    return TipResponse.model_validate(record)
