"""
Shared test fixtures and factories for the HomeChef test suite.

Every test that touches the database gets a freshly created in-memory SQLite
schema; the API client is wired to the same session through a dependency
override so route tests can seed and inspect data directly.
"""

import uuid
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from api.dependencies import get_db
from domain.enums import OrderStatus
from domain.models import Base, SessionLocal, engine
from domain.schemas.order_schemas import OrderCreate, OrderItemCreate
from main import app
from services.order_service import OrderService


# Realistic marketplace parties
PARTIES = {
    "customer": "Priya Sharma",
    "chef": "Chef Arjun Mehta",
    "delivery": "Ravi Kumar",
}


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """
    Database session on a fresh schema.

    Tables are dropped and recreated for every test, so tests never see each
    other's rows.
    """
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """TestClient whose routes share the test's database session"""

    def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_db, None)


def make_order_payload(customer_id=None, chef_id=None, items=None) -> OrderCreate:
    """
    Build an order request: two butter chicken portions and one naan by default.

    Subtotal 2 * 250.00 + 40.00 = 540.00; with the default 50.00 delivery fee
    and 5% tax (27.00) the total is 617.00.
    """
    if items is None:
        items = [
            OrderItemCreate(
                dish_id=uuid.uuid4(),
                dish_name="Butter Chicken",
                quantity=2,
                price=Decimal("250.00"),
            ),
            OrderItemCreate(
                dish_id=uuid.uuid4(),
                dish_name="Garlic Naan",
                quantity=1,
                price=Decimal("40.00"),
            ),
        ]
    return OrderCreate(
        customer_id=customer_id or uuid.uuid4(),
        customer_name=PARTIES["customer"],
        chef_id=chef_id or uuid.uuid4(),
        chef_name=PARTIES["chef"],
        items=items,
        delivery_address="Flat 4B, Lake View Residency",
    )


def make_order(db: Session, status: OrderStatus = OrderStatus.PENDING, with_partner=False, **kwargs):
    """
    Place an order and walk it forward to ``status`` through the service.

    A delivery partner is assigned when ``with_partner`` is set or when the
    target status needs one.
    """
    order = OrderService.place_order(db, make_order_payload(**kwargs))
    status = OrderStatus(status)
    needs_partner = status in (
        OrderStatus.PICKED_UP,
        OrderStatus.DELIVERING,
        OrderStatus.DELIVERED,
    )
    if with_partner or needs_partner:
        order = OrderService.assign_delivery_partner(
            db, order.order_id, uuid.uuid4(), PARTIES["delivery"]
        )

    if status == OrderStatus.CANCELLED:
        return OrderService.update_status(
            db, order.order_id, status, order.chef_id, "chef"
        )

    path = [
        (OrderStatus.ACCEPTED, "chef"),
        (OrderStatus.PREPARING, "chef"),
        (OrderStatus.READY, "chef"),
        (OrderStatus.PICKED_UP, "delivery"),
        (OrderStatus.DELIVERING, "delivery"),
        (OrderStatus.DELIVERED, "delivery"),
    ]
    for step, role in path:
        if status == OrderStatus.PENDING:
            break
        actor = order.chef_id if role == "chef" else order.delivery_partner_id
        order = OrderService.update_status(db, order.order_id, step, actor, role)
        if step == status:
            break
    return order


def placed_at_plus(order, seconds: float) -> datetime:
    return order.placed_at + timedelta(seconds=seconds)
