"""
API tests through FastAPI's TestClient.

Routes run against the test's in-memory database through the ``client``
fixture; error responses are checked for the shared error envelope.
"""

import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from test_fixtures import client, db_session, make_order, make_order_payload
from app.config import settings
from domain.enums import OrderStatus
from main import app
from services.chat_service import AUTO_REPLIES
from services.order_service import OrderService


def _order_body(**kwargs):
    return make_order_payload(**kwargs).model_dump(mode="json")


def test_health_check(client):
    r = client.get("/health-check")

    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "ok"
    assert body["service"] == "HomeChef"
    assert "X-Request-ID" in r.headers
    assert "X-Process-Time" in r.headers


def test_request_id_is_echoed(client):
    r = client.get("/health-check", headers={"X-Request-ID": "abc-123"})
    assert r.headers["X-Request-ID"] == "abc-123"


# =============================================================================
# ORDERS
# =============================================================================


def test_place_and_get_order(client):
    r = client.post("/orders", json=_order_body())

    assert r.status_code == 201
    created = r.json()
    assert created["status"] == "pending"
    assert created["total"] == "617.00"
    assert len(created["items"]) == 2

    r = client.get(f"/orders/{created['order_id']}")
    assert r.status_code == 200
    assert r.json()["order_number"] == created["order_number"]


def test_place_order_requires_items(client):
    body = _order_body()
    body["items"] = []

    r = client.post("/orders", json=body)

    assert r.status_code == 422
    error = r.json()
    assert error["success"] is False
    assert error["error"]["code"] == "VALIDATION_ERROR"


def test_get_unknown_order_returns_envelope(client):
    r = client.get(f"/orders/{uuid.uuid4()}")

    assert r.status_code == 404
    body = r.json()
    assert body["success"] is False
    assert body["error"]["code"] == "NOT_FOUND"
    assert "timestamp" in body


def test_list_orders_with_filter_and_search(client, db_session: Session):
    customer_id = uuid.uuid4()
    pending = make_order(db_session, customer_id=customer_id)
    make_order(db_session, OrderStatus.DELIVERED, customer_id=customer_id)

    r = client.get("/orders", params={"participant_id": str(customer_id), "filter": "active"})
    assert r.status_code == 200
    assert [o["order_id"] for o in r.json()] == [str(pending.order_id)]

    r = client.get("/orders", params={"participant_id": str(customer_id), "search": "naan"})
    assert len(r.json()) == 2

    r = client.get("/orders", params={"filter": "bogus"})
    assert r.status_code == 422


def test_list_statuses(client):
    r = client.get("/orders/statuses")

    assert r.status_code == 200
    statuses = {s["status"]: s for s in r.json()}
    assert statuses["delivering"]["label"] == "On the Way"
    assert statuses["pending"]["next_action"]["label"] == "Accept"
    assert statuses["refunded"]["terminal"] is True


def test_status_view_for_chef(client, db_session: Session):
    order = make_order(db_session)

    r = client.get(f"/orders/{order.order_id}/status-view", params={"role": "chef"})

    assert r.status_code == 200
    view = r.json()
    assert view["label"] == "Pending"
    assert view["allowed_targets"] == ["accepted", "cancelled"]
    assert view["next_action"]["target"] == "accepted"
    assert len(view["progress"]) == 5


def test_update_status_flow(client, db_session: Session):
    order = make_order(db_session)
    params = {"actor_id": str(order.chef_id), "actor_role": "chef"}

    r = client.put(
        f"/orders/{order.order_id}/status",
        params=params,
        json={"status": "accepted", "expected_status": "pending"},
    )
    assert r.status_code == 200
    assert r.json()["status"] == "accepted"

    # same request again is stale now
    r = client.put(
        f"/orders/{order.order_id}/status",
        params=params,
        json={"status": "preparing", "expected_status": "pending"},
    )
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "STALE_ORDER_STATUS"


def test_update_status_illegal_move(client, db_session: Session):
    order = make_order(db_session, OrderStatus.PREPARING)

    r = client.put(
        f"/orders/{order.order_id}/status",
        params={"actor_id": str(order.chef_id), "actor_role": "chef"},
        json={"status": "pending"},
    )

    assert r.status_code == 409
    error = r.json()["error"]
    assert error["code"] == "INVALID_STATUS_TRANSITION"
    assert error["details"]["current_status"] == "preparing"


def test_update_status_forbidden_for_customer(client, db_session: Session):
    order = make_order(db_session)

    r = client.put(
        f"/orders/{order.order_id}/status",
        params={"actor_id": str(order.customer_id), "actor_role": "customer"},
        json={"status": "cancelled"},
    )

    assert r.status_code == 403
    assert r.json()["error"]["code"] == "FORBIDDEN"


def test_assign_delivery_partner(client, db_session: Session):
    order = make_order(db_session)
    partner = str(uuid.uuid4())

    r = client.put(
        f"/orders/{order.order_id}/delivery-partner",
        json={"delivery_partner_id": partner, "delivery_partner_name": "Ravi Kumar"},
    )
    assert r.status_code == 200
    assert r.json()["delivery_partner_id"] == partner

    r = client.put(
        f"/orders/{order.order_id}/delivery-partner",
        json={"delivery_partner_id": str(uuid.uuid4())},
    )
    assert r.status_code == 409


def test_cancellation_endpoints(client, db_session: Session):
    order = make_order(db_session)

    r = client.get(f"/orders/{order.order_id}/cancellation-info")
    assert r.status_code == 200
    info = r.json()
    assert info["can_cancel"] is True
    assert info["free_cancellation_window"] == 30

    r = client.get(f"/orders/{order.order_id}/countdown")
    assert r.status_code == 200
    assert r.json()["total_window"] == 30

    r = client.post(
        f"/orders/{order.order_id}/cancel",
        params={"actor_id": str(order.customer_id)},
        json={"reason": "customer_request"},
    )
    assert r.status_code == 200
    result = r.json()
    assert result["cancellation_type"] == "free"
    assert result["refund_amount"] == "617.00"

    r = client.post(
        f"/orders/{order.order_id}/cancel",
        params={"actor_id": str(order.customer_id)},
        json={"reason": "again"},
    )
    assert r.status_code == 409


def test_journey_and_tips(client, db_session: Session):
    order = make_order(db_session, OrderStatus.DELIVERED)

    r = client.post(
        f"/orders/{order.order_id}/tips",
        params={"customer_id": str(order.customer_id)},
        json={"recipient_type": "delivery", "amount": "40"},
    )
    assert r.status_code == 201
    assert r.json()["recipient_id"] == str(order.delivery_partner_id)

    r = client.get(f"/orders/{order.order_id}/journey")
    assert r.status_code == 200
    journey = r.json()
    assert journey["current_status"] == "delivered"
    assert len(journey["timeline"]) == 7
    assert journey["cancellation_info"] is None
    assert journey["tipping_info"]["can_tip_chef"] is True
    assert journey["tipping_info"]["can_tip_delivery"] is False

    r = client.post(
        f"/orders/{order.order_id}/tips",
        params={"customer_id": str(order.customer_id)},
        json={"recipient_type": "chef", "amount": "0"},
    )
    assert r.status_code == 422


def test_unexpected_error_returns_500_envelope(client, monkeypatch):
    def boom(db, order_id):
        raise RuntimeError("database exploded")

    monkeypatch.setattr(OrderService, "get_order", staticmethod(boom))
    raw_client = TestClient(app, raise_server_exceptions=False)

    r = raw_client.get(f"/orders/{uuid.uuid4()}")

    assert r.status_code == 500
    body = r.json()
    assert body["error"]["code"] == "INTERNAL_SERVER_ERROR"
    assert "exploded" not in body["error"]["message"]


# =============================================================================
# CHATS
# =============================================================================


@pytest.fixture
def chat_setup(client, db_session: Session):
    order = make_order(db_session, OrderStatus.PREPARING, with_partner=True)
    r = client.post(
        "/chats",
        json={
            "order_id": str(order.order_id),
            "chat_type": "customer-delivery",
            "requester_id": str(order.customer_id),
        },
    )
    assert r.status_code == 201
    return order, r.json()


def test_create_chat(chat_setup):
    order, chat = chat_setup

    assert chat["status"] == "active"
    roles = {p["role"] for p in chat["participants"]}
    assert roles == {"customer", "delivery"}


def test_send_and_list_messages(client, chat_setup):
    order, chat = chat_setup
    chat_id = chat["chat_id"]

    r = client.post(
        f"/chats/{chat_id}/messages",
        json={"sender_id": str(order.customer_id), "message": "Is the biryani spicy?"},
    )
    assert r.status_code == 201
    assert r.json()["sender_role"] == "customer"

    r = client.get(f"/chats/{chat_id}/messages")
    assert [m["message"] for m in r.json()][-1] == "Is the biryani spicy?"

    partner = str(order.delivery_partner_id)
    r = client.get(f"/chats/{chat_id}/unread", params={"user_id": partner})
    assert r.json()["unread"] == 2

    r = client.post(f"/chats/{chat_id}/read", params={"user_id": partner})
    assert r.json()["updated"] == 2


def test_blocked_message_returns_422(client, chat_setup):
    order, chat = chat_setup

    r = client.post(
        f"/chats/{chat['chat_id']}/messages",
        json={"sender_id": str(order.customer_id), "message": "text me at 9876543210"},
    )

    assert r.status_code == 422
    error = r.json()["error"]
    assert error["code"] == "MESSAGE_BLOCKED"
    assert error["message"] == "Phone number sharing is not allowed"
    assert error["details"]["rule"] == "phone"

    r = client.get(f"/chats/{chat['chat_id']}/messages", params={"include_blocked": True})
    assert any(m["is_blocked"] for m in r.json())


def test_chat_lookup_and_end(client, chat_setup):
    order, chat = chat_setup

    r = client.get(f"/chats/by-order/{order.order_id}", params={"chat_type": "customer-delivery"})
    assert r.json()["chat_id"] == chat["chat_id"]

    r = client.get("/chats", params={"user_id": str(order.customer_id)})
    assert len(r.json()) == 1

    r = client.post(f"/chats/{chat['chat_id']}/end")
    assert r.json()["status"] == "ended"

    r = client.post(
        f"/chats/{chat['chat_id']}/messages",
        json={"sender_id": str(order.customer_id), "message": "Hello there"},
    )
    assert r.status_code == 400


def test_moderation_check(client):
    r = client.post("/chats/moderation/check", json={"message": "my email is a@b.co"})
    assert r.json() == {
        "allowed": False,
        "rule": "email",
        "reason": "Email sharing is not allowed",
    }

    r = client.post("/chats/moderation/check", json={"message": "Is the biryani spicy?"})
    assert r.json()["allowed"] is True



def test_moderation_check_rejects_oversized_message(client):
    r = client.post("/chats/moderation/check", json={"message": "1" + " " * 20000 + "!"})

    assert r.status_code == 422
    assert r.json()["error"]["code"] == "VALIDATION_ERROR"


def test_customer_message_gets_scripted_reply(client, db_session: Session, chat_setup, monkeypatch):
    order, chat = chat_setup
    customer, partner = str(order.customer_id), str(order.delivery_partner_id)
    monkeypatch.setattr(settings, "chat_auto_reply_enabled", True)
    monkeypatch.setattr(settings, "chat_auto_reply_delay_sec", 0)
    monkeypatch.setattr("services.chat_service.SessionLocal", lambda: db_session)

    r = client.post(
        f"/chats/{chat['chat_id']}/messages",
        json={"sender_id": customer, "message": "Are you close?"},
    )
    assert r.status_code == 201

    messages = client.get(f"/chats/{chat['chat_id']}/messages").json()
    assert messages[-2]["message"] == "Are you close?"
    assert messages[-1]["sender_id"] == partner
    assert messages[-1]["message"] in AUTO_REPLIES


# =============================================================================
# NOTIFICATIONS
# =============================================================================


def test_notifications_endpoints(client, db_session: Session):
    order = make_order(db_session)
    chef = str(order.chef_id)

    r = client.get("/notifications", params={"user_id": chef})
    assert r.status_code == 200
    notes = r.json()
    assert notes[0]["title"] == "New Order"

    r = client.post(f"/notifications/{notes[0]['notification_id']}/read")
    assert r.json()["is_read"] is True

    r = client.get("/notifications", params={"user_id": chef, "unread_only": True})
    assert r.json() == []

    r = client.post("/notifications/read-all", params={"user_id": chef})
    assert r.json() == {"updated": 0}

    r = client.post(f"/notifications/{uuid.uuid4()}/read")
    assert r.status_code == 404
