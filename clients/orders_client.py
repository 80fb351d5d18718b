"""
Order endpoints of the HomeChef API, as used by the mobile and web apps.
"""

import logging
import time
from typing import Callable, Optional

from clients.api_client import ApiClient, ApiError

logger = logging.getLogger("homechef.client.orders")

TERMINAL_STATUSES = frozenset({"delivered", "cancelled", "refunded"})


class OrdersClient:
    def __init__(self, api: ApiClient):
        self.api = api

    def get_order(self, order_id) -> dict:
        return self.api.get(f"/orders/{order_id}")

    def list_orders(
        self, participant_id=None, filter: str = "all", search: Optional[str] = None
    ) -> list:
        params = {"filter": filter}
        if participant_id is not None:
            params["participant_id"] = str(participant_id)
        if search:
            params["search"] = search
        return self.api.get("/orders", params=params)

    def update_status(
        self,
        order_id,
        status: str,
        actor_id,
        actor_role: str,
        message: Optional[str] = None,
        expected_status: Optional[str] = None,
    ) -> dict:
        body = {"status": status}
        if message:
            body["message"] = message
        if expected_status:
            body["expected_status"] = expected_status
        return self.api.put(
            f"/orders/{order_id}/status",
            json=body,
            params={"actor_id": str(actor_id), "actor_role": actor_role},
        )

    def cancel_order(self, order_id, actor_id, reason: str, notes: Optional[str] = None) -> dict:
        return self.api.post(
            f"/orders/{order_id}/cancel",
            json={"reason": reason, "notes": notes},
            params={"actor_id": str(actor_id)},
        )

    def poll_status(
        self,
        order_id,
        interval: float = 5.0,
        timeout: float = 300.0,
        on_change: Optional[Callable[[str], None]] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> str:
        """
        Re-fetch the order every ``interval`` seconds until it reaches a
        terminal status or ``timeout`` elapses; returns the last status seen.

        ``on_change`` is called with each newly observed status.
        """
        deadline = clock() + timeout
        last = None
        while True:
            try:
                status = self.get_order(order_id)["status"]
            except ApiError as exc:
                if exc.status_code is not None and exc.status_code < 500:
                    raise
                logger.warning("poll of order %s failed: %s", order_id, exc)
                status = last
            if status is not None and status != last:
                last = status
                if on_change is not None:
                    on_change(status)
            if last in TERMINAL_STATUSES or clock() >= deadline:
                return last
            sleep(interval)
