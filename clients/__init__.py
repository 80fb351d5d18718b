"""HTTP clients for the HomeChef API"""

from clients.api_client import ApiClient, ApiError
from clients.orders_client import OrdersClient

__all__ = ["ApiClient", "ApiError", "OrdersClient"]
