"""
Thin JSON client for the HomeChef REST API.
"""

import logging
from typing import Any, Optional

import requests

logger = logging.getLogger("homechef.client")

DEFAULT_TIMEOUT = 10.0


class ApiError(Exception):
    """Non-2xx answer, or no answer at all (``status_code`` is None)."""

    def __init__(self, status_code: Optional[int], message: str, payload: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.payload = payload

    @property
    def code(self) -> Optional[str]:
        if isinstance(self.payload, dict):
            error = self.payload.get("error")
            if isinstance(error, dict):
                return error.get("code")
        return None

    def __str__(self) -> str:
        if self.status_code is None:
            return self.message
        return f"HTTP {self.status_code}: {self.message}"


def _error_message(payload: Any, fallback: str) -> str:
    # Server errors arrive as {"success": false, "error": {"code", "message"}}
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if payload.get("detail"):
            return str(payload["detail"])
    return fallback


class ApiClient:
    """
    JSON over HTTP with a base URL, optional bearer token and a timeout.

    Connection errors, timeouts and 5xx answers are retried once.
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.session = session or requests.Session()

    def set_token(self, token: Optional[str]) -> None:
        self.token = token

    def _headers(self) -> dict:
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def request(
        self, method: str, path: str, params: dict = None, json: Any = None
    ) -> Any:
        url = f"{self.base_url}/{path.lstrip('/')}"
        response = None
        for attempt in (1, 2):
            try:
                response = self.session.request(
                    method,
                    url,
                    params=params,
                    json=json,
                    headers=self._headers(),
                    timeout=self.timeout,
                )
            except (requests.ConnectionError, requests.Timeout) as exc:
                logger.warning(
                    "%s %s attempt %d failed: %s", method, url, attempt, exc
                )
                if attempt == 2:
                    raise ApiError(None, f"Could not reach {self.base_url}: {exc}") from exc
                continue

            if response.status_code >= 500 and attempt == 1:
                logger.warning(
                    "%s %s answered %s, retrying", method, url, response.status_code
                )
                continue
            break

        payload = None
        if response.content:
            try:
                payload = response.json()
            except ValueError:
                payload = response.text

        if not response.ok:
            message = _error_message(payload, response.reason or "Request failed")
            logger.info("%s %s -> %s %s", method, url, response.status_code, message)
            raise ApiError(response.status_code, message, payload)

        logger.debug("%s %s -> %s", method, url, response.status_code)
        return payload

    def get(self, path: str, params: dict = None) -> Any:
        return self.request("GET", path, params=params)

    def post(self, path: str, json: Any = None, params: dict = None) -> Any:
        return self.request("POST", path, params=params, json=json)

    def put(self, path: str, json: Any = None, params: dict = None) -> Any:
        return self.request("PUT", path, params=params, json=json)

    def delete(self, path: str, params: dict = None) -> Any:
        return self.request("DELETE", path, params=params)
