from typing import Any, Mapping, Optional


class ServiceError(Exception):
    """Base class for errors raised by the service layer.

    Attributes:
        message: human-readable message
        details: optional mapping with extra context (field errors, validation info)
        code: machine-readable error code
        http_status: suggested HTTP status code for handlers
    """

    http_status = 500
    default_message = "Service error"
    default_code = "SERVICE_ERROR"

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[Mapping[str, Any]] = None,
        code: Optional[str] = None,
    ):
        message = message or self.default_message
        super().__init__(message)
        self.message = message
        self.details = details
        self.code = code or self.default_code

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = dict(self.details)
        return payload

    def __str__(self) -> str:
        return self.message


class ServiceValidationError(ServiceError):
    """Raised when input data is invalid or a precondition for a service call is not met."""

    http_status = 400
    default_message = "Invalid input"
    default_code = "SERVICE_VALIDATION_ERROR"


class UnauthorizedError(ServiceError):
    """Raised when the caller could not be identified."""

    http_status = 401
    default_message = "Unauthorized"
    default_code = "UNAUTHORIZED"


class ForbiddenError(ServiceError):
    """Raised when the caller is known but may not perform the action."""

    http_status = 403
    default_message = "Forbidden"
    default_code = "FORBIDDEN"


class NotFoundError(ServiceError):
    """Raised when a requested resource was not found."""

    http_status = 404
    default_message = "Not found"
    default_code = "NOT_FOUND"


class ConflictError(ServiceError):
    """Raised when a resource conflict occurs (e.g., stale status, duplicate tip)."""

    http_status = 409
    default_message = "Conflict"
    default_code = "CONFLICT"


class InvalidTransitionError(ConflictError):
    """Raised when an order status change is not allowed from the current status."""

    default_message = "Invalid status transition"
    default_code = "INVALID_STATUS_TRANSITION"

    def __init__(self, current, target, details: Optional[Mapping[str, Any]] = None):
        current = getattr(current, "value", current)
        target = getattr(target, "value", target)
        super().__init__(
            f"Cannot move order from '{current}' to '{target}'",
            details={"current_status": current, "target_status": target, **(details or {})},
        )
        self.current = current
        self.target = target


class MessageBlockedError(ServiceError):
    """Raised when a chat message or attachment is rejected by moderation.

    The ``rule`` attribute names the moderation rule that fired.
    """

    http_status = 422
    default_message = "Your message contains restricted content"
    default_code = "MESSAGE_BLOCKED"

    def __init__(self, reason: Optional[str] = None, rule: Optional[str] = None):
        super().__init__(reason, details={"rule": rule} if rule else None)
        self.rule = rule
