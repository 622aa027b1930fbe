"""
Centralized error handling for the notification core and the API.

Services raise the exceptions below; routes stay thin and the app maps them to HTTP
through ERROR_RULES (new error types are added there, not in routes).
Delivery failures never reach the caller: they are recorded on the delivery log.
"""
from __future__ import annotations

from fastapi import HTTPException


class NotificationError(Exception):
    """Base class for errors raised by the notification core."""


class NotFound(NotificationError):
    """A referenced user, product, subscription or log entry does not exist."""

    def __init__(self, kind: str, ident: int | str):
        self.kind = kind
        self.ident = ident
        super().__init__(f"{kind} {ident} not found")


class InvalidArgument(NotificationError):
    """Non-positive id, negative stock, or similar caller error."""


class DeliveryFailure(NotificationError):
    """A channel sender could not deliver. Recoverable: recorded on the log and retried later."""


# ---------------------------------------------------------------------------
# HTTP mapping
# ---------------------------------------------------------------------------

STATUS_BAD_REQUEST = 400
STATUS_NOT_FOUND = 404
STATUS_INTERNAL_ERROR = 500

# List of (exception type, status_code). First match wins.
ERROR_RULES: list[tuple[type[Exception], int]] = [
    (NotFound, STATUS_NOT_FOUND),
    (InvalidArgument, STATUS_BAD_REQUEST),
]


def error_to_http(exc: Exception) -> HTTPException:
    """
    Map a service exception into an HTTPException.
    Uses ERROR_RULES for known error types; otherwise returns 500 with the exception message.
    """
    for exc_type, status_code in ERROR_RULES:
        if isinstance(exc, exc_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=STATUS_INTERNAL_ERROR, detail=str(exc))


def require_positive_id(value: int, name: str) -> int:
    if value is None or int(value) <= 0:
        raise InvalidArgument(f"{name} must be a positive integer (got {value})")
    return int(value)
