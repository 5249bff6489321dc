"""Error taxonomy shared by the ordering core.

Every failure raised by the services derives from :class:`OrderError`. The
HTTP layer turns these into the uniform error envelope using
``status_code`` and ``code``; the message is safe to show to clients.
"""

from __future__ import annotations


class OrderError(Exception):
    """Base class for expected failures of ordering operations."""

    status_code: int = 400
    default_code: str = "ERROR"

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code


class ValidationError(OrderError):
    """Malformed input or a menu line that cannot be ordered."""

    status_code = 400
    default_code = "VALIDATION"


class NotFoundError(OrderError):
    status_code = 404
    default_code = "NOT_FOUND"


class ConflictError(OrderError):
    """The request collides with current state, e.g. an occupied table."""

    status_code = 409
    default_code = "CONFLICT"


class AuthorizationError(OrderError):
    status_code = 403
    default_code = "FORBIDDEN"


class ExternalDependencyError(OrderError):
    """A collaborator outside the database (payment gateway) failed."""

    status_code = 502
    default_code = "GATEWAY_FAILED"


class InvariantViolation(OrderError):
    """The operation would break an order invariant (e.g. completing unpaid)."""

    status_code = 400
    default_code = "INVARIANT"


class PlanLimitExceeded(OrderError):
    status_code = 403
    default_code = "PLAN_LIMIT_EXCEEDED"


class RetryableError(OrderError):
    """The store aborted the transaction; the caller may retry safely."""

    status_code = 503
    default_code = "RETRY"


__all__ = [
    "OrderError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "AuthorizationError",
    "ExternalDependencyError",
    "InvariantViolation",
    "PlanLimitExceeded",
    "RetryableError",
]
