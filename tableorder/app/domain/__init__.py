"""Domain models and helpers."""

from .actor import Actor, Role
from .order_status import (
    EDITABLE_STATUSES,
    STATUS_RANK,
    TERMINAL_STATUSES,
    TRANSITIONS,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    can_transition,
    is_terminal,
)

__all__ = [
    "Actor",
    "Role",
    "OrderStatus",
    "PaymentMethod",
    "PaymentStatus",
    "TRANSITIONS",
    "TERMINAL_STATUSES",
    "EDITABLE_STATUSES",
    "STATUS_RANK",
    "can_transition",
    "is_terminal",
]
