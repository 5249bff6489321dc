"""The user acting on an order."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    OWNER = "owner"
    STAFF = "staff"


@dataclass(frozen=True)
class Actor:
    """Authenticated restaurant user performing a staff-side operation."""

    user_id: str
    role: Role

    @property
    def is_owner(self) -> bool:
        return self.role is Role.OWNER
