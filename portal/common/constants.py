"""Enums and constants for the Vacation Portal — matching backend wire values."""

from __future__ import annotations

import enum
from typing import Optional, Union


# ── Auth / Roles ────────────────────────────────────────────────────

class UserRole(str, enum.Enum):
    admin = "admin"
    manager = "manager"
    employee = "employee"

    @property
    def role_id(self) -> int:
        return ROLE_IDS[self]

    @classmethod
    def parse(cls, value: object) -> Optional["UserRole"]:
        """Resolve a backend role id (1/2/3) or role name.

        Unknown values return ``None`` so callers fail closed.
        """
        if isinstance(value, UserRole):
            return value
        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            return _ROLES_BY_ID.get(value)
        if isinstance(value, str):
            text = value.strip().lower()
            if text.isdigit():
                return _ROLES_BY_ID.get(int(text))
            try:
                return cls(text)
            except ValueError:
                return None
        return None


# Backend role table: 1=admin, 2=manager (department head), 3=employee
ROLE_IDS: dict[UserRole, int] = {
    UserRole.admin: 1,
    UserRole.manager: 2,
    UserRole.employee: 3,
}
_ROLES_BY_ID: dict[int, UserRole] = {v: k for k, v in ROLE_IDS.items()}


# ── Leave ───────────────────────────────────────────────────────────

class RequestStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self is not RequestStatus.pending


class SortOrder(str, enum.Enum):
    asc = "asc"
    desc = "desc"


# ── Role-based permissions ──────────────────────────────────────────

PERMISSIONS: dict[UserRole, list[str]] = {
    UserRole.employee: [
        "vacation:request",
        "vacation:read_own",
    ],
    UserRole.manager: [
        "vacation:request",
        "vacation:read_own",
        "vacation:read_department",
        "vacation:approve",
        "vacation:reject",
    ],
    UserRole.admin: [
        "vacation:request",
        "vacation:read_own",
        "vacation:read_all",
        "vacation:approve",
        "vacation:reject",
    ],
}

# ── Misc constants ──────────────────────────────────────────────────

WEEKEND_DAYS = frozenset({5, 6})  # Saturday, Sunday (date.weekday())
WIRE_DATE_FORMAT = "%Y-%m-%d"

# Backend ids are integers today; some endpoints return them as strings
EntityId = Union[int, str]
