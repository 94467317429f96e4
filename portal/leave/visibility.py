"""Role-scoped visibility — the single authorization decision for request views.

admin    → every request
manager  → requests of their own department
anything else (employee, unknown, missing) → nothing (fail-closed)
"""

from __future__ import annotations

from typing import Iterable, Optional

from portal.auth.session import SessionContext
from portal.common.constants import EntityId, UserRole
from portal.leave.schemas import LeaveRequest


def _same_id(a: Optional[EntityId], b: Optional[EntityId]) -> bool:
    # Backends disagree on int vs str ids; None never matches
    return a is not None and b is not None and str(a) == str(b)


def filter_visible(
    requests: Iterable[LeaveRequest],
    role: object,
    department_id: Optional[EntityId],
) -> list[LeaveRequest]:
    """Restrict the all-requests view to what ``role`` may see."""
    resolved = UserRole.parse(role)
    if resolved is UserRole.admin:
        return list(requests)
    if resolved is UserRole.manager:
        return [r for r in requests if _same_id(r.department_id, department_id)]
    return []


def can_view(request: LeaveRequest, session: SessionContext) -> bool:
    """Owner, admin, or manager of the request's department."""
    if _same_id(request.requester_id, session.user_id):
        return True
    return bool(filter_visible([request], session.role, session.department_id))


def can_review(session: SessionContext) -> bool:
    return session.role in (UserRole.admin, UserRole.manager)
