"""Leave balance aggregation — derived {total, available, used, pending}."""

from __future__ import annotations

from typing import Iterable, Optional

from portal.common.constants import RequestStatus
from portal.config import settings
from portal.leave.schemas import LeaveBalance, LeaveRequest


def _sum_days(requests: Iterable[LeaveRequest], status: RequestStatus) -> int:
    return sum(r.requested_days for r in requests if r.status is status)


def compute_balance(
    requests: Iterable[LeaveRequest],
    total_days: Optional[int] = None,
) -> LeaveBalance:
    """Aggregate the caller's own requests against an annual allotment.

    Pending days are informational only: they do not reduce
    ``available_days`` until the request is approved.
    """
    requests = list(requests)
    total = settings.DEFAULT_ANNUAL_ALLOWANCE if total_days is None else total_days
    used = _sum_days(requests, RequestStatus.approved)
    return LeaveBalance(
        total_days=total,
        available_days=total - used,
        used_days=used,
        pending_days=_sum_days(requests, RequestStatus.pending),
    )


def usage_percentage(balance: LeaveBalance) -> float:
    """Share of the allotment already used, 0–100."""
    if balance.total_days <= 0:
        return 0.0
    return min(100.0, max(0.0, balance.used_days / balance.total_days * 100))
