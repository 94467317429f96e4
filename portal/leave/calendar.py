"""Business-day arithmetic — working-day counts and range legality.

Everything here is pure: no I/O, no clock reads, no mutation of inputs.
A *working day* is Monday–Friday and not a member of the blocked set.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import AbstractSet, Iterable, Iterator, Optional

from portal.common.constants import WEEKEND_DAYS, EntityId, RequestStatus
from portal.leave.schemas import Holiday, LeaveRequest


def iter_dates(start: date, end: date) -> Iterator[date]:
    """Yield every calendar date from ``start`` to ``end`` inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def is_working_day(day: date, blocked: AbstractSet[date] = frozenset()) -> bool:
    return day.weekday() not in WEEKEND_DAYS and day not in blocked


def count_working_days(
    start: date,
    end: date,
    blocked: AbstractSet[date] = frozenset(),
) -> int:
    """Number of working days in ``[start, end]``; 0 when ``start > end``."""
    return sum(1 for d in iter_dates(start, end) if is_working_day(d, blocked))


def is_range_selectable(
    start: date,
    end: date,
    blocked: AbstractSet[date] = frozenset(),
) -> bool:
    """True iff *every* day of ``[start, end]`` is a working day.

    A single weekend or blocked day anywhere inside the range rejects the
    whole selection; ranges are never shortened to fit.
    """
    if start > end:
        return False
    return all(is_working_day(d, blocked) for d in iter_dates(start, end))


def next_working_day(
    day: date,
    blocked: AbstractSet[date] = frozenset(),
    *,
    max_lookahead: int = 366,
) -> Optional[date]:
    """First working day on or after ``day`` (``None`` if none within a year)."""
    for offset in range(max_lookahead + 1):
        candidate = day + timedelta(days=offset)
        if is_working_day(candidate, blocked):
            return candidate
    return None


def holiday_dates(
    holidays: Iterable[Holiday],
    location_id: Optional[EntityId] = None,
) -> frozenset[date]:
    """Dates blocked by holidays for one location.

    Holidays without a location apply everywhere. When ``location_id`` is
    ``None`` only those global holidays are used.
    """
    return frozenset(
        h.holiday_date
        for h in holidays
        if h.location_id is None or (location_id is not None and str(h.location_id) == str(location_id))
    )


def booked_dates(
    requests: Iterable[LeaveRequest],
    statuses: AbstractSet[RequestStatus] = frozenset({RequestStatus.approved, RequestStatus.pending}),
) -> frozenset[date]:
    """Every date covered by the given requests in one of ``statuses``."""
    dates: set[date] = set()
    for req in requests:
        if req.status in statuses:
            dates.update(iter_dates(req.start_date, req.end_date))
    return frozenset(dates)


def build_blocked_dates(
    holidays: Iterable[Holiday] = (),
    location_id: Optional[EntityId] = None,
    own_requests: Iterable[LeaveRequest] = (),
    *,
    include_pending: bool = True,
) -> frozenset[date]:
    """Blocked-date set for the selection calendar.

    Weekends are a fixed rule applied by ``is_working_day`` and are not
    materialised here.
    """
    statuses = {RequestStatus.approved}
    if include_pending:
        statuses.add(RequestStatus.pending)
    return holiday_dates(holidays, location_id) | booked_dates(own_requests, frozenset(statuses))
