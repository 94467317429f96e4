"""In-memory vacation backend — the REST contract the portal client consumes.

Business rules enforced server-side:
  - ranges must consist only of working days for the requester's location,
    and must not overlap the requester's approved/pending requests
  - ``requested_days`` must equal the working-day count of the range
  - requested days may not exceed the remaining allowance
  - approve/reject only from ``pending`` (409 otherwise); managers only
    within their own department
"""

from __future__ import annotations

import itertools
import logging
from datetime import date, datetime, timezone
from typing import Callable, Optional

from portal.common.constants import RequestStatus, UserRole
from portal.devserver.exceptions import (
    AccessDenied,
    RequestConflict,
    ResourceNotFound,
    RuleViolation,
)
from portal.devserver.schemas import (
    HolidayOut,
    HolidayRecord,
    LocationOut,
    UserRecord,
    VacationRequestIn,
    VacationRequestOut,
    VacationRequestRecord,
    VacationSummaryOut,
)
from portal.leave.calendar import count_working_days, is_range_selectable, iter_dates

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VacationBackend:
    """Users, locations, holidays and vacation requests held in memory."""

    def __init__(self, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self.users: dict[int, UserRecord] = {}
        self.locations: dict[int, str] = {}
        self.holidays: list[HolidayRecord] = []
        self.requests: dict[int, VacationRequestRecord] = {}
        self._request_ids = itertools.count(1)
        self._clock = clock

    # ─────────────────────────────────────────────────────────────────
    # Seeding
    # ─────────────────────────────────────────────────────────────────

    def add_location(self, location_id: int, name: str) -> None:
        self.locations[location_id] = name

    def add_holiday(self, holiday_date: date, name: str, location_id: int) -> HolidayRecord:
        record = HolidayRecord(holiday_date=holiday_date, name=name, location_id=location_id)
        self.holidays.append(record)
        return record

    def add_user(self, user: UserRecord) -> UserRecord:
        self.users[user.id] = user
        return user

    def add_request(
        self,
        requester: UserRecord,
        start_date: date,
        end_date: date,
        *,
        status: RequestStatus = RequestStatus.pending,
        reviewer: Optional[UserRecord] = None,
        reason: Optional[str] = None,
        comments: Optional[str] = None,
    ) -> VacationRequestRecord:
        """Insert a request directly, bypassing validation (fixtures/demo data)."""
        now = self._clock()
        record = VacationRequestRecord(
            id=next(self._request_ids),
            requester_id=requester.id,
            department_id=requester.department_id,
            start_date=start_date,
            end_date=end_date,
            requested_days=count_working_days(
                start_date, end_date, self.holiday_dates(requester.location_id),
            ),
            reason=reason,
            created_at=now,
            updated_at=now,
        )
        if status is not RequestStatus.pending:
            self._resolve(record, status, reviewer or requester, comments)
        self.requests[record.id] = record
        return record

    # ─────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────

    def holiday_dates(self, location_id: Optional[int]) -> frozenset[date]:
        return frozenset(
            h.holiday_date for h in self.holidays if h.location_id == location_id
        )

    def _booked_dates(self, user_id: int) -> frozenset[date]:
        booked: set[date] = set()
        for r in self.requests.values():
            if r.requester_id == user_id and r.status is not RequestStatus.rejected:
                booked.update(iter_dates(r.start_date, r.end_date))
        return frozenset(booked)

    def used_days(self, user_id: int) -> int:
        return sum(
            r.requested_days
            for r in self.requests.values()
            if r.requester_id == user_id and r.status is RequestStatus.approved
        )

    def _get(self, request_id: int) -> VacationRequestRecord:
        record = self.requests.get(request_id)
        if record is None:
            raise ResourceNotFound("VacationRequest", request_id)
        return record

    def to_out(self, record: VacationRequestRecord) -> VacationRequestOut:
        requester = self.users.get(record.requester_id)
        return VacationRequestOut(
            id=record.id,
            requester_id=record.requester_id,
            requester_name=requester.display_name if requester else None,
            requester_email=requester.email if requester else None,
            department_id=record.department_id,
            department_name=requester.department_name if requester else None,
            start_date=record.start_date,
            end_date=record.end_date,
            requested_days=record.requested_days,
            request_status=record.status,
            reason=record.reason,
            comments=record.comments,
            approved_by=record.approved_by,
            approved_at=record.approved_at,
            rejected_by=record.rejected_by,
            rejected_at=record.rejected_at,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )

    def _resolve(
        self,
        record: VacationRequestRecord,
        status: RequestStatus,
        reviewer: UserRecord,
        comments: Optional[str],
    ) -> None:
        now = self._clock()
        if status is RequestStatus.approved:
            record.approved_by = reviewer.id
            record.approved_at = now
        else:
            record.rejected_by = reviewer.id
            record.rejected_at = now
        record.status = status
        record.comments = comments
        record.updated_at = now

    # ─────────────────────────────────────────────────────────────────
    # Queries
    # ─────────────────────────────────────────────────────────────────

    def list_for_user(self, user: UserRecord) -> list[VacationRequestOut]:
        mine = [r for r in self.requests.values() if r.requester_id == user.id]
        mine.sort(key=lambda r: (r.created_at, r.id), reverse=True)
        return [self.to_out(r) for r in mine]

    def list_all(self) -> list[VacationRequestOut]:
        rows = sorted(self.requests.values(), key=lambda r: (r.created_at, r.id), reverse=True)
        return [self.to_out(r) for r in rows]

    def summary(self, user_id: int) -> VacationSummaryOut:
        user = self.users.get(user_id)
        if user is None:
            raise ResourceNotFound("User", user_id)
        used = self.used_days(user_id)
        return VacationSummaryOut(
            allowance_days=user.allowance_days,
            remaining_days=user.allowance_days - used,
            used_days=used,
        )

    def location(self, location_id: int) -> LocationOut:
        name = self.locations.get(location_id)
        if name is None:
            raise ResourceNotFound("Location", location_id)
        holidays = sorted(
            (h for h in self.holidays if h.location_id == location_id),
            key=lambda h: h.holiday_date,
        )
        return LocationOut(
            id=location_id,
            name=name,
            holidays=[HolidayOut(**h.model_dump()) for h in holidays],
        )

    # ─────────────────────────────────────────────────────────────────
    # Mutations
    # ─────────────────────────────────────────────────────────────────

    def create_request(self, user: UserRecord, body: VacationRequestIn) -> VacationRequestOut:
        if body.start_date > body.end_date:
            raise RuleViolation("end_date", "end_date must be on or after start_date.")

        blocked = self.holiday_dates(user.location_id) | self._booked_dates(user.id)
        if not is_range_selectable(body.start_date, body.end_date, blocked):
            raise RuleViolation(
                "start_date", "The range includes weekends, holidays or days already requested.",
            )

        working = count_working_days(body.start_date, body.end_date, blocked)
        if body.requested_days != working:
            raise RuleViolation(
                "requested_days", f"Expected {working} working days, got {body.requested_days}.",
            )

        remaining = user.allowance_days - self.used_days(user.id)
        if body.requested_days > remaining:
            raise RuleViolation(
                "requested_days",
                f"Not enough vacation days: requested {body.requested_days}, "
                f"only {remaining} available.",
            )

        now = self._clock()
        record = VacationRequestRecord(
            id=next(self._request_ids),
            requester_id=user.id,
            department_id=user.department_id,
            start_date=body.start_date,
            end_date=body.end_date,
            requested_days=body.requested_days,
            reason=(body.comments or "").strip() or None,
            created_at=now,
            updated_at=now,
        )
        self.requests[record.id] = record
        logger.info("User %s requested %d days (%s – %s)", user.id, working, body.start_date, body.end_date)
        return self.to_out(record)

    def _review(
        self,
        request_id: int,
        reviewer: UserRecord,
        status: RequestStatus,
        comments: Optional[str],
    ) -> VacationRequestOut:
        record = self._get(request_id)
        if reviewer.role is UserRole.manager and record.department_id != reviewer.department_id:
            raise AccessDenied("Managers can only review requests from their own department.")
        if record.status is not RequestStatus.pending:
            raise RequestConflict(request_id, record.status)
        self._resolve(record, status, reviewer, comments)
        logger.info("Request %s %s by %s", request_id, status.value, reviewer.id)
        return self.to_out(record)

    def approve(
        self,
        request_id: int,
        reviewer: UserRecord,
        comment: Optional[str] = None,
    ) -> VacationRequestOut:
        comment = (comment or "").strip() or None
        return self._review(request_id, reviewer, RequestStatus.approved, comment)

    def reject(self, request_id: int, reviewer: UserRecord, reason: str) -> VacationRequestOut:
        reason = reason.strip()
        if not reason:
            raise RuleViolation("reason", "A reason is required to reject a request.")
        return self._review(request_id, reviewer, RequestStatus.rejected, reason)
