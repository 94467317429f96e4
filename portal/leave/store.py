"""Vacation request store — the two client caches and the derived balance.

One ``LeaveRequestStore`` per signed-in session. It owns exactly:

  - ``own``      the caller's requests, newest first (feeds the balance)
  - ``visible``  the role-filtered "all requests" view (managers/admins)
  - ``balance``  recomputed explicitly after every change to ``own``

No operation writes both caches. Every failure leaves the caches exactly
as they were and is re-raised as a ``PortalError``; the last failure's
user-facing message is also kept in ``error`` for the host UI.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Iterable, Optional, TypeVar

from portal.common.constants import EntityId, RequestStatus, SortOrder
from portal.common.exceptions import (
    EmptySelectionError,
    InsufficientBalanceError,
    MissingCommentError,
    PortalError,
    StateConflictError,
)
from portal.leave.balance import compute_balance
from portal.leave.client import VacationApi
from portal.leave.schemas import (
    ApprovePayload,
    CalendarSelection,
    LeaveBalance,
    LeaveRequest,
    LeaveRequestCreate,
    RejectPayload,
    build_body,
)
from portal.leave.visibility import filter_visible

logger = logging.getLogger(__name__)

T = TypeVar("T")
OwnListener = Callable[[list[LeaveRequest]], None]


def sorted_by_created(
    requests: Iterable[LeaveRequest],
    order: SortOrder = SortOrder.desc,
) -> list[LeaveRequest]:
    return sorted(
        requests,
        key=lambda r: r.created_at,
        reverse=order is SortOrder.desc,
    )


def _same_id(a: EntityId, b: EntityId) -> bool:
    return str(a) == str(b)


class LeaveRequestStore:
    """Client-side repository for vacation requests."""

    def __init__(self, api: VacationApi, *, total_days: Optional[int] = None) -> None:
        self._api = api
        self._total_days = total_days
        self._own: list[LeaveRequest] = []
        self._visible: list[LeaveRequest] = []
        self._balance = compute_balance(self._own, self._total_days)
        self._in_flight = 0
        self._listeners: list[OwnListener] = []
        self._generation = 0
        self.error: Optional[str] = None

    # ── Read-only views ──────────────────────────────────────────────

    @property
    def own(self) -> list[LeaveRequest]:
        return list(self._own)

    @property
    def visible(self) -> list[LeaveRequest]:
        return list(self._visible)

    @property
    def balance(self) -> LeaveBalance:
        return self._balance

    @property
    def total_days(self) -> Optional[int]:
        return self._total_days

    @property
    def loading(self) -> bool:
        return self._in_flight > 0

    def requests_by_status(
        self,
        status: RequestStatus,
        *,
        from_visible: bool = False,
    ) -> list[LeaveRequest]:
        source = self._visible if from_visible else self._own
        return [r for r in source if r.status is status]

    def find_visible(self, request_id: EntityId) -> Optional[LeaveRequest]:
        return next((r for r in self._visible if _same_id(r.id, request_id)), None)

    # ── Listeners ────────────────────────────────────────────────────

    def subscribe(self, listener: OwnListener) -> Callable[[], None]:
        """Call ``listener(own)`` after every change to the own cache."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _set_own(self, requests: list[LeaveRequest]) -> None:
        self._own = requests
        self._balance = compute_balance(self._own, self._total_days)
        logger.debug("Own cache now %d requests, balance %s", len(self._own), self._balance)
        for listener in list(self._listeners):
            listener(self.own)

    # ── Round-trip bookkeeping ───────────────────────────────────────

    async def _run(self, action: str, call: Awaitable[T]) -> T:
        generation = self._generation
        self._in_flight += 1
        self.error = None
        try:
            return await call
        except PortalError as exc:
            if generation == self._generation:
                self.error = exc.user_message
            logger.warning("Vacation %s failed: %s", action, exc)
            raise
        finally:
            self._in_flight -= 1

    def _fail_locally(self, action: str, exc: PortalError) -> None:
        self.error = exc.user_message
        logger.info("Vacation %s refused before sending: %s", action, exc)

    def _is_stale(self, generation: int, action: str) -> bool:
        # reset() ran while the round trip was in flight
        if generation != self._generation:
            logger.debug("Dropping %s response from a reset session", action)
            return True
        return False

    # ── Fetches ──────────────────────────────────────────────────────

    async def fetch_own(self) -> list[LeaveRequest]:
        """Replace the own cache wholesale and recompute the balance."""
        generation = self._generation
        requests = await self._run("fetch own", self._api.get_my_requests())
        if not self._is_stale(generation, "fetch own"):
            self._set_own(requests)
        return self.own

    async def fetch_visible(
        self,
        role: object,
        department_id: Optional[EntityId],
        *,
        status: Optional[RequestStatus] = None,
        requester_id: Optional[EntityId] = None,
    ) -> list[LeaveRequest]:
        """Fetch every request, keep only what ``role`` may see, cache as visible."""
        generation = self._generation
        requests = await self._run("fetch visible", self._api.get_all())
        if self._is_stale(generation, "fetch visible"):
            return self.visible
        requests = filter_visible(requests, role, department_id)
        if status is not None:
            requests = [r for r in requests if r.status is status]
        if requester_id is not None:
            requests = [r for r in requests if _same_id(r.requester_id, requester_id)]
        self._visible = requests
        logger.debug("Visible cache now %d requests", len(requests))
        return self.visible

    async def refresh_allowance(self, user_id: EntityId) -> LeaveBalance:
        """Take the annual allotment from the backend summary."""
        generation = self._generation
        summary = await self._run("fetch summary", self._api.get_vacation_summary(user_id))
        if not self._is_stale(generation, "fetch summary"):
            self._total_days = summary.total_days
            self._set_own(self._own)
        return self._balance

    # ── Mutations ────────────────────────────────────────────────────

    def _create_body(
        self,
        selection: Optional[CalendarSelection],
        reason: Optional[str],
    ) -> LeaveRequestCreate:
        if selection is None or selection.working_days < 1:
            raise EmptySelectionError()
        available = self._balance.available_days
        if selection.working_days > available:
            raise InsufficientBalanceError(selection.working_days, available)
        return build_body(
            LeaveRequestCreate,
            start_date=selection.start_date,
            end_date=selection.end_date,
            requested_days=selection.working_days,
            comments=reason,
        )

    async def create(
        self,
        selection: Optional[CalendarSelection],
        reason: Optional[str] = None,
    ) -> LeaveRequest:
        """Submit a new request; prepends it to ``own`` on success."""
        try:
            body = self._create_body(selection, reason)
        except PortalError as exc:
            self._fail_locally("create", exc)
            raise

        generation = self._generation
        created = await self._run("create", self._api.create(body))
        logger.info(
            "Created vacation request %s (%s – %s, %d days)",
            created.id, created.start_date, created.end_date, created.requested_days,
        )
        if not self._is_stale(generation, "create"):
            self._set_own([created, *self._own])
        return created

    def _check_pending(self, request_id: EntityId) -> None:
        cached = self.find_visible(request_id)
        if cached is not None and not cached.is_pending:
            raise StateConflictError(request_id, current_status=cached.status)

    def _replace_visible(self, updated: LeaveRequest) -> None:
        # In place, stable position; unknown ids are a no-op
        self._visible = [updated if _same_id(r.id, updated.id) else r for r in self._visible]

    async def _review(
        self,
        action: str,
        request_id: EntityId,
        call: Callable[[], Awaitable[LeaveRequest]],
    ) -> LeaveRequest:
        generation = self._generation
        updated = await self._run(action, call())
        logger.info("Vacation request %s resolved as %s", updated.id, updated.status.value)
        if not self._is_stale(generation, action):
            self._replace_visible(updated)
        return updated

    async def approve(
        self,
        request_id: EntityId,
        comment: Optional[str] = None,
    ) -> LeaveRequest:
        """Approve a pending request; patches the visible cache only."""
        try:
            self._check_pending(request_id)
            body = build_body(ApprovePayload, comment=(comment or "").strip() or None)
        except PortalError as exc:
            self._fail_locally("approve", exc)
            raise
        return await self._review(
            "approve", request_id, lambda: self._api.approve(request_id, body.comment),
        )

    async def reject(self, request_id: EntityId, comment: Optional[str]) -> LeaveRequest:
        """Reject a pending request; a non-blank comment is mandatory."""
        try:
            if comment is None or not comment.strip():
                raise MissingCommentError()
            self._check_pending(request_id)
            body = build_body(RejectPayload, reason=comment.strip())
        except PortalError as exc:
            self._fail_locally("reject", exc)
            raise
        return await self._review(
            "reject", request_id, lambda: self._api.reject(request_id, body.reason),
        )

    # ── Housekeeping ─────────────────────────────────────────────────

    def clear_error(self) -> None:
        self.error = None

    def reset(self) -> None:
        """Back to the initial empty state (e.g. on logout).

        Responses still in flight are discarded when they arrive.
        """
        self._generation += 1
        self._visible = []
        self.error = None
        self._set_own([])
