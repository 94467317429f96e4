"""Calendar selection controller — turns a date drag into a validated range.

Two states:

  Idle      nothing held
  Selected  a fully-selectable range, waiting for submit or cancel

Illegal drags never leave ``Idle``: the controller raises
``BlockedDateSelectionError`` and asks the calendar widget to clear its
visual selection through the ``on_unselect`` callback.
"""

from __future__ import annotations

import enum
import logging
from datetime import date, timedelta
from typing import AbstractSet, Callable, Iterable, Optional

from portal.common.constants import EntityId
from portal.common.exceptions import BlockedDateSelectionError, EmptySelectionError
from portal.leave.calendar import (
    build_blocked_dates,
    count_working_days,
    is_range_selectable,
)
from portal.leave.schemas import CalendarSelection, Holiday, LeaveRequest
from portal.leave.store import LeaveRequestStore

logger = logging.getLogger(__name__)


class SelectionState(str, enum.Enum):
    idle = "idle"
    selected = "selected"


class SelectionController:
    """Holds at most one validated ``CalendarSelection``."""

    def __init__(
        self,
        blocked_dates: AbstractSet[date] = frozenset(),
        *,
        on_unselect: Optional[Callable[[], None]] = None,
    ) -> None:
        self._blocked = frozenset(blocked_dates)
        self._selection: Optional[CalendarSelection] = None
        self._on_unselect = on_unselect
        self.submitting = False

    # ── State ────────────────────────────────────────────────────────

    @property
    def state(self) -> SelectionState:
        return SelectionState.idle if self._selection is None else SelectionState.selected

    @property
    def selection(self) -> Optional[CalendarSelection]:
        return self._selection

    @property
    def working_days(self) -> int:
        return 0 if self._selection is None else self._selection.working_days

    @property
    def blocked_dates(self) -> frozenset[date]:
        return self._blocked

    def _clear(self) -> None:
        was_selected = self._selection is not None
        self._selection = None
        if was_selected and self._on_unselect is not None:
            self._on_unselect()

    # ── Transitions ──────────────────────────────────────────────────

    def select(self, start: date, end: date) -> CalendarSelection:
        """Select the inclusive range ``[start, end]``."""
        if not is_range_selectable(start, end, self._blocked):
            # Always clear the widget, even from Idle: it drew the drag
            self._selection = None
            if self._on_unselect is not None:
                self._on_unselect()
            logger.debug("Rejected selection %s – %s", start, end)
            raise BlockedDateSelectionError(start, end)

        self._selection = CalendarSelection(
            start_date=start,
            end_date=end,
            working_days=count_working_days(start, end, self._blocked),
        )
        return self._selection

    def select_exclusive(self, start: date, end_exclusive: date) -> CalendarSelection:
        """Calendar widgets report drags with an exclusive end date."""
        return self.select(start, end_exclusive - timedelta(days=1))

    def cancel(self) -> None:
        self._clear()

    async def submit(
        self,
        store: LeaveRequestStore,
        reason: Optional[str] = None,
    ) -> LeaveRequest:
        """Create the request; stays ``Selected`` if the store raises."""
        if self._selection is None:
            raise EmptySelectionError("Select a date range in the calendar first.")
        self.submitting = True
        try:
            created = await store.create(self._selection, reason)
        finally:
            self.submitting = False
        self._clear()
        return created

    def refresh_blocked_dates(self, blocked_dates: AbstractSet[date]) -> None:
        """Swap the blocked set; drops a held range that became illegal."""
        self._blocked = frozenset(blocked_dates)
        held = self._selection
        if held is not None and not is_range_selectable(
            held.start_date, held.end_date, self._blocked,
        ):
            logger.info(
                "Selection %s – %s invalidated by a blocked-date change",
                held.start_date, held.end_date,
            )
            self._clear()

    def bind(
        self,
        store: LeaveRequestStore,
        holidays: Iterable[Holiday] = (),
        location_id: Optional[EntityId] = None,
    ) -> Callable[[], None]:
        """Rebuild the blocked set whenever the store's own cache changes.

        Returns the unsubscribe callable.
        """
        holidays = list(holidays)

        def _on_own_changed(own: list[LeaveRequest]) -> None:
            self.refresh_blocked_dates(build_blocked_dates(holidays, location_id, own))

        _on_own_changed(store.own)
        return store.subscribe(_on_own_changed)
