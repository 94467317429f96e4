"""Selection controller tests — Idle/Selected transitions, widget callbacks,
blocked-date invalidation, submit behaviour.
"""

from __future__ import annotations

from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest

from portal.common.constants import RequestStatus
from portal.common.exceptions import (
    BlockedDateSelectionError,
    EmptySelectionError,
    NetworkError,
    ValidationException,
)
from portal.leave.calendar import count_working_days
from portal.leave.schemas import Holiday
from portal.leave.selection import SelectionController, SelectionState
from portal.leave.store import LeaveRequestStore
from tests.conftest import FRIDAY, MONDAY, NEXT_MONDAY, SATURDAY, make_request


def _controller(blocked=frozenset()):
    unselect = MagicMock()
    return SelectionController(blocked, on_unselect=unselect), unselect


class TestTransitions:
    """Idle → Selected → Idle."""

    def test_starts_idle(self):
        ctrl, _ = _controller()
        assert ctrl.state is SelectionState.idle
        assert ctrl.selection is None
        assert ctrl.working_days == 0

    def test_valid_range_selects(self):
        ctrl, unselect = _controller()
        sel = ctrl.select(MONDAY, FRIDAY)
        assert ctrl.state is SelectionState.selected
        assert sel.working_days == 5
        assert ctrl.working_days == count_working_days(MONDAY, FRIDAY)
        unselect.assert_not_called()

    def test_invalid_range_stays_idle_and_clears_widget(self):
        ctrl, unselect = _controller()
        with pytest.raises(BlockedDateSelectionError) as exc_info:
            ctrl.select(FRIDAY, NEXT_MONDAY)
        assert isinstance(exc_info.value, ValidationException)
        assert ctrl.state is SelectionState.idle
        unselect.assert_called_once()

    def test_holiday_mid_range_rejected_entirely(self):
        ctrl, _ = _controller({date(2026, 3, 4)})
        with pytest.raises(BlockedDateSelectionError):
            ctrl.select(MONDAY, FRIDAY)
        assert ctrl.selection is None

    def test_invalid_drag_drops_previous_selection(self):
        ctrl, unselect = _controller()
        ctrl.select(MONDAY, FRIDAY)
        with pytest.raises(BlockedDateSelectionError):
            ctrl.select(SATURDAY, SATURDAY)
        assert ctrl.state is SelectionState.idle
        unselect.assert_called_once()

    def test_exclusive_end_converted(self):
        """Widgets report the day after the last selected day."""
        ctrl, _ = _controller()
        sel = ctrl.select_exclusive(MONDAY, SATURDAY)
        assert sel.end_date == FRIDAY
        assert sel.working_days == 5

    def test_cancel(self):
        ctrl, unselect = _controller()
        ctrl.select(MONDAY, FRIDAY)
        ctrl.cancel()
        assert ctrl.state is SelectionState.idle
        unselect.assert_called_once()

    def test_cancel_when_idle_is_quiet(self):
        ctrl, unselect = _controller()
        ctrl.cancel()
        unselect.assert_not_called()

    def test_selection_is_read_only(self):
        ctrl, _ = _controller()
        sel = ctrl.select(MONDAY, FRIDAY)
        with pytest.raises(Exception):
            sel.working_days = 1


class TestBlockedDateRefresh:
    """refresh_blocked_dates / bind."""

    def test_refresh_keeps_still_valid_selection(self):
        ctrl, unselect = _controller()
        ctrl.select(MONDAY, FRIDAY)
        ctrl.refresh_blocked_dates({NEXT_MONDAY})
        assert ctrl.state is SelectionState.selected
        unselect.assert_not_called()

    def test_refresh_drops_invalidated_selection(self):
        ctrl, unselect = _controller()
        ctrl.select(MONDAY, FRIDAY)
        ctrl.refresh_blocked_dates({date(2026, 3, 3)})
        assert ctrl.state is SelectionState.idle
        unselect.assert_called_once()

    def test_bind_rebuilds_from_store_own_cache(self):
        api = MagicMock()
        store = LeaveRequestStore(api)
        ctrl, _ = _controller()
        holidays = [Holiday(holiday_date=date(2026, 3, 19), location_id=1)]

        unsubscribe = ctrl.bind(store, holidays, 1)
        assert date(2026, 3, 19) in ctrl.blocked_dates

        ctrl.select(MONDAY, FRIDAY)
        # A concurrent approval lands in the own cache
        store._set_own([make_request(status=RequestStatus.approved)])
        assert MONDAY in ctrl.blocked_dates
        assert ctrl.state is SelectionState.idle

        unsubscribe()
        store._set_own([])
        assert MONDAY in ctrl.blocked_dates


class TestSubmit:
    """submit() delegates to the store."""

    async def test_submit_creates_and_returns_to_idle(self):
        created = make_request(id=9)
        store = MagicMock()
        store.create = AsyncMock(return_value=created)
        ctrl, unselect = _controller()
        sel = ctrl.select(MONDAY, FRIDAY)

        result = await ctrl.submit(store, "Family trip")

        assert result is created
        store.create.assert_awaited_once_with(sel, "Family trip")
        assert ctrl.state is SelectionState.idle
        assert ctrl.submitting is False
        unselect.assert_called_once()

    async def test_submit_failure_keeps_selection(self):
        store = MagicMock()
        store.create = AsyncMock(side_effect=NetworkError("down"))
        ctrl, _ = _controller()
        ctrl.select(MONDAY, FRIDAY)

        with pytest.raises(NetworkError):
            await ctrl.submit(store)

        assert ctrl.state is SelectionState.selected
        assert ctrl.submitting is False

    async def test_submit_without_selection(self):
        store = MagicMock()
        store.create = AsyncMock()
        ctrl, _ = _controller()
        with pytest.raises(EmptySelectionError):
            await ctrl.submit(store)
        store.create.assert_not_awaited()
