"""VacationApi tests — REST contract against the in-process dev server,
error translation and transport failures.
"""

from __future__ import annotations

import json
from datetime import date
from unittest.mock import MagicMock

import httpx
import pytest

from portal.auth.session import Session
from portal.common.constants import RequestStatus
from portal.common.exceptions import (
    ForbiddenError,
    NetworkError,
    NotFoundError,
    ResponseFormatError,
    StateConflictError,
    UnauthorizedError,
    ValidationException,
)
from portal.devserver.security import create_access_token
from portal.leave.client import VacationApi
from portal.leave.schemas import LeaveRequestCreate
from tests.conftest import BASE_URL, FRIDAY, MONDAY, make_wire_request, session_for


def _body(start=MONDAY, end=FRIDAY, days=5, comments=None) -> LeaveRequestCreate:
    return LeaveRequestCreate(start_date=start, end_date=end, requested_days=days, comments=comments)


def _mock_api(handler, session: Session | None = None) -> VacationApi:
    return VacationApi(
        session or Session(),
        base_url=BASE_URL,
        transport=httpx.MockTransport(handler),
    )


# ═════════════════════════════════════════════════════════════════════
# Happy paths against the dev server
# ═════════════════════════════════════════════════════════════════════


class TestVacationEndpoints:
    """Round trips through the real REST contract."""

    async def test_create_and_list_mine(self, api_for):
        api = api_for(3)
        created = await api.create(_body(comments="Family trip"))
        assert created.status is RequestStatus.pending
        assert created.requester_id == 3
        assert created.requested_days == 5
        assert created.reason == "Family trip"

        mine = await api.get_my_requests()
        assert [r.id for r in mine] == [created.id]

    async def test_get_all_as_manager(self, api_for, backend):
        backend.add_request(backend.users[3], MONDAY, FRIDAY)
        backend.add_request(backend.users[4], MONDAY, FRIDAY)
        requests = await api_for(2).get_all()
        assert len(requests) == 2

    async def test_approve_sends_comment(self, api_for, backend):
        record = backend.add_request(backend.users[3], MONDAY, FRIDAY)
        updated = await api_for(2).approve(record.id, "Enjoy")
        assert updated.status is RequestStatus.approved
        assert updated.approved_by == 2
        assert updated.comments == "Enjoy"

    async def test_reject_sends_reason(self, api_for, backend):
        record = backend.add_request(backend.users[3], MONDAY, FRIDAY)
        updated = await api_for(2).reject(record.id, "Release week")
        assert updated.status is RequestStatus.rejected
        assert updated.rejected_by == 2
        assert updated.comments == "Release week"

    async def test_summary(self, api_for):
        summary = await api_for(3).get_vacation_summary(3)
        assert summary.total_days == 22
        assert summary.used_days == 0

    async def test_location_holidays(self, api_for):
        holidays = await api_for(3).get_location_holidays(1)
        assert [h.holiday_date for h in holidays] == [date(2026, 3, 19)]

    async def test_context_manager_closes(self, app, backend):
        async with VacationApi(
            session_for(backend.users[3]),
            base_url=BASE_URL,
            transport=httpx.ASGITransport(app=app),
        ) as api:
            assert await api.get_my_requests() == []


# ═════════════════════════════════════════════════════════════════════
# Error translation
# ═════════════════════════════════════════════════════════════════════


class TestErrorTranslation:
    """Non-2xx responses become PortalError subclasses."""

    async def test_employee_cannot_list_all(self, api_for):
        with pytest.raises(ForbiddenError):
            await api_for(3).get_all()

    async def test_double_approve_conflicts(self, api_for, backend):
        record = backend.add_request(backend.users[3], MONDAY, FRIDAY)
        api = api_for(2)
        await api.approve(record.id)
        with pytest.raises(StateConflictError) as exc_info:
            await api.approve(record.id)
        assert exc_info.value.request_id == record.id
        assert exc_info.value.status_code == 409
        assert exc_info.value.current_status is RequestStatus.approved

    async def test_overlong_reason_fails_before_sending(self):
        seen: list[httpx.Request] = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=make_wire_request())

        async with _mock_api(handler) as api:
            with pytest.raises(ValidationException) as exc_info:
                await api.reject(7, "x" * 501)
        assert "reason" in exc_info.value.errors
        assert exc_info.value.status_code is None
        assert seen == []

    async def test_wrong_day_count_surfaces_server_message(self, api_for):
        with pytest.raises(ValidationException) as exc_info:
            await api_for(3).create(_body(days=4))
        assert exc_info.value.status_code == 422
        assert exc_info.value.user_message == "Expected 5 working days, got 4."

    async def test_unknown_request_not_found(self, api_for):
        with pytest.raises(NotFoundError):
            await api_for(2).approve(999)

    async def test_401_invokes_unauthorized_hook(self, api_for):
        hook = MagicMock()
        api = api_for(3, on_unauthorized=hook)
        api._session.token = "garbage"
        with pytest.raises(UnauthorizedError):
            await api.get_my_requests()
        hook.assert_called_once_with()
        assert api._session.token is None

    async def test_expired_token_rejected(self, app, backend):
        session = Session()
        session.login(create_access_token(backend.users[3], expired=True), {"role_id": 3})
        async with VacationApi(
            session, base_url=BASE_URL, transport=httpx.ASGITransport(app=app),
        ) as api:
            with pytest.raises(UnauthorizedError):
                await api.get_my_requests()


# ═════════════════════════════════════════════════════════════════════
# Transport failures / malformed bodies
# ═════════════════════════════════════════════════════════════════════


class TestTransport:
    """MockTransport-driven failures."""

    async def test_connect_error_is_network_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        async with _mock_api(handler) as api:
            with pytest.raises(NetworkError):
                await api.get_my_requests()

    async def test_timeout_is_network_error(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        async with _mock_api(handler) as api:
            with pytest.raises(NetworkError):
                await api.get_all()

    async def test_non_json_body(self):
        async with _mock_api(lambda request: httpx.Response(200, text="<html/>")) as api:
            with pytest.raises(ResponseFormatError):
                await api.get_my_requests()

    async def test_unknown_field_is_format_error(self):
        payload = [make_wire_request(unexpected="x")]
        async with _mock_api(lambda request: httpx.Response(200, json=payload)) as api:
            with pytest.raises(ResponseFormatError):
                await api.get_my_requests()

    async def test_enveloped_and_legacy_payload(self):
        wire = make_wire_request()
        wire["user_id"] = wire.pop("requester_id")
        wire["days_requested"] = wire.pop("requested_days")
        async with _mock_api(lambda request: httpx.Response(200, json={"data": [wire]})) as api:
            requests = await api.get_my_requests()
        assert requests[0].requester_id == 3
        assert requests[0].requested_days == 5

    async def test_request_shape(self):
        seen: list[httpx.Request] = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=make_wire_request(
                request_status="rejected", rejected_by=2, rejected_at="2026-02-02T10:00:00Z",
            ))

        session = Session()
        session.token = "tok"
        async with _mock_api(handler, session) as api:
            await api.reject(1, "No cover")

        request = seen[0]
        assert request.method == "PUT"
        assert request.url.path == "/api/vacation-requests/1/reject"
        assert request.headers["Authorization"] == "Bearer tok"
        assert json.loads(request.content) == {"reason": "No cover"}
