"""Shared test fixtures — dev server backend, client wiring, factories.

Reusable across all test modules (calendar, store, client, scenarios…).
The dev server runs in-process through ``httpx.ASGITransport``; no
network sockets are opened.
"""

from __future__ import annotations

import os

# Pin settings before anything reads pydantic-settings
os.environ.setdefault("JWT_SECRET", "test-secret-for-ci-do-not-use-in-production")
os.environ.setdefault("DEFAULT_ANNUAL_ALLOWANCE", "22")

from datetime import date, datetime, timezone
from typing import AsyncGenerator, Callable

import pytest
from httpx import ASGITransport, AsyncClient

from portal.auth.session import Session
from portal.common.constants import RequestStatus, UserRole
from portal.devserver.main import create_app
from portal.devserver.schemas import UserRecord
from portal.devserver.security import create_access_token, hash_password
from portal.devserver.service import VacationBackend
from portal.leave.client import VacationApi
from portal.leave.schemas import LeaveRequest
from portal.leave.store import LeaveRequestStore

BASE_URL = "http://test/api"

# 2026-03-02 is a Monday
MONDAY = date(2026, 3, 2)
FRIDAY = date(2026, 3, 6)
SATURDAY = date(2026, 3, 7)
SUNDAY = date(2026, 3, 8)
NEXT_MONDAY = date(2026, 3, 9)


# ── Model factories ─────────────────────────────────────────────────

_FIXED_TS = datetime(2026, 2, 1, 9, 0, tzinfo=timezone.utc)


def make_wire_request(**overrides) -> dict:
    """A valid snake_case request payload as the backend sends it."""
    data = dict(
        id=1,
        requester_id=3,
        requester_name="Lisi Cruz",
        department_id=2,
        start_date="2026-03-02",
        end_date="2026-03-06",
        requested_days=5,
        request_status="pending",
        reason=None,
        comments=None,
        approved_by=None,
        approved_at=None,
        rejected_by=None,
        rejected_at=None,
        created_at="2026-02-01T09:00:00Z",
        updated_at="2026-02-01T09:00:00Z",
    )
    data.update(overrides)
    return data


def make_request(
    *,
    id: int = 1,
    requester_id: int = 3,
    department_id: int | None = 2,
    start_date: date = MONDAY,
    end_date: date = FRIDAY,
    requested_days: int = 5,
    status: RequestStatus = RequestStatus.pending,
    created_at: datetime = _FIXED_TS,
    comments: str | None = None,
) -> LeaveRequest:
    """Build a ``LeaveRequest`` honouring the resolution-field invariant."""
    resolution: dict = {}
    if status is RequestStatus.approved:
        resolution = {"approved_by": 2, "approved_at": created_at}
    elif status is RequestStatus.rejected:
        resolution = {"rejected_by": 2, "rejected_at": created_at}
    return LeaveRequest(
        id=id,
        requester_id=requester_id,
        department_id=department_id,
        start_date=start_date,
        end_date=end_date,
        requested_days=requested_days,
        status=status,
        comments=comments,
        created_at=created_at,
        updated_at=created_at,
        **resolution,
    )


def make_user(
    *,
    id: int,
    role: UserRole = UserRole.employee,
    department_id: int | None = 2,
    location_id: int | None = 1,
    allowance_days: int = 22,
    first_name: str = "Test",
) -> UserRecord:
    return UserRecord(
        id=id,
        email=f"user{id}@example.com",
        password_hash=hash_password("password123"),
        first_name=first_name,
        last_name="User",
        role=role,
        department_id=department_id,
        department_name=f"Department {department_id}",
        location_id=location_id,
        allowance_days=allowance_days,
    )


def session_for(user: UserRecord, **kwargs) -> Session:
    """A signed-in client ``Session`` for a seeded dev server user."""
    session = Session(**kwargs)
    session.login(
        create_access_token(user),
        {
            "first_name": user.first_name,
            "role_id": user.role.role_id,
            "department_id": user.department_id,
            "location_id": user.location_id,
        },
    )
    return session


# ── Dev server ──────────────────────────────────────────────────────

@pytest.fixture
def backend() -> VacationBackend:
    """Fresh in-memory backend: one location, two departments, five users.

    users: 1 admin (dept 1), 2 manager (dept 2), 3 employee (dept 2),
           4 employee (dept 1), 5 manager (dept 1)
    """
    be = VacationBackend()
    be.add_location(1, "Madrid")
    be.add_location(2, "Barcelona")
    be.add_holiday(date(2026, 3, 19), "San José", 1)
    be.add_user(make_user(id=1, role=UserRole.admin, department_id=1, first_name="Ana"))
    be.add_user(make_user(id=2, role=UserRole.manager, department_id=2, first_name="Marco"))
    be.add_user(make_user(id=3, role=UserRole.employee, department_id=2, first_name="Lisi"))
    be.add_user(make_user(id=4, role=UserRole.employee, department_id=1, location_id=2, first_name="Omar"))
    be.add_user(make_user(id=5, role=UserRole.manager, department_id=1, first_name="Mia"))
    return be


@pytest.fixture
def app(backend):
    """A dev server app bound to the test backend."""
    return create_app(backend)


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Raw async HTTP client wired to the dev server."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url=BASE_URL,
    ) as ac:
        yield ac


@pytest.fixture
async def api_for(app, backend) -> AsyncGenerator[Callable[..., VacationApi], None]:
    """Factory: ``api_for(user_id)`` → a ``VacationApi`` signed in as that user."""
    opened: list[VacationApi] = []

    def _make(user_id: int, **session_kwargs) -> VacationApi:
        api = VacationApi(
            session_for(backend.users[user_id], **session_kwargs),
            base_url=BASE_URL,
            transport=ASGITransport(app=app),
        )
        opened.append(api)
        return api

    yield _make
    for api in opened:
        await api.aclose()


@pytest.fixture
def store_for(api_for) -> Callable[..., LeaveRequestStore]:
    """Factory: ``store_for(user_id)`` → a store over a signed-in client."""

    def _make(user_id: int, **store_kwargs) -> LeaveRequestStore:
        return LeaveRequestStore(api_for(user_id), **store_kwargs)

    return _make
