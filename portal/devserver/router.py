"""Dev server routers — auth, vacation requests, summaries, locations.

All vacation endpoints require a bearer token. Review endpoints enforce
manager/admin roles.
"""

from fastapi import APIRouter, Depends
from fastapi.exceptions import HTTPException

from portal.common.constants import UserRole
from portal.devserver.exceptions import AccessDenied
from portal.devserver.schemas import (
    ApproveIn,
    LocationOut,
    LoginIn,
    LoginOut,
    RejectIn,
    SessionDataOut,
    UserRecord,
    VacationRequestIn,
    VacationRequestOut,
    VacationSummaryOut,
)
from portal.devserver.security import (
    create_access_token,
    get_backend,
    get_current_user,
    hash_password,
    require_role,
)
from portal.devserver.service import VacationBackend

auth_router = APIRouter(tags=["auth"])
vacations_router = APIRouter(tags=["vacations"])
users_router = APIRouter(tags=["users"])
locations_router = APIRouter(tags=["locations"])

_reviewer = require_role(UserRole.manager, UserRole.admin)


# ── POST /auth/login ────────────────────────────────────────────────

@auth_router.post("/login", response_model=LoginOut)
async def login(
    body: LoginIn,
    backend: VacationBackend = Depends(get_backend),
):
    """Exchange email/password for a JWT plus the session data block."""
    user = next((u for u in backend.users.values() if u.email == body.email), None)
    if user is None or user.password_hash != hash_password(body.password):
        raise HTTPException(status_code=401, detail="Invalid credentials.")
    return LoginOut(
        token=create_access_token(user),
        sesionData=SessionDataOut(
            first_name=user.first_name,
            role_id=user.role.role_id,
            department_id=user.department_id,
            location_id=user.location_id,
        ),
    )


# ── GET /vacation-requests/my-requests ──────────────────────────────

@vacations_router.get("/my-requests", response_model=list[VacationRequestOut])
async def my_requests(
    user: UserRecord = Depends(get_current_user),
    backend: VacationBackend = Depends(get_backend),
):
    """The caller's own requests, newest first."""
    return backend.list_for_user(user)


# ── GET /vacation-requests ──────────────────────────────────────────

@vacations_router.get("", response_model=list[VacationRequestOut])
async def all_requests(
    user: UserRecord = Depends(_reviewer),
    backend: VacationBackend = Depends(get_backend),
):
    """Every request; the client narrows it to the caller's department."""
    return backend.list_all()


# ── POST /vacation-requests ─────────────────────────────────────────

@vacations_router.post("", response_model=VacationRequestOut, status_code=201)
async def create_request(
    body: VacationRequestIn,
    user: UserRecord = Depends(get_current_user),
    backend: VacationBackend = Depends(get_backend),
):
    """Submit a vacation request. Validates range, day count and balance."""
    return backend.create_request(user, body)


# ── PUT /vacation-requests/{id}/approve ─────────────────────────────

@vacations_router.put("/{request_id}/approve", response_model=VacationRequestOut)
async def approve_request(
    request_id: int,
    body: ApproveIn,
    user: UserRecord = Depends(_reviewer),
    backend: VacationBackend = Depends(get_backend),
):
    """Approve a pending request."""
    return backend.approve(request_id, user, body.comment)


# ── PUT /vacation-requests/{id}/reject ──────────────────────────────

@vacations_router.put("/{request_id}/reject", response_model=VacationRequestOut)
async def reject_request(
    request_id: int,
    body: RejectIn,
    user: UserRecord = Depends(_reviewer),
    backend: VacationBackend = Depends(get_backend),
):
    """Reject a pending request; a reason is mandatory."""
    return backend.reject(request_id, user, body.reason)


# ── GET /users/{id}/vacations/summary ───────────────────────────────

@users_router.get("/{user_id}/vacations/summary", response_model=VacationSummaryOut)
async def vacation_summary(
    user_id: int,
    user: UserRecord = Depends(get_current_user),
    backend: VacationBackend = Depends(get_backend),
):
    """Allowance, remaining and used days for one user."""
    if user.id != user_id and user.role is not UserRole.admin:
        raise AccessDenied("You can only read your own vacation summary.")
    return backend.summary(user_id)


# ── GET /locations/{id} ─────────────────────────────────────────────

@locations_router.get("/{location_id}", response_model=LocationOut)
async def location_detail(
    location_id: int,
    user: UserRecord = Depends(get_current_user),
    backend: VacationBackend = Depends(get_backend),
):
    """A location with its published holidays."""
    return backend.location(location_id)
