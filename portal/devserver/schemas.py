"""Dev server Pydantic v2 schemas — seeded records and wire bodies.

Naming conventions:
  - *Record  → in-memory rows
  - *In      → request bodies (write)
  - *Out     → response bodies (read), snake_case as the real backend emits
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from portal.common.constants import RequestStatus, UserRole


# ═════════════════════════════════════════════════════════════════════
# Records
# ═════════════════════════════════════════════════════════════════════


class UserRecord(BaseModel):
    """A seeded portal user."""

    id: int
    email: str
    password_hash: str
    first_name: str
    last_name: str
    role: UserRole
    department_id: Optional[int] = None
    department_name: Optional[str] = None
    location_id: Optional[int] = None
    allowance_days: int = 22

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class HolidayRecord(BaseModel):
    holiday_date: date
    name: str
    location_id: int


class VacationRequestRecord(BaseModel):
    """Server-side vacation request; mutated only by the service."""

    model_config = ConfigDict(validate_assignment=True)

    id: int
    requester_id: int
    department_id: Optional[int] = None
    start_date: date
    end_date: date
    requested_days: int
    status: RequestStatus = RequestStatus.pending
    reason: Optional[str] = None
    comments: Optional[str] = None
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    rejected_by: Optional[int] = None
    rejected_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


# ═════════════════════════════════════════════════════════════════════
# Request bodies
# ═════════════════════════════════════════════════════════════════════


class LoginIn(BaseModel):
    email: str
    password: str


class VacationRequestIn(BaseModel):
    start_date: date
    end_date: date
    requested_days: int = Field(..., ge=1)
    comments: Optional[str] = Field(None, max_length=1000)


class ApproveIn(BaseModel):
    comment: Optional[str] = Field(None, max_length=500)


class RejectIn(BaseModel):
    reason: str = Field(..., max_length=500)


# ═════════════════════════════════════════════════════════════════════
# Responses
# ═════════════════════════════════════════════════════════════════════


class VacationRequestOut(BaseModel):
    id: int
    requester_id: int
    requester_name: Optional[str] = None
    requester_email: Optional[str] = None
    department_id: Optional[int] = None
    department_name: Optional[str] = None
    start_date: date
    end_date: date
    requested_days: int
    request_status: RequestStatus
    reason: Optional[str] = None
    comments: Optional[str] = None
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    rejected_by: Optional[int] = None
    rejected_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class SessionDataOut(BaseModel):
    first_name: str
    role_id: int
    department_id: Optional[int] = None
    location_id: Optional[int] = None


class LoginOut(BaseModel):
    token: str
    sesionData: SessionDataOut


class VacationSummaryOut(BaseModel):
    allowance_days: int
    remaining_days: int
    used_days: int


class HolidayOut(BaseModel):
    holiday_date: date
    name: str
    location_id: int


class LocationOut(BaseModel):
    id: int
    name: str
    holidays: list[HolidayOut]
