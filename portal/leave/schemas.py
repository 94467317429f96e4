"""Vacation Pydantic v2 schemas — wire parsing and derived client models.

Naming conventions:
  - *Create / *Payload  → request bodies sent to the backend (write)
  - LeaveRequest, *Summary, Holiday → parsed backend responses (read)
  - LeaveBalance, CalendarSelection → client-side derived values

Wire payloads are snake_case. ``LeaveRequest`` accepts the legacy field
names some backend versions still emit (``user_id``, ``days_requested``,
``request_status`` …), maps each to exactly one model field, and rejects
anything it does not recognise.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from portal.common.constants import EntityId, RequestStatus
from portal.common.exceptions import ResponseFormatError, ValidationException


# legacy wire name → model field
_WIRE_FALLBACKS: dict[str, str] = {
    "user_id": "requester_id",
    "user_name": "requester_name",
    "user_email": "requester_email",
    "days_requested": "requested_days",
    "request_status": "status",
}


# ═════════════════════════════════════════════════════════════════════
# Leave Request — Response
# ═════════════════════════════════════════════════════════════════════


class LeaveRequest(BaseModel):
    """A vacation request as returned by the backend."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: EntityId
    requester_id: EntityId
    requester_name: Optional[str] = None
    requester_email: Optional[str] = None
    department_id: Optional[EntityId] = None
    department_name: Optional[str] = None
    start_date: date
    end_date: date
    requested_days: int = Field(..., ge=0)
    status: RequestStatus
    reason: Optional[str] = None
    comments: Optional[str] = None
    approved_by: Optional[EntityId] = None
    approved_at: Optional[datetime] = None
    rejected_by: Optional[EntityId] = None
    rejected_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @model_validator(mode="before")
    @classmethod
    def _normalize_wire_names(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        # request_status wins over status when a backend sends both
        if "request_status" in data:
            data.pop("status", None)
        for legacy, field in _WIRE_FALLBACKS.items():
            if legacy not in data:
                continue
            value = data.pop(legacy)
            if data.get(field) is None:
                data[field] = value
        return data

    @model_validator(mode="after")
    def _check_invariants(self) -> "LeaveRequest":
        if self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date.")

        approved = self.approved_by is not None or self.approved_at is not None
        rejected = self.rejected_by is not None or self.rejected_at is not None
        if self.status is RequestStatus.pending and (approved or rejected):
            raise ValueError("A pending request cannot carry resolution fields.")
        if self.status is RequestStatus.approved and (not approved or rejected):
            raise ValueError("An approved request must carry only approval fields.")
        if self.status is RequestStatus.rejected and (not rejected or approved):
            raise ValueError("A rejected request must carry only rejection fields.")
        return self

    @property
    def is_pending(self) -> bool:
        return self.status is RequestStatus.pending

    @property
    def resolved_by(self) -> Optional[EntityId]:
        if self.status is RequestStatus.approved:
            return self.approved_by
        if self.status is RequestStatus.rejected:
            return self.rejected_by
        return None

    @property
    def resolved_at(self) -> Optional[datetime]:
        if self.status is RequestStatus.approved:
            return self.approved_at
        if self.status is RequestStatus.rejected:
            return self.rejected_at
        return None


# ═════════════════════════════════════════════════════════════════════
# Request bodies
# ═════════════════════════════════════════════════════════════════════


class LeaveRequestCreate(BaseModel):
    """Body for ``POST /vacation-requests``."""

    start_date: date
    end_date: date
    requested_days: int = Field(..., ge=1)
    comments: Optional[str] = Field(None, max_length=1000)

    @field_validator("comments")
    @classmethod
    def blank_comments_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None

    @model_validator(mode="after")
    def validate_dates(self) -> "LeaveRequestCreate":
        if self.start_date > self.end_date:
            raise ValueError("start_date must be on or before end_date.")
        return self


class ApprovePayload(BaseModel):
    """Body for ``PUT /vacation-requests/{id}/approve``."""

    comment: Optional[str] = Field(None, max_length=500)


class RejectPayload(BaseModel):
    """Body for ``PUT /vacation-requests/{id}/reject``."""

    reason: str = Field(..., min_length=1, max_length=500)


# ═════════════════════════════════════════════════════════════════════
# Summary / Holidays
# ═════════════════════════════════════════════════════════════════════


class VacationSummary(BaseModel):
    """Backend-computed allowance from ``/users/{id}/vacations/summary``."""

    model_config = ConfigDict(extra="ignore")

    allowance_days: Optional[int] = None
    remaining_days: int
    used_days: int

    @property
    def total_days(self) -> int:
        if self.allowance_days is not None:
            return self.allowance_days
        return self.remaining_days + self.used_days


class Holiday(BaseModel):
    """A published holiday blocking a date for one location."""

    model_config = ConfigDict(extra="ignore")

    holiday_date: date
    location_id: Optional[EntityId] = None
    name: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _accept_date_key(cls, data: Any) -> Any:
        if isinstance(data, dict) and "holiday_date" not in data and "date" in data:
            data = dict(data)
            data["holiday_date"] = data.pop("date")
        return data


# ═════════════════════════════════════════════════════════════════════
# Derived client values
# ═════════════════════════════════════════════════════════════════════


class LeaveBalance(BaseModel):
    """Derived balance; ``used_days + available_days == total_days`` always."""

    model_config = ConfigDict(frozen=True)

    total_days: int
    available_days: int
    used_days: int
    pending_days: int = 0

    @model_validator(mode="after")
    def _check_sum(self) -> "LeaveBalance":
        if self.used_days + self.available_days != self.total_days:
            raise ValueError("used_days + available_days must equal total_days.")
        return self


class CalendarSelection(BaseModel):
    """A validated date range held by the selection controller."""

    model_config = ConfigDict(frozen=True)

    start_date: date
    end_date: date
    working_days: int = Field(..., ge=0)

    @model_validator(mode="after")
    def _check_span(self) -> "CalendarSelection":
        if self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date.")
        if self.working_days > (self.end_date - self.start_date).days + 1:
            raise ValueError("working_days cannot exceed the calendar days in the range.")
        return self


# ═════════════════════════════════════════════════════════════════════
# Wire helpers
# ═════════════════════════════════════════════════════════════════════


def unwrap_data(payload: Any) -> Any:
    """Strip an optional ``{"data": ...}`` envelope."""
    if isinstance(payload, dict) and "data" in payload:
        inner = payload["data"]
        if isinstance(inner, (dict, list)):
            return inner
    return payload


def build_body(model: type[BaseModel], **data: Any) -> Any:
    """Validate an outgoing request body; field problems become ``ValidationException``."""
    try:
        return model(**data)
    except ValidationError as exc:
        errors: dict[str, list[str]] = {}
        for err in exc.errors():
            field = ".".join(str(p) for p in err.get("loc", ())) or "request"
            errors.setdefault(field, []).append(err.get("msg", "Invalid value"))
        raise ValidationException(errors) from exc


def parse_request(payload: Any) -> LeaveRequest:
    try:
        return LeaveRequest.model_validate(unwrap_data(payload))
    except ValidationError as exc:
        raise ResponseFormatError(f"Malformed vacation request payload: {exc}") from exc


def parse_request_list(payload: Any) -> list[LeaveRequest]:
    items = unwrap_data(payload)
    if not isinstance(items, list):
        raise ResponseFormatError("Expected a list of vacation requests.")
    return [parse_request(item) for item in items]


def parse_holidays(payload: Any) -> list[Holiday]:
    items = unwrap_data(payload)
    if isinstance(items, dict):
        items = items.get("holidays") or []
    if not isinstance(items, list):
        raise ResponseFormatError("Expected a list of holidays.")
    try:
        return [Holiday.model_validate(item) for item in items]
    except ValidationError as exc:
        raise ResponseFormatError(f"Malformed holiday payload: {exc}") from exc


def parse_summary(payload: Any) -> VacationSummary:
    try:
        return VacationSummary.model_validate(unwrap_data(payload))
    except ValidationError as exc:
        raise ResponseFormatError(f"Malformed vacation summary payload: {exc}") from exc
