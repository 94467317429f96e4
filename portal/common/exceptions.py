"""Client exception hierarchy and HTTP error mapping.

Every failure the core surfaces is a ``PortalError`` subclass carrying an
optional server-supplied message, so the host UI can render a toast/banner
without ever seeing a raw transport exception.

Taxonomy:
  - ValidationException        local (or 400/422) input problems
  - InsufficientBalanceError   requested > available, raised locally
  - NetworkError               connect failures, timeouts
  - ServerError                any other failed round trip (401/403/404/5xx…)
  - StateConflictError         request no longer pending (409 or cached terminal)
  - ResponseFormatError        payload does not match the closed wire schema
"""

from __future__ import annotations

from typing import Any, Optional

import httpx

from portal.common.constants import RequestStatus

# Fallback messages when the server body carries nothing usable
_STATUS_MESSAGES: dict[int, str] = {
    400: "Invalid data. Please review the information entered.",
    401: "Session expired. Please sign in again.",
    403: "You do not have permission to perform this action.",
    404: "Resource not found.",
    409: "Conflict: the resource was modified by someone else.",
    422: "Invalid data. Please review the information entered.",
    500: "Server error. Please try again later.",
}
_DEFAULT_MESSAGE = "An unexpected error occurred. Please try again."


# ── Exception hierarchy ─────────────────────────────────────────────

class PortalError(Exception):
    """Base for every error raised by the portal core."""

    error_type = "error"

    def __init__(
        self,
        detail: str,
        *,
        status_code: Optional[int] = None,
        server_message: Optional[str] = None,
        errors: Optional[dict[str, list[str]]] = None,
    ) -> None:
        self.detail = detail
        self.status_code = status_code
        self.server_message = server_message
        self.errors = errors
        super().__init__(detail)

    @property
    def user_message(self) -> str:
        """Message suitable for a toast: server text first, then a status fallback."""
        if self.server_message:
            return self.server_message
        if self.status_code is not None:
            return _STATUS_MESSAGES.get(self.status_code, _DEFAULT_MESSAGE)
        return self.detail or _DEFAULT_MESSAGE


class ValidationException(PortalError):
    """Input rejected before (or by) the backend."""

    error_type = "validation-error"

    def __init__(
        self,
        errors: dict[str, list[str]],
        *,
        status_code: Optional[int] = None,
        server_message: Optional[str] = None,
    ) -> None:
        detail = "; ".join(
            f"{field}: {msg}" for field, msgs in errors.items() for msg in msgs
        ) or "One or more fields failed validation."
        super().__init__(
            detail,
            status_code=status_code,
            server_message=server_message,
            errors=errors,
        )

    @property
    def user_message(self) -> str:
        if self.server_message:
            return self.server_message
        if self.status_code is None and self.errors:
            return next(iter(self.errors.values()))[0]
        return super().user_message


class EmptySelectionError(ValidationException):
    """No working day in the selected range (or nothing selected)."""

    def __init__(self, detail: str = "Select at least one working day.") -> None:
        super().__init__({"selection": [detail]})


class BlockedDateSelectionError(ValidationException):
    """The selected range touches a weekend, holiday or already-booked day."""

    def __init__(self, start, end) -> None:
        self.start = start
        self.end = end
        super().__init__(
            {"selection": [
                f"The range {start} – {end} includes non-working or blocked days."
            ]}
        )


class MissingCommentError(ValidationException):
    """A rejection was attempted without a reason."""

    def __init__(self) -> None:
        super().__init__({"comment": ["A comment is required to reject a request."]})


class InsufficientBalanceError(PortalError):
    """More working days requested than are available."""

    error_type = "insufficient-balance"

    def __init__(self, requested: int, available: int) -> None:
        self.requested = requested
        self.available = available
        super().__init__(
            f"Not enough vacation days: requested {requested}, "
            f"but only {available} available."
        )

    @property
    def user_message(self) -> str:
        return self.detail


class NetworkError(PortalError):
    """The round trip never produced an HTTP response (refused, DNS, timeout)."""

    error_type = "network-error"

    @property
    def user_message(self) -> str:
        return "Could not reach the server. Check your connection and try again."


class ServerError(PortalError):
    """The backend answered with a non-success status."""

    error_type = "server-error"


class UnauthorizedError(ServerError):
    error_type = "unauthorized"


class ForbiddenError(ServerError):
    error_type = "forbidden"


class NotFoundError(ServerError):
    error_type = "not-found"


class StateConflictError(PortalError):
    """The request is no longer pending; refresh instead of trusting the cache."""

    error_type = "state-conflict"

    def __init__(
        self,
        request_id: Any,
        detail: Optional[str] = None,
        *,
        status_code: Optional[int] = None,
        server_message: Optional[str] = None,
        current_status: Optional[RequestStatus] = None,
    ) -> None:
        self.request_id = request_id
        self.current_status = current_status
        super().__init__(
            detail or f"Vacation request '{request_id}' has already been resolved.",
            status_code=status_code,
            server_message=server_message,
        )


class ResponseFormatError(PortalError):
    """A wire payload failed to deserialize into the closed model."""

    error_type = "response-format"


# ── HTTP → exception mapping ────────────────────────────────────────

def extract_server_message(body: Any) -> Optional[str]:
    """Pull a human message out of a JSON error body.

    Understands ``{"message": ...}``, express-validator style
    ``{"errors": [{"msg": ...}]}`` and RFC 7807 problem details.
    """
    if not isinstance(body, dict):
        return None
    message = body.get("message")
    if isinstance(message, str) and message:
        return message
    errors = body.get("errors")
    if isinstance(errors, list) and errors:
        first = errors[0]
        if isinstance(first, dict) and first.get("msg"):
            return str(first["msg"])
    if isinstance(errors, dict) and errors:
        msgs = next(iter(errors.values()))
        if isinstance(msgs, list) and msgs:
            return str(msgs[0])
    detail = body.get("detail")
    if isinstance(detail, str) and detail:
        return detail
    return None


def _field_errors(body: Any) -> dict[str, list[str]]:
    if isinstance(body, dict):
        errors = body.get("errors")
        if isinstance(errors, dict):
            return {str(k): [str(m) for m in v] for k, v in errors.items() if isinstance(v, list)}
        if isinstance(errors, list):
            out: dict[str, list[str]] = {}
            for err in errors:
                if isinstance(err, dict) and err.get("msg"):
                    field = str(err.get("path") or err.get("param") or "request")
                    out.setdefault(field, []).append(str(err["msg"]))
            if out:
                return out
    return {"request": ["The server rejected the request."]}


def _body_value(body: Any, key: str, default: Any) -> Any:
    if isinstance(body, dict) and body.get(key) is not None:
        return body[key]
    return default


def _current_status(body: Any) -> Optional[RequestStatus]:
    try:
        return RequestStatus(_body_value(body, "current_status", None))
    except ValueError:
        return None


def error_from_response(
    response: httpx.Response,
    *,
    request_id: Any = None,
) -> PortalError:
    """Translate a failed HTTP response into the matching ``PortalError``."""
    try:
        body = response.json()
    except ValueError:
        body = None

    status = response.status_code
    message = extract_server_message(body)
    try:
        detail = f"{response.request.method} {response.request.url.path} failed with HTTP {status}"
    except RuntimeError:
        # Response built without a request (e.g. in tests)
        detail = f"Request failed with HTTP {status}"

    if status in (400, 422):
        return ValidationException(
            _field_errors(body), status_code=status, server_message=message,
        )
    if status == 409:
        return StateConflictError(
            request_id if request_id is not None else _body_value(body, "request_id", None),
            message,
            status_code=status,
            server_message=message,
            current_status=_current_status(body),
        )
    if status == 401:
        return UnauthorizedError(detail, status_code=status, server_message=message)
    if status == 403:
        return ForbiddenError(detail, status_code=status, server_message=message)
    if status == 404:
        return NotFoundError(detail, status_code=status, server_message=message)
    return ServerError(detail, status_code=status, server_message=message)
