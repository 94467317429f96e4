"""Dev server errors — JSON error bodies shaped for the portal client.

Every body carries ``status``, a short ``error`` code and ``message``, the
text the client shows the user. Field problems add ``errors`` as
``{field: [messages]}``. Conflicts add ``request_id`` and ``current_status``
so the client knows which request moved on and where it ended up.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from portal.common.constants import RequestStatus


class ApiError(Exception):
    """Base for errors the dev server reports to the client."""

    status_code = 500
    error = "server-error"

    def __init__(self, message: str, **extra: Any) -> None:
        self.message = message
        self.extra = extra
        super().__init__(message)

    def body(self) -> dict[str, Any]:
        return {
            "status": self.status_code,
            "error": self.error,
            "message": self.message,
            **self.extra,
        }


class ResourceNotFound(ApiError):
    status_code = 404
    error = "not-found"

    def __init__(self, entity: str, entity_id: Any) -> None:
        super().__init__(f"{entity} {entity_id} does not exist.")


class AccessDenied(ApiError):
    status_code = 403
    error = "forbidden"


class RequestConflict(ApiError):
    """The request has already left ``pending``."""

    status_code = 409
    error = "state-conflict"

    def __init__(self, request_id: int, current_status: RequestStatus) -> None:
        super().__init__(
            f"Vacation request {request_id} is already {current_status.value}.",
            request_id=request_id,
            current_status=current_status.value,
        )


class RuleViolation(ApiError):
    """A business rule rejected one field of the request."""

    status_code = 422
    error = "validation-error"

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message, errors={field: [message]})


_HTTP_ERROR_CODES = {401: "unauthorized", 403: "forbidden", 404: "not-found"}


def _json(status_code: int, body: dict[str, Any], headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body, headers=headers)


async def _on_api_error(request: Request, exc: ApiError) -> JSONResponse:
    return _json(exc.status_code, exc.body())


async def _on_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    body = {
        "status": exc.status_code,
        "error": _HTTP_ERROR_CODES.get(exc.status_code, "http-error"),
        "message": str(exc.detail),
    }
    return _json(exc.status_code, body, getattr(exc, "headers", None))


async def _on_body_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    # loc is ("body", field, ...); keep the field path only
    errors: dict[str, list[str]] = {}
    for err in exc.errors():
        field = ".".join(str(p) for p in err.get("loc", ())[1:]) or "body"
        errors.setdefault(field, []).append(err.get("msg", "Invalid value"))
    first = next(iter(errors.values()))[0] if errors else "Invalid request body."
    return _json(422, {
        "status": 422,
        "error": "validation-error",
        "message": first,
        "errors": errors,
    })


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, _on_api_error)                      # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, _on_http_exception)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _on_body_validation)  # type: ignore[arg-type]
