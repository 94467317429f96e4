"""Vacation REST transport — thin async wrapper over ``httpx.AsyncClient``.

Every call is a single round trip: no retries, no caching. Transport
failures become ``NetworkError``; non-2xx responses become the matching
``PortalError`` subclass; bodies are parsed into the closed schemas.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from portal.auth.session import Session
from portal.common.constants import EntityId
from portal.common.exceptions import (
    NetworkError,
    ResponseFormatError,
    error_from_response,
)
from portal.config import settings
from portal.leave.schemas import (
    ApprovePayload,
    Holiday,
    LeaveRequest,
    LeaveRequestCreate,
    RejectPayload,
    VacationSummary,
    build_body,
    parse_holidays,
    parse_request,
    parse_request_list,
    parse_summary,
)

logger = logging.getLogger(__name__)

REQUESTS_PATH = "/vacation-requests"


class VacationApi:
    """Async client for the vacation endpoints of the portal backend."""

    def __init__(
        self,
        session: Session,
        *,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._session = session
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.API_BASE_URL,
            timeout=timeout if timeout is not None else settings.REQUEST_TIMEOUT_SECONDS,
            transport=transport,
            headers={"Content-Type": "application/json", "Accept": "application/json"},
        )

    async def __aenter__(self) -> "VacationApi":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # ── HTTP ─────────────────────────────────────────────────────────

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[dict[str, Any]] = None,
        request_id: Optional[EntityId] = None,
    ) -> Any:
        try:
            resp = await self._client.request(
                method, path, json=json, headers=self._session.auth_headers(),
            )
        except httpx.TimeoutException as exc:
            logger.warning("%s %s timed out: %s", method, path, exc)
            raise NetworkError(f"{method} {path} timed out.") from exc
        except httpx.TransportError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise NetworkError(f"{method} {path} could not reach the server.") from exc

        if resp.status_code == 401:
            self._session.handle_unauthorized()
        if resp.is_error:
            logger.warning("%s %s → HTTP %d", method, path, resp.status_code)
            raise error_from_response(resp, request_id=request_id)

        try:
            return resp.json()
        except ValueError as exc:
            raise ResponseFormatError(f"{method} {path} returned a non-JSON body.") from exc

    # ── Vacation requests ────────────────────────────────────────────

    async def get_my_requests(self) -> list[LeaveRequest]:
        return parse_request_list(await self._request("GET", f"{REQUESTS_PATH}/my-requests"))

    async def get_all(self) -> list[LeaveRequest]:
        return parse_request_list(await self._request("GET", REQUESTS_PATH))

    async def create(self, body: LeaveRequestCreate) -> LeaveRequest:
        payload = await self._request("POST", REQUESTS_PATH, json=body.model_dump(mode="json"))
        return parse_request(payload)

    async def approve(self, request_id: EntityId, comment: Optional[str] = None) -> LeaveRequest:
        payload = await self._request(
            "PUT",
            f"{REQUESTS_PATH}/{request_id}/approve",
            json=build_body(ApprovePayload, comment=comment).model_dump(mode="json"),
            request_id=request_id,
        )
        return parse_request(payload)

    async def reject(self, request_id: EntityId, reason: str) -> LeaveRequest:
        payload = await self._request(
            "PUT",
            f"{REQUESTS_PATH}/{request_id}/reject",
            json=build_body(RejectPayload, reason=reason).model_dump(mode="json"),
            request_id=request_id,
        )
        return parse_request(payload)

    # ── Summary / holidays ───────────────────────────────────────────

    async def get_vacation_summary(self, user_id: EntityId) -> VacationSummary:
        return parse_summary(await self._request("GET", f"/users/{user_id}/vacations/summary"))

    async def get_location_holidays(self, location_id: EntityId) -> list[Holiday]:
        """Holidays published for one location (``GET /locations/{id}``)."""
        return parse_holidays(await self._request("GET", f"/locations/{location_id}"))
