"""Session/role context — who is calling, with which role, in which department.

The portal core only *reads* this context. Tokens are decoded without
signature verification: the client never holds the signing secret, the
backend verifies every call.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from jose import JWTError, jwt
from pydantic import BaseModel, ConfigDict

from portal.common.constants import PERMISSIONS, EntityId, UserRole
from portal.common.exceptions import UnauthorizedError

logger = logging.getLogger(__name__)


class SessionContext(BaseModel):
    """Identity of the current caller; ``role`` is ``None`` when unrecognised."""

    model_config = ConfigDict(frozen=True)

    user_id: EntityId
    role: Optional[UserRole] = None
    department_id: Optional[EntityId] = None
    location_id: Optional[EntityId] = None
    first_name: Optional[str] = None
    expires_at: Optional[datetime] = None

    @property
    def is_admin(self) -> bool:
        return self.role is UserRole.admin

    @property
    def is_manager(self) -> bool:
        return self.role is UserRole.manager

    def has_permission(self, permission: str) -> bool:
        if self.role is None:
            return False
        return permission in PERMISSIONS.get(self.role, [])


def context_from_login(token: str, session_data: dict[str, Any]) -> SessionContext:
    """Build a context from the login response (JWT + ``sesionData`` block).

    The JWT carries ``id`` and ``exp``; role, department and location come
    from the session data, falling back to the token claims.
    """
    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError as exc:
        raise UnauthorizedError("Malformed session token.", status_code=401) from exc

    user_id = claims.get("id", claims.get("sub"))
    if user_id is None:
        raise UnauthorizedError("Session token has no user id.", status_code=401)

    exp = claims.get("exp")
    return SessionContext(
        user_id=user_id,
        role=UserRole.parse(session_data.get("role_id", claims.get("role"))),
        department_id=session_data.get("department_id", claims.get("department_id")),
        location_id=session_data.get("location_id", claims.get("location_id")),
        first_name=session_data.get("first_name"),
        expires_at=datetime.fromtimestamp(exp, timezone.utc) if exp else None,
    )


class Session:
    """Holds the bearer token and caller context for one signed-in user."""

    def __init__(
        self,
        on_unauthorized: Optional[Callable[[], None]] = None,
    ) -> None:
        self.token: Optional[str] = None
        self.context: Optional[SessionContext] = None
        self._on_unauthorized = on_unauthorized

    def login(self, token: str, session_data: dict[str, Any]) -> SessionContext:
        self.context = context_from_login(token, session_data)
        self.token = token
        logger.info("Signed in user %s as %s", self.context.user_id, self.context.role)
        return self.context

    def logout(self) -> None:
        self.token = None
        self.context = None

    @property
    def is_authenticated(self) -> bool:
        if self.token is None or self.context is None:
            return False
        expires = self.context.expires_at
        return expires is None or expires > datetime.now(timezone.utc)

    def require(self) -> SessionContext:
        if not self.is_authenticated or self.context is None:
            raise UnauthorizedError("No active session.", status_code=401)
        return self.context

    def auth_headers(self) -> dict[str, str]:
        if self.token is None:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    def handle_unauthorized(self) -> None:
        """Called on any 401: clear the session and notify the host."""
        logger.warning("Backend rejected the session; signing out")
        self.logout()
        if self._on_unauthorized is not None:
            self._on_unauthorized()
