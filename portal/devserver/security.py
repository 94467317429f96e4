"""Dev server auth — password hashing, JWT issue/validation, role checks."""

from __future__ import annotations

import hashlib
from datetime import datetime, timedelta, timezone
from typing import Callable

from fastapi import Depends, Request
from fastapi.exceptions import HTTPException
from jose import ExpiredSignatureError, JWTError, jwt

from portal.common.constants import UserRole
from portal.config import settings
from portal.devserver.exceptions import AccessDenied
from portal.devserver.schemas import UserRecord
from portal.devserver.service import VacationBackend

TOKEN_TTL = timedelta(hours=8)


def hash_password(password: str) -> str:
    return hashlib.sha256(password.encode()).hexdigest()


def create_access_token(user: UserRecord, *, expired: bool = False) -> str:
    """JWT shaped like the real backend's: ``id``, ``role`` (role id), ``exp``."""
    now = datetime.now(timezone.utc)
    exp = now - timedelta(hours=1) if expired else now + TOKEN_TTL
    payload = {
        "id": user.id,
        "role": user.role.role_id,
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def get_backend(request: Request) -> VacationBackend:
    return request.app.state.backend


def _extract_bearer(request: Request) -> str:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing or invalid Authorization header.")
    return auth_header[7:]


# ── Core dependency ─────────────────────────────────────────────────

async def get_current_user(
    request: Request,
    backend: VacationBackend = Depends(get_backend),
) -> UserRecord:
    """Validate the JWT and return the authenticated user."""
    token = _extract_bearer(request)
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token has expired.")
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token.")

    user = backend.users.get(payload.get("id"))
    if user is None:
        raise HTTPException(status_code=401, detail="User account not found.")
    return user


# ── Role-based dependency ───────────────────────────────────────────

def require_role(*allowed_roles: UserRole) -> Callable:
    """Return a FastAPI dependency that enforces role membership."""

    async def _check(user: UserRecord = Depends(get_current_user)) -> UserRecord:
        if user.role not in allowed_roles:
            raise AccessDenied(
                f"Role '{user.role.value}' is not permitted. Required: {[r.value for r in allowed_roles]}."
            )
        return user

    return _check
