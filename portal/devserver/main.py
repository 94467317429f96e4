"""Vacation Portal dev server — FastAPI application factory.

Serves the vacation REST contract from memory so the client can be
developed and tested without the production backend::

    uvicorn portal.devserver.main:app --reload --port 3000
"""

import logging
from datetime import date
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from portal.common.constants import RequestStatus, UserRole
from portal.config import settings
from portal.devserver.exceptions import register_exception_handlers
from portal.devserver.router import (
    auth_router,
    locations_router,
    users_router,
    vacations_router,
)
from portal.devserver.schemas import UserRecord
from portal.devserver.security import hash_password
from portal.devserver.service import VacationBackend

API_PREFIX = "/api"


def seed_demo_data(backend: VacationBackend) -> VacationBackend:
    """Two locations, two departments, four users and a couple of requests."""
    backend.add_location(1, "Madrid")
    backend.add_location(2, "Barcelona")
    year = date.today().year
    for location_id in (1, 2):
        backend.add_holiday(date(year, 1, 1), "New Year's Day", location_id)
        backend.add_holiday(date(year, 12, 25), "Christmas Day", location_id)
    backend.add_holiday(date(year, 5, 2), "Community of Madrid Day", 1)
    backend.add_holiday(date(year, 9, 11), "National Day of Catalonia", 2)

    admin = backend.add_user(UserRecord(
        id=1, email="admin@example.com", password_hash=hash_password("admin123"),
        first_name="Ana", last_name="Admin", role=UserRole.admin,
        department_id=1, department_name="People", location_id=1,
    ))
    backend.add_user(UserRecord(
        id=2, email="manager@example.com", password_hash=hash_password("manager123"),
        first_name="Marco", last_name="Manager", role=UserRole.manager,
        department_id=2, department_name="Engineering", location_id=1,
    ))
    dev = backend.add_user(UserRecord(
        id=3, email="dev@example.com", password_hash=hash_password("password123"),
        first_name="Lisi", last_name="Cruz", role=UserRole.employee,
        department_id=2, department_name="Engineering", location_id=1,
    ))
    ops = backend.add_user(UserRecord(
        id=4, email="ops@example.com", password_hash=hash_password("password123"),
        first_name="Omar", last_name="Ops", role=UserRole.employee,
        department_id=1, department_name="People", location_id=2,
    ))

    backend.add_request(dev, date(year, 3, 2), date(year, 3, 6), reason="Spring break")
    backend.add_request(
        ops, date(year, 2, 9), date(year, 2, 10),
        status=RequestStatus.approved, reviewer=admin,
    )
    return backend


def create_app(backend: Optional[VacationBackend] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Vacation Portal Dev Server",
        description="In-memory implementation of the vacation REST contract",
        version="1.0.0",
        docs_url=f"{API_PREFIX}/docs" if settings.ENVIRONMENT != "production" else None,
        redoc_url=None,
    )
    app.state.backend = backend if backend is not None else seed_demo_data(VacationBackend())

    # Exception handlers (RFC 7807)
    register_exception_handlers(app)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Health check (no auth)
    @app.get(f"{API_PREFIX}/health", tags=["system"])
    async def health_check():
        return {
            "status": "healthy",
            "version": "1.0.0",
            "environment": settings.ENVIRONMENT,
        }

    app.include_router(auth_router, prefix=f"{API_PREFIX}/auth")
    app.include_router(vacations_router, prefix=f"{API_PREFIX}/vacation-requests")
    app.include_router(users_router, prefix=f"{API_PREFIX}/users")
    app.include_router(locations_router, prefix=f"{API_PREFIX}/locations")

    return app


logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

app = create_app()
