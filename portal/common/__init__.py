"""Common module — shared constants and exceptions for the Vacation Portal."""

from portal.common.constants import (
    PERMISSIONS,
    WEEKEND_DAYS,
    EntityId,
    RequestStatus,
    SortOrder,
    UserRole,
)
from portal.common.exceptions import (
    BlockedDateSelectionError,
    EmptySelectionError,
    ForbiddenError,
    InsufficientBalanceError,
    MissingCommentError,
    NetworkError,
    NotFoundError,
    PortalError,
    ResponseFormatError,
    ServerError,
    StateConflictError,
    UnauthorizedError,
    ValidationException,
    error_from_response,
)

__all__ = [
    # Constants / Enums
    "EntityId",
    "RequestStatus",
    "SortOrder",
    "UserRole",
    "PERMISSIONS",
    "WEEKEND_DAYS",
    # Exceptions
    "PortalError",
    "ValidationException",
    "EmptySelectionError",
    "BlockedDateSelectionError",
    "MissingCommentError",
    "InsufficientBalanceError",
    "NetworkError",
    "ServerError",
    "UnauthorizedError",
    "ForbiddenError",
    "NotFoundError",
    "StateConflictError",
    "ResponseFormatError",
    "error_from_response",
]
