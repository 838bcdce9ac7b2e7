"""Service-layer exceptions shared by the import, duplicate and merge services.

Routers translate these into HTTP responses; services never raise HTTPException.
"""

from typing import Any


class ServiceError(Exception):
    """Base exception for service errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInputError(ServiceError):
    """Input rejected before any state mutation."""

    def __init__(self, message: str, violations: list[dict[str, Any]] | None = None):
        super().__init__(message)
        self.violations = violations or []


class NotFoundError(ServiceError):
    """Batch, item, pipeline or candidate does not exist (or is not active)."""

    pass


class ConflictError(ServiceError):
    """Operation conflicts with the current state; nothing was changed."""

    pass


class PersistenceError(ServiceError):
    """Database or transaction failure; the unit of work was rolled back."""

    pass
