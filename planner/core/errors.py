"""Application error hierarchy.

Services raise these; the handlers registered in ``planner.main`` turn them
into ``{"message": ...}`` JSON responses with the class's status code.
"""

from typing import Any


class PlannerError(Exception):
    """Base class for errors that map directly onto an HTTP response."""

    status_code = 500

    def __init__(self, message: str = "Internal server error", context: dict[str, Any] | None = None):
        self.message = message
        # Logged server-side, never returned to the client
        self.context = context or {}
        super().__init__(message)


class ValidationError(PlannerError):
    """The request is well-formed but breaks a business rule."""

    status_code = 400


class UnauthorizedError(PlannerError):
    """Credential absent or invalid on a route that requires one."""

    status_code = 401


class ForbiddenError(PlannerError):
    """Credential valid but not allowed to perform the operation."""

    status_code = 403


class NotFoundError(PlannerError):
    """Resource does not resolve, or the caller may not know it exists."""

    status_code = 404


class ConflictError(PlannerError):
    """The operation collides with existing state (e.g. an already-claimed invite)."""

    status_code = 409


class ServiceUnavailableError(PlannerError):
    """Transient storage failure; the client may retry."""

    status_code = 503


class InternalError(PlannerError):
    """Permanent or unclassified failure."""

    status_code = 500
