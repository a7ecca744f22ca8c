from __future__ import annotations

from typing import Any


class WorkshopError(Exception):
    """Base class for failures that map onto a caller-visible error envelope."""

    code = "internal_error"
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None, *, details: Any = None) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    @property
    def kind(self) -> str:
        return type(self).__name__


class UnauthenticatedError(WorkshopError):
    """No credential, or a credential that cannot be read at all."""

    code = "unauthenticated"
    status_code = 401
    default_message = "Access token required"


class ForbiddenError(WorkshopError):
    """Credential rejected (bad signature, expired) or privilege insufficient."""

    code = "forbidden"
    status_code = 403
    default_message = "Forbidden"


class ConflictError(WorkshopError):
    code = "conflict"
    status_code = 409
    default_message = "Resource already exists"


class NotFoundError(WorkshopError):
    """Row absent or hidden by tenant policy; the two are indistinguishable."""

    code = "not_found"
    status_code = 404
    default_message = "Not found"


class ResourceExhaustedError(WorkshopError):
    code = "resource_exhausted"
    status_code = 503
    default_message = "Service temporarily unavailable"


class InternalError(WorkshopError):
    pass


class InvalidCredentialsError(UnauthenticatedError):
    """Unknown email and wrong password share this error."""

    code = "invalid_credentials"
    default_message = "Invalid credentials"


class SsoNotImplementedError(WorkshopError):
    code = "sso_not_implemented"
    status_code = 501
    default_message = "SSO not implemented"
