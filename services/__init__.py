"""Business rules sitting between the HTTP blueprints and the repositories."""


class ServiceError(Exception):
    """Base class for domain failures that map onto an HTTP status."""

    status_code = 400

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationFailed(ServiceError):
    """Raised when request input is structurally valid but semantically wrong."""

    status_code = 400

    def __init__(self, message: str, errors: dict | None = None):
        super().__init__(message)
        self.errors = errors or {}


class AuthenticationError(ServiceError):
    status_code = 401


class PermissionDeniedError(ServiceError):
    status_code = 403


class NotFoundError(ServiceError):
    status_code = 404


class ConflictError(ServiceError):
    status_code = 409


class RateLimitExceeded(ServiceError):
    status_code = 429


__all__ = [
    "ServiceError",
    "ValidationFailed",
    "AuthenticationError",
    "PermissionDeniedError",
    "NotFoundError",
    "ConflictError",
    "RateLimitExceeded",
]
