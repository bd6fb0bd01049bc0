"""Shared exception classes for the intranet service.

Each error carries the HTTP status the API layer maps it to.
"""


class ServiceError(Exception):
    """Base exception for service operations."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ServiceError):
    """Raised when input is malformed or a required field is empty."""

    status_code = 400


class Unauthenticated(ServiceError):
    """Raised when the bearer token is missing, expired or invalid."""

    status_code = 401


class Unauthorized(ServiceError):
    """Raised when the caller lacks the ADMIN role.

    Terminal and non-retryable; raised before any store access.
    """

    status_code = 403


class NotFound(ServiceError):
    """Raised when a target or referenced parent id does not exist."""

    status_code = 404


class Conflict(ServiceError):
    """Raised when a write would break hierarchy integrity.

    Deleting a node that still has children under the ``reject`` delete
    policy, or moving a link onto an order a sibling already holds.
    """

    status_code = 409


class InternalError(ServiceError):
    """Raised on persistence-layer failure.

    The message is safe to return to callers; the cause is logged.
    """

    status_code = 500


__all__ = [
    "ServiceError",
    "ValidationError",
    "Unauthenticated",
    "Unauthorized",
    "NotFound",
    "Conflict",
    "InternalError",
]
