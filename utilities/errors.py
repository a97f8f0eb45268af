"""
Domain exceptions raised by the service layer.

Each exception carries the HTTP status it maps to so the API layer can
translate it without knowing which service raised it.
"""

from typing import Any, Optional

from fastapi import status


class ServiceError(Exception):
    """Base class for errors raised by catalog and community services."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, detail: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class ValidationFailed(ServiceError):
    """Request body is missing or incomplete."""
    status_code = status.HTTP_400_BAD_REQUEST


class Unprocessable(ServiceError):
    """Request is well formed but cannot be processed."""
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class Unauthorized(ServiceError):
    """Caller is not authenticated or lacks the required role."""
    status_code = status.HTTP_401_UNAUTHORIZED


class Forbidden(ServiceError):
    """Caller is authenticated but does not own the resource."""
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(ServiceError):
    """Requested document does not exist."""
    status_code = status.HTTP_404_NOT_FOUND
