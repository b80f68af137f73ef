from __future__ import annotations

from typing import Dict, List, Optional


class ServiceError(Exception):
    """Domain failure carrying the HTTP status a route should answer with."""

    status_code = 400

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class NotFoundError(ServiceError):
    status_code = 404


class PermissionDeniedError(ServiceError):
    status_code = 403


class BookingServiceError(ServiceError):
    pass


class FormRejected(ServiceError):
    """A public form submission failed bot detection or validation."""

    def __init__(
        self,
        message: str,
        errors: Optional[Dict[str, List[str]]] = None,
        status_code: int = 400,
    ) -> None:
        super().__init__(message, status_code)
        self.errors = errors or {}
