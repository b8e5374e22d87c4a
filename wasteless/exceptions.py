"""
Typed exceptions for the pricing service.

Every error carries a machine-readable ``code`` and the HTTP ``status_code``
the API layer renders it with:

    WastelessError            500  INTERNAL_ERROR
    +-- ValidationError       400  VALIDATION_ERROR
    +-- NotFoundError         404  NOT_FOUND
    +-- ConflictError         409  CONFLICT
    +-- StoreError            500  DATABASE_ERROR
    +-- ExternalServiceError  503  EXTERNAL_SERVICE_ERROR

ExternalServiceError never leaves the signage push call; it is turned into a
``{"success": False, "message": ...}`` result there.
"""
from typing import Any, Optional


class WastelessError(Exception):
    """Base class for all domain errors"""

    code: str = "INTERNAL_ERROR"
    status_code: int = 500

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(WastelessError):
    """Bad input to a price calculation or a write path"""

    code = "VALIDATION_ERROR"
    status_code = 400


class NotFoundError(WastelessError):
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, resource: str = "Resource", details: Optional[Any] = None):
        super().__init__(f"{resource} not found", details)
        self.resource = resource


class ConflictError(WastelessError):
    code = "CONFLICT"
    status_code = 409

    def __init__(self, message: str = "Resource already exists", details: Optional[Any] = None):
        super().__init__(message, details)


class StoreError(WastelessError):
    """Underlying persistence failure"""

    code = "DATABASE_ERROR"
    status_code = 500

    def __init__(self, message: str = "Database operation failed", details: Optional[Any] = None):
        super().__init__(message, details)


class ExternalServiceError(WastelessError):
    code = "EXTERNAL_SERVICE_ERROR"
    status_code = 503

    def __init__(
        self,
        service: str = "External service",
        message: str = "Service unavailable",
        status: Optional[int] = None,
        response_body: Optional[Any] = None,
    ):
        super().__init__(f"{service}: {message}")
        self.service = service
        self.status = status
        self.response_body = response_body
