"""
Custom exception classes for the admin back-office.

Services raise these; the handlers registered in ``main.py`` turn them into
structured ``error_response`` payloads with the matching status code.
"""
from typing import Any, Dict, Optional
from fastapi import status


class BaseCustomException(Exception):
    """Base custom exception class"""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(BaseCustomException):
    """Raised when input fails a constraint or references an entity in the wrong state"""

    def __init__(self, message: str, field: str = None, details: Optional[Dict[str, Any]] = None):
        if field:
            details = details or {}
            details["field"] = field

        super().__init__(
            message=message,
            status_code=422,
            details=details
        )


class ConflictError(BaseCustomException):
    """Raised when an operation would break a uniqueness or ownership invariant"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            details=details
        )


class ResourceNotFoundError(BaseCustomException):
    """Raised when a requested resource is not found"""

    def __init__(self, resource: str, identifier: str, details: Optional[Dict[str, Any]] = None):
        message = f"{resource} with identifier '{identifier}' not found"
        details = details or {}
        details.setdefault("resource", resource)
        details.setdefault("identifier", identifier)
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            details=details
        )


class AuthenticationError(BaseCustomException):
    """Raised when authentication fails"""

    def __init__(self, message: str = "Authentication failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
            details=details
        )


class AuthorizationError(BaseCustomException):
    """Raised when the caller's role lacks a required permission"""

    def __init__(self, message: str = "Insufficient permissions", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            details=details
        )
