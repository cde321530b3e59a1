from typing import Optional, Any


class BlazeError(Exception):
    """
    Base exception for the Blaze application.
    """
    def __init__(self, message: str, code: str = "INTERNAL_ERROR", status_code: int = 500, details: Optional[Any] = None):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class BadRequestError(BlazeError):
    """
    Raised when a request is well-formed but cannot be honoured as sent.
    """
    def __init__(self, message: str = "Bad request", code: str = "BAD_REQUEST", details: Optional[Any] = None):
        super().__init__(message, code=code, status_code=400, details=details)


class AuthenticationError(BlazeError):
    """
    Raised when authentication fails.
    """
    def __init__(self, message: str = "Authentication failed", details: Optional[Any] = None):
        super().__init__(message, code="AUTHENTICATION_FAILED", status_code=401, details=details)


class AuthorizationError(BlazeError):
    """
    Raised when an authenticated user may not perform the action.
    """
    def __init__(self, message: str = "Access denied", code: str = "FORBIDDEN", details: Optional[Any] = None):
        super().__init__(message, code=code, status_code=403, details=details)


class ResourceNotFoundError(BlazeError):
    """
    Raised when a requested resource is not found.
    """
    def __init__(self, message: str = "Resource not found", code: str = "NOT_FOUND", details: Optional[Any] = None):
        super().__init__(message, code=code, status_code=404, details=details)


class ConflictError(BlazeError):
    def __init__(self, message: str = "Resource already exists", details: Optional[Any] = None):
        super().__init__(message, code="CONFLICT", status_code=409, details=details)


class ExternalServiceError(BlazeError):
    """
    Raised when an external service (e.g., SMTP) fails.
    """
    def __init__(self, message: str = "External service error", details: Optional[Any] = None):
        super().__init__(message, code="EXTERNAL_SERVICE_ERROR", status_code=502, details=details)
