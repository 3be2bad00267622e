"""Domain errors raised by the service layer.

The API layer turns these into JSON responses (see ``familymenu.main``);
services never build HTTP responses themselves.
"""

from typing import Optional


class DomainError(Exception):
    status_code = 500
    error = "INTERNAL_SERVER_ERROR"

    def __init__(self, message: str, error: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if error:
            self.error = error

    def to_dict(self) -> dict:
        return {"message": self.message, "error": self.error}


class ValidationFailed(DomainError):
    status_code = 400
    error = "VALIDATION_ERROR"

    def __init__(self, message: str, errors: Optional[list[dict]] = None, error: Optional[str] = None):
        super().__init__(message, error)
        self.errors = errors or []

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["errors"] = self.errors
        return data


class Unauthorized(DomainError):
    status_code = 401
    error = "UNAUTHORIZED"


class Forbidden(DomainError):
    status_code = 403
    error = "FORBIDDEN"


class NotFound(DomainError):
    status_code = 404
    error = "NOT_FOUND"


class Conflict(DomainError):
    status_code = 409
    error = "CONFLICT"


class TooManyAttempts(DomainError):
    status_code = 429
    error = "TOO_MANY_REQUESTS"
