"""Errors raised by the client when the API answers with a failure status."""

from typing import Optional

import httpx


class ApiError(Exception):
    def __init__(self, status_code: int, message: str, error: Optional[str] = None, errors: Optional[list] = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.error = error
        self.errors = errors or []


class ValidationFailed(ApiError):
    pass


class Unauthorized(ApiError):
    pass


class Forbidden(ApiError):
    pass


class NotFound(ApiError):
    pass


class Conflict(ApiError):
    pass


class TooManyAttempts(ApiError):
    pass


_BY_STATUS = {
    400: ValidationFailed,
    401: Unauthorized,
    403: Forbidden,
    404: NotFound,
    409: Conflict,
    429: TooManyAttempts,
}


def raise_for_response(response: httpx.Response) -> None:
    if response.is_success:
        return
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    message = body.get("message") or body.get("detail") or response.reason_phrase
    cls = _BY_STATUS.get(response.status_code, ApiError)
    raise cls(response.status_code, str(message), body.get("error"), body.get("errors"))
