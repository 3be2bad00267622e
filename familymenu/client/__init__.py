"""Python client data layer for the Family Menu API."""

from familymenu.client.api import FamilyMenuClient
from familymenu.client.cache import QueryCache
from familymenu.client.errors import (
    ApiError,
    Conflict,
    Forbidden,
    NotFound,
    TooManyAttempts,
    Unauthorized,
    ValidationFailed,
)

__all__ = [
    "FamilyMenuClient",
    "QueryCache",
    "ApiError",
    "ValidationFailed",
    "Unauthorized",
    "Forbidden",
    "NotFound",
    "Conflict",
    "TooManyAttempts",
]
