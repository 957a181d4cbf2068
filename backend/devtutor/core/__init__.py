"""Core configuration, errors and security for the devtutor backend."""

from .config import Settings, get_settings
from .errors import (
    AuthenticationError,
    AuthorizationError,
    CompletionServiceError,
    DatabaseError,
    NotFoundError,
    TutorError,
    ValidationError,
)
from .security import create_access_token, verify_access_token

__all__ = [
    "Settings",
    "get_settings",
    "TutorError",
    "ValidationError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "DatabaseError",
    "CompletionServiceError",
    "create_access_token",
    "verify_access_token",
]
