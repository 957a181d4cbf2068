"""Error taxonomy shared by the API layer and the tutoring core.

CRUD-style operations let these propagate to the transport, where they are
rendered as JSON error envelopes. Dialogue turns contain them instead (see
``DialogueOrchestrator.handle_turn``).
"""

from datetime import datetime, timezone
import traceback
from typing import Any, Dict, Optional


class TutorError(Exception):
    """Base class for errors with an HTTP status and a machine code."""

    status_code: int = 500
    code: str = "INTERNAL_SERVER_ERROR"
    default_message: str = "An unexpected error occurred"
    hint: Optional[str] = None

    def __init__(self, message: Optional[str] = None, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class ValidationError(TutorError):
    status_code = 400
    code = "VALIDATION_ERROR"
    default_message = "Invalid request"
    hint = "Please check your input and try again"


class AuthenticationError(TutorError):
    status_code = 401
    code = "AUTHENTICATION_ERROR"
    default_message = "Authentication required"
    hint = "Please log in again to continue"


class AuthorizationError(TutorError):
    status_code = 403
    code = "AUTHORIZATION_ERROR"
    default_message = "Insufficient permissions"
    hint = "You do not have permission to access this resource"


class NotFoundError(TutorError):
    status_code = 404
    code = "NOT_FOUND"
    default_message = "Resource not found"
    hint = "The requested resource could not be found"


class DatabaseError(TutorError):
    status_code = 500
    code = "DATABASE_ERROR"
    default_message = "Database operation failed"


class CompletionServiceError(TutorError):
    """Raised by the completion client; executors always convert it to a fallback."""

    status_code = 503
    code = "COMPLETION_SERVICE_ERROR"
    default_message = "Text completion service error"


def build_error_envelope(
    exc: TutorError,
    path: str,
    method: str,
    include_stack: bool = False,
) -> Dict[str, Any]:
    """Render an error as the JSON body returned to API clients."""
    error: Dict[str, Any] = {
        "code": exc.code,
        "message": exc.message,
    }
    if exc.hint:
        error["hint"] = exc.hint
    # Details are exposed for client errors, or for everything in debug mode
    if exc.details is not None and (include_stack or exc.status_code < 500):
        error["details"] = exc.details
    if include_stack:
        error["stack"] = "".join(
            traceback.format_exception(type(exc), exc, exc.__traceback__)
        )

    return {
        "success": False,
        "error": error,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "path": path,
        "method": method,
    }
