"""Application exceptions.

Every error surfaced to API clients is an ``ApiError`` carrying an HTTP status
code, a message and optional field-level details. The handlers registered in
``ateleslie.main`` turn them into the ``{success, message}`` envelope.
"""

from typing import Any, Dict, List, Optional


class ApiError(Exception):
    """Base exception for all errors returned to API clients."""

    status_code = 500
    default_message = "Internal Server Error"

    def __init__(self, message: Optional[str] = None, errors: Optional[List[Dict[str, Any]]] = None):
        """Initialize the exception.

        Args:
            message: Human readable message. Defaults to the class message.
            errors: Optional list of ``{"field", "message"}`` entries.
        """
        self.message = message or self.default_message
        self.errors = errors or []
        super().__init__(self.message)


class BadRequestError(ApiError):
    """Raised when request data fails validation."""

    status_code = 400
    default_message = "Bad request"


class UnauthorizedError(ApiError):
    """Raised when authentication is missing or invalid."""

    status_code = 401
    default_message = "Not authenticated"


class ForbiddenError(ApiError):
    """Raised when the caller is not allowed to perform the action."""

    status_code = 403
    default_message = "Forbidden"


class NotFoundError(ApiError):
    """Raised when a requested record cannot be found."""

    status_code = 404
    default_message = "Not found"


class ConflictError(ApiError):
    """Raised when a uniqueness constraint would be violated."""

    status_code = 409
    default_message = "Conflict"


class InternalServerError(ApiError):
    """Raised for unexpected failures."""

    pass


def validation_errors(raw_errors) -> List[Dict[str, Any]]:
    """Convert pydantic error dicts to ``{"field", "message"}`` entries."""
    errors = []
    for error in raw_errors:
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        message = str(error.get("msg", "Invalid value"))
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.append({"field": ".".join(location) or None, "message": message})
    return errors
