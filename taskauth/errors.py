"""
Application error taxonomy.

Services raise these; a single set of exception handlers installed on
the app turns them into a status code and a ``{"message": ...}`` body.

Example:
    from taskauth.errors import NotFound

    def get_profile(self, user_id: str) -> User:
        user = self.db.get(User, user_id)
        if not user:
            raise NotFound("User not found")
        return user
"""

from typing import Any, Dict, Optional


class AppError(Exception):
    """
    Base application error.

    Carries the HTTP status the boundary translator should use and a
    message that is safe to show to the client.
    """

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message}


class ValidationFailed(AppError):
    """400 - malformed or missing input."""

    status_code = 400
    default_message = "Validation error"

    def __init__(self, message: Optional[str] = None, errors: Optional[Any] = None):
        super().__init__(message)
        self.errors = errors

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        if self.errors is not None:
            body["errors"] = self.errors
        return body


class Unauthorized(AppError):
    """401 - missing, invalid or expired credentials, or revoked session."""

    status_code = 401
    default_message = "Unauthorized"


class NotFound(AppError):
    """404 - resource doesn't exist or isn't owned by the caller."""

    status_code = 404
    default_message = "Not found"


class Conflict(AppError):
    """409 - unique value already taken. ``field`` names the collision."""

    status_code = 409
    default_message = "Conflict"

    def __init__(self, message: Optional[str] = None, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class InternalError(AppError):
    """500 - anything unclassified. The message is never the real cause."""
