"""
Moderation error taxonomy.

Every rejection the engine can produce belongs to exactly one ErrorKind.
Services raise the matching ModerationError subclass; the API layer maps
the kind to an HTTP status in one place (see tribunal.main).
"""
from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    """Closed set of machine-readable failure kinds."""

    VALIDATION = "validation_error"
    AUTHORIZATION = "authorization_error"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    RATE_LIMITED = "rate_limited"


HTTP_STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.AUTHORIZATION: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.RATE_LIMITED: 429,
}


class ModerationError(Exception):
    """Base class for expected business rejections. Never retried."""

    kind: ErrorKind

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context

    @property
    def status_code(self) -> int:
        return HTTP_STATUS_BY_KIND[self.kind]

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.kind.value, "detail": self.message}

    def __repr__(self) -> str:
        return f"<{type(self).__name__} kind={self.kind.value} message={self.message!r}>"


class ValidationError(ModerationError):
    """Malformed or missing field, or a category-specific rule violation."""

    kind = ErrorKind.VALIDATION


class AuthorizationError(ModerationError):
    """Wrong role, wrong scope, or not the sanctioned party."""

    kind = ErrorKind.AUTHORIZATION


class NotFoundError(ModerationError):
    """Target content, report, sanction or appeal does not exist."""

    kind = ErrorKind.NOT_FOUND


class ConflictError(ModerationError):
    """Duplicate report, duplicate open appeal, terminal appeal, concurrent update."""

    kind = ErrorKind.CONFLICT


class RateLimitError(ModerationError):
    """Hourly or daily report cap exceeded."""

    kind = ErrorKind.RATE_LIMITED

    def __init__(self, message: str, retry_after: Optional[int] = None, **context: Any):
        super().__init__(message, **context)
        self.retry_after = retry_after
