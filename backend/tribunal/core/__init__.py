"""
Core module containing configuration and shared utilities.
"""
from tribunal.core.config import settings
from tribunal.core.errors import (
    AuthorizationError,
    ConflictError,
    ErrorKind,
    ModerationError,
    NotFoundError,
    RateLimitError,
    ValidationError,
)
from tribunal.core.principal import Admin, Member, Moderator, Principal, can_act_at

__all__ = [
    "settings",
    "ErrorKind",
    "ModerationError",
    "ValidationError",
    "AuthorizationError",
    "NotFoundError",
    "ConflictError",
    "RateLimitError",
    "Admin",
    "Member",
    "Moderator",
    "Principal",
    "can_act_at",
]
