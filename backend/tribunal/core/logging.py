"""
Structured logging for the moderation engine.

Every log line emitted while a request is in flight carries the request id
and, once the gateway identity is resolved, the acting principal. Audit rows
are the durable record; these logs are for operators.
"""
import logging
import sys
import uuid
from typing import Optional

import structlog

from tribunal.core.config import settings
from tribunal.core.principal import Principal

REQUEST_ID_HEADER = "X-Request-ID"

# Libraries whose INFO output drowns out moderation events
_NOISY_LOGGERS = ("aiosqlite", "asyncpg", "uvicorn.access")


def setup_logging():
    """
    Configure structlog: console output in debug mode, JSON lines otherwise.
    """
    log_level = logging.DEBUG if settings.api_debug else logging.INFO

    renderer = (
        structlog.dev.ConsoleRenderer()
        if settings.api_debug
        else structlog.processors.JSONRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.api_debug else logging.WARNING
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_request(request_id: Optional[str], method: str, path: str) -> str:
    """
    Start a fresh logging context for one request.

    Reuses the caller's request id when the gateway sent one.

    Returns:
        The request id in effect
    """
    request_id = request_id or str(uuid.uuid4())
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id, method=method, path=path)
    return request_id


def bind_principal(principal: Principal) -> None:
    """Attach the acting principal to every subsequent log line."""
    fields = {"actor_id": principal.user_id, "actor_role": principal.role.value}
    community_id = getattr(principal, "community_id", None)
    if community_id:
        fields["actor_community_id"] = community_id
    structlog.contextvars.bind_contextvars(**fields)
