"""
Transaction management utilities.

Provides context managers for explicit transaction boundaries
to prevent partial commits on multi-step operations, and a bounded
retry for transient store failures.
"""
import asyncio
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Awaitable, Callable, Optional, TypeVar

import structlog
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.exc import TimeoutError as SQLTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from tribunal.core.config import settings
from tribunal.core.errors import ConflictError, ModerationError

logger = structlog.get_logger()

T = TypeVar("T")


@asynccontextmanager
async def atomic(db: AsyncSession) -> AsyncGenerator[AsyncSession, None]:
    """
    Execute operations atomically - all or nothing.

    Usage:
        async with atomic(db) as session:
            session.add(obj1)
            session.add(obj2)
            # Auto-commits on success, auto-rollbacks on exception

    Unique-constraint violations and optimistic version mismatches are
    surfaced as ConflictError: both mean another writer got there first.

    Args:
        db: SQLAlchemy async session

    Yields:
        The same session for chaining
    """
    try:
        yield db
        await db.commit()
    except ModerationError as e:
        await db.rollback()
        logger.info("Transaction rejected", kind=e.kind.value, reason=e.message)
        raise
    except (IntegrityError, StaleDataError) as e:
        await db.rollback()
        logger.warning("Transaction lost a write race", error=str(e), error_type=type(e).__name__)
        raise ConflictError("The record was modified concurrently; reload and retry") from e
    except Exception as e:
        await db.rollback()
        logger.error("Transaction rolled back", error=str(e), exc_info=True)
        raise


@asynccontextmanager
async def savepoint(db: AsyncSession, name: str = "sp") -> AsyncGenerator[AsyncSession, None]:
    """
    Create a savepoint for partial rollback capability.

    Usage:
        async with savepoint(db, "audit_write") as session:
            # If this fails, only this block rolls back
            session.add(obj)

    Args:
        db: SQLAlchemy async session
        name: Savepoint name for debugging

    Yields:
        The same session
    """
    async with db.begin_nested():
        try:
            yield db
        except Exception as e:
            logger.warning(f"Savepoint {name} rolled back", error=str(e))
            raise


def is_transient_store_error(error: Exception) -> bool:
    """
    Check if an error is a retryable store failure (connection/pool issue).

    Business rejections and constraint violations are never transient.
    """
    if isinstance(error, (ModerationError, IntegrityError)):
        return False
    if isinstance(error, (OperationalError, SQLTimeoutError)):
        return True
    if isinstance(error, DBAPIError) and error.connection_invalidated:
        return True
    return False


async def with_store_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    attempts: Optional[int] = None,
    backoff: Optional[float] = None,
    context: Optional[dict] = None,
) -> T:
    """
    Run a unit of work, retrying only on transient store failures.

    The operation must open its own atomic() block so each attempt starts
    from a clean transaction.

    Args:
        operation: Zero-argument coroutine factory
        attempts: Maximum attempts (defaults to settings.store_retry_attempts)
        backoff: Base delay in seconds, doubled per attempt
        context: Extra fields for log lines

    Returns:
        Whatever the operation returns
    """
    max_attempts = max(1, attempts if attempts is not None else settings.store_retry_attempts)
    delay = backoff if backoff is not None else settings.store_retry_backoff_seconds
    context = context or {}

    for attempt in range(1, max_attempts + 1):
        try:
            return await operation()
        except Exception as e:
            if not is_transient_store_error(e) or attempt == max_attempts:
                raise
            logger.warning(
                "Transient store failure, retrying",
                attempt=attempt,
                max_attempts=max_attempts,
                error=str(e),
                error_type=type(e).__name__,
                **context,
            )
            await asyncio.sleep(delay * (2 ** (attempt - 1)))

    raise RuntimeError("unreachable")  # pragma: no cover
