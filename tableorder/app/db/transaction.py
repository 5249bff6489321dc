"""Unit-of-work helper wrapping a callable in one database transaction."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..domain.errors import OrderError, RetryableError
from ..routes_metrics import order_rollbacks_total

T = TypeVar("T")

logger = logging.getLogger("tableorder.db")

# serialization failure, deadlock, lock not available, statement timeout
RETRYABLE_SQLSTATES = frozenset({"40001", "40P01", "55P03", "57014"})


def is_retryable(exc: DBAPIError) -> bool:
    if isinstance(exc, OperationalError) or exc.connection_invalidated:
        return True
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    return code in RETRYABLE_SQLSTATES


async def run_in_transaction(
    session_factory: async_sessionmaker[AsyncSession],
    work: Callable[[AsyncSession], Awaitable[T]],
    *,
    label: str = "transaction",
) -> T:
    """Run ``work`` inside a single transaction and return its result.

    The transaction commits only if ``work`` returns normally. Any exception
    rolls it back before propagating, so no partial writes survive.
    Operational failures of the store (lock timeouts, serialization
    failures, dropped connections) surface as :class:`RetryableError`.
    """

    async with session_factory() as session:
        try:
            async with session.begin():
                return await work(session)
        except OrderError as exc:
            order_rollbacks_total.labels(reason=exc.code).inc()
            logger.info("%s rolled back: %s (%s)", label, exc.message, exc.code)
            raise
        except DBAPIError as exc:
            if not is_retryable(exc):
                order_rollbacks_total.labels(reason="UNEXPECTED").inc()
                logger.exception("%s rolled back after database error", label)
                raise
            order_rollbacks_total.labels(reason="RETRY").inc()
            logger.warning("%s aborted by the store: %s", label, exc.orig)
            raise RetryableError(
                "The order could not be saved right now, please retry"
            ) from exc
        except Exception:
            order_rollbacks_total.labels(reason="UNEXPECTED").inc()
            logger.exception("%s rolled back after unexpected error", label)
            raise


__all__ = ["RETRYABLE_SQLSTATES", "is_retryable", "run_in_transaction"]
