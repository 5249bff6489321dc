"""Utilities for managing per-restaurant order number counters."""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession


async def next_order_no(session: AsyncSession, restaurant_id: str) -> int:
    """Return the next order number for ``restaurant_id``.

    The counter row is created if missing and incremented in a single
    statement, so concurrent transactions never read the same value. The
    increment belongs to the caller's transaction: if that transaction rolls
    back the number is released again. Numbers are never derived from the
    orders themselves.
    """
    stmt = text(
        """
        INSERT INTO order_no_counters (restaurant_id, order_no)
        VALUES (:restaurant_id, 1)
        ON CONFLICT (restaurant_id)
        DO UPDATE SET order_no = order_no_counters.order_no + 1
        RETURNING order_no
        """
    )
    result = await session.execute(stmt, {"restaurant_id": restaurant_id})
    return int(result.scalar_one())


async def set_order_no(session: AsyncSession, restaurant_id: str, value: int) -> None:
    """Force the counter for ``restaurant_id`` to ``value``.

    Only used by the backfill script; the counter never moves backwards.
    """
    stmt = text(
        """
        INSERT INTO order_no_counters (restaurant_id, order_no)
        VALUES (:restaurant_id, :value)
        ON CONFLICT (restaurant_id)
        DO UPDATE SET order_no = CASE
            WHEN order_no_counters.order_no < :value THEN :value
            ELSE order_no_counters.order_no
        END
        """
    )
    await session.execute(stmt, {"restaurant_id": restaurant_id, "value": value})
