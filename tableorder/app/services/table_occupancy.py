"""Enforce one active order per table."""

from __future__ import annotations

import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.errors import ConflictError, NotFoundError
from ..models_tenant import Table

logger = logging.getLogger("tableorder.tables")

OCCUPIED_MESSAGE = "This table is not available for new orders, it is currently occupied"


async def find_table(session: AsyncSession, restaurant_id: str, qr_slug: str) -> Table:
    """Return the table of ``restaurant_id`` identified by ``qr_slug``.

    QR slugs are unique per restaurant only, so the lookup is always scoped.
    """

    table = await session.scalar(
        select(Table).where(Table.restaurant_id == restaurant_id, Table.qr_slug == qr_slug)
    )
    if table is None:
        raise NotFoundError("Table not found please rescan the QR code")
    return table


def ensure_free(table: Table) -> None:
    if table.is_occupied:
        raise ConflictError(OCCUPIED_MESSAGE, code="TABLE_OCCUPIED")


async def acquire(session: AsyncSession, table: Table, order_id: str) -> None:
    """Mark ``table`` occupied by ``order_id``.

    The update only matches while the table is still free, so of two
    transactions racing for the same table only one can link its order; the
    other gets :class:`ConflictError` and rolls back. Call it after the order
    row has been flushed in the same transaction.
    """

    result = await session.execute(
        update(Table)
        .where(Table.id == table.id, Table.is_occupied.is_(False))
        .values(is_occupied=True, current_order_id=order_id)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise ConflictError(OCCUPIED_MESSAGE, code="TABLE_OCCUPIED")
    await session.refresh(table, ["is_occupied", "current_order_id"])
    logger.debug("table %s acquired by order %s", table.id, order_id)


async def release(session: AsyncSession, table_id: str, order_id: str | None = None) -> bool:
    """Free ``table_id``; a no-op when it is already free.

    When ``order_id`` is given the table is only released if that order is
    the one occupying it. Returns whether a row changed.
    """

    stmt = update(Table).where(Table.id == table_id, Table.is_occupied.is_(True))
    if order_id is not None:
        stmt = stmt.where(Table.current_order_id == order_id)
    result = await session.execute(
        stmt.values(is_occupied=False, current_order_id=None).execution_options(
            synchronize_session=False
        )
    )
    released = result.rowcount == 1
    if released:
        logger.debug("table %s released", table_id)
    return released


__all__ = ["find_table", "ensure_free", "acquire", "release"]
