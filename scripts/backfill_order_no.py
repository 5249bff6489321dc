#!/usr/bin/env python3
"""Assign order numbers to orders created before numbering existed.

Orders of each restaurant are walked in creation order. Orders without a
number receive one above every number seen earlier in that walk, so
numbers keep increasing with creation time. Existing numbers are never
reused, and the restaurant's counter is moved up to the highest number so
newly placed orders continue the sequence.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

# Ensure ``tableorder`` and ``config`` are importable when run from a checkout
BASE_DIR = Path(__file__).resolve().parents[1]
sys.path.append(str(BASE_DIR))

from config import get_settings  # noqa: E402
from tableorder.app.db import build_engine, build_sessionmaker  # noqa: E402
from tableorder.app.models_tenant import Order  # noqa: E402
from tableorder.app.utils.order_counter import set_order_no  # noqa: E402

logger = logging.getLogger("tableorder.scripts.backfill")


async def backfill_restaurant(session: AsyncSession, restaurant_id: str) -> tuple[int, int]:
    """Number the orders of ``restaurant_id``; returns ``(updated, last_no)``."""

    result = await session.execute(
        select(Order)
        .where(Order.restaurant_id == restaurant_id)
        .order_by(Order.created_at, Order.id)
    )
    orders = list(result.scalars())
    taken = {o.order_no for o in orders if o.order_no is not None}
    counter = 1
    updated = 0
    for order in orders:
        if order.order_no is not None:
            counter = max(counter, order.order_no + 1)
            continue
        # a later order may already hold this number
        while counter in taken:
            counter += 1
        order.order_no = counter
        taken.add(counter)
        counter += 1
        updated += 1
    last_no = max(taken, default=0)
    if last_no:
        await set_order_no(session, restaurant_id, last_no)
    return updated, last_no


async def backfill(session_factory: async_sessionmaker[AsyncSession]) -> dict[str, int]:
    """Backfill every restaurant; returns the last order number per restaurant."""

    async with session_factory() as session:
        restaurant_ids = list(
            await session.scalars(select(Order.restaurant_id).distinct())
        )

    summary: dict[str, int] = {}
    for restaurant_id in restaurant_ids:
        async with session_factory() as session:
            async with session.begin():
                updated, last_no = await backfill_restaurant(session, restaurant_id)
        summary[restaurant_id] = last_no
        logger.info(
            "restaurant %s: numbered %d orders, last order no %d",
            restaurant_id,
            updated,
            last_no,
        )
    return summary


async def main(database_url: str | None = None) -> dict[str, int]:
    """Programmatic entrypoint used by tests."""

    engine = build_engine(database_url or get_settings().database_url)
    try:
        return await backfill(build_sessionmaker(engine))
    finally:
        await engine.dispose()


def _cli() -> None:
    parser = argparse.ArgumentParser(
        description="Assign order numbers to orders that have none"
    )
    parser.add_argument(
        "--database-url",
        default=None,
        help="Database URL, defaults to the configured database_url",
    )
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main(args.database_url))


if __name__ == "__main__":
    _cli()
