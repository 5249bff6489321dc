from __future__ import annotations

"""Programmatic Alembic upgrades for the ordering schema."""

import asyncio
import logging
from pathlib import Path

from alembic import command
from alembic.config import Config

SCRIPT_LOCATION = Path(__file__).resolve().parents[2] / "alembic"


def alembic_config(url: str) -> Config:
    cfg = Config()
    cfg.set_main_option("script_location", str(SCRIPT_LOCATION))
    cfg.set_main_option("sqlalchemy.url", url)
    return cfg


async def run_migrations(url: str) -> None:
    """Upgrade the database at ``url`` to the latest revision.

    Alembic drives its own event loop, so the upgrade runs in a worker thread.
    """

    logger = logging.getLogger("tableorder.db")
    try:
        await asyncio.to_thread(command.upgrade, alembic_config(url), "head")
    except Exception as exc:
        logger.error("Failed to run migrations for %s: %s", url.split("@")[-1], exc)
        raise
    logger.info("database schema upgraded to head")


__all__ = ["alembic_config", "run_migrations"]
