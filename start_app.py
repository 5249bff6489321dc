# start_app.py
"""Apply database migrations and launch the ordering API."""

from __future__ import annotations

import argparse
import asyncio
import os
import sys

import uvicorn
from dotenv import load_dotenv
from sqlalchemy.exc import OperationalError

import config
from tableorder.app.db.migrate import run_migrations


def main(argv: list[str] | None = None) -> None:
    """Load settings, optionally upgrade the schema, then serve the API."""

    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--skip-db-migrations",
        action="store_true",
        help="Start without running Alembic migrations",
    )
    parser.add_argument("--port", type=int, default=int(os.getenv("PORT", "8000")))
    args = parser.parse_args(argv)

    load_dotenv()  # load environment variables from a .env file

    env_flag = os.getenv("SKIP_DB_MIGRATIONS")
    skip = args.skip_db_migrations or (
        env_flag and env_flag.lower() not in {"0", "false"}
    )

    settings = config.get_settings()
    if not skip:
        try:
            asyncio.run(run_migrations(settings.database_url))
        except (OperationalError, OSError) as exc:
            print(f"database migration failed: {exc}", file=sys.stderr)
            raise SystemExit(1)

    uvicorn.run(
        "tableorder.app.main:app",
        host="0.0.0.0",  # nosec B104: bind for local development
        port=args.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
