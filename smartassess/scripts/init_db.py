#!/usr/bin/env python3
"""
Database initialization script.

Creates the SmartAssess tables at DATABASE_URL, either directly from the
table models or, with ``--migrate``, through the Alembic migrations.
"""

import argparse
import asyncio
import sys

from smartassess.common.exceptions import DatabaseError
from smartassess.common.logger import app_logger
from smartassess.config import settings
from smartassess.database import close_database, initialize_database, run_migrations

logger = app_logger.getChild("scripts.init_db")


async def create_tables(database_url: str) -> None:
    await initialize_database(database_url=database_url, echo=settings.SQL_ECHO, create_tables=True)
    await close_database()


def main():
    parser = argparse.ArgumentParser(description="Initialize the SmartAssess database")
    parser.add_argument("--url", default=settings.DATABASE_URL, help="Database URL")
    parser.add_argument("--migrate", action="store_true", help="Use Alembic migrations instead of create_all")
    args = parser.parse_args()

    try:
        if args.migrate:
            run_migrations(args.url)
        else:
            asyncio.run(create_tables(args.url))
    except DatabaseError as e:
        logger.error(f"Error initializing database: {e}")
        sys.exit(1)

    logger.info("Database initialized successfully")


if __name__ == "__main__":
    main()
