#!/usr/bin/env python3
"""
Database initialization script for the meeting dashboard.
Run this to create the required database tables.
"""
import asyncio
import sys

from app.config import settings
from app.database import create_tables, drop_tables, engine
from app.logging_config import get_logger, setup_logging

logger = get_logger(__name__)


async def init_db():
    """Initialize database tables."""
    logger.info("creating_tables", url=engine.url.render_as_string(hide_password=True))
    try:
        await create_tables()
        logger.info("tables_created", tables=["meetings"])
    finally:
        await engine.dispose()


async def reset_db():
    """Drop and recreate all tables. WARNING: This deletes all data!"""
    logger.warning("reset_requested", url=engine.url.render_as_string(hide_password=True))

    response = input("This will DELETE ALL cached meetings. Continue? (yes/no): ")

    if response.lower() != "yes":
        logger.info("reset_cancelled")
        return

    try:
        await drop_tables()
        logger.info("tables_dropped")
        await create_tables()
        logger.info("database_reset")
    finally:
        await engine.dispose()


if __name__ == "__main__":
    setup_logging(settings.debug, settings.log_json)

    if len(sys.argv) > 1 and sys.argv[1] == "--reset":
        asyncio.run(reset_db())
    else:
        asyncio.run(init_db())
