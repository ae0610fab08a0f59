#!/usr/bin/env python3
"""Create all ledger tables without alembic (development and tests)."""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from loguru import logger

from chainledger.config.database import create_engine
from chainledger.config.settings import get_settings
from chainledger.models import Base

# Configure logger for script
logger.remove()
logger.add(sys.stderr, level="INFO")


async def init_database() -> None:
    """Create all database tables."""
    settings = get_settings()

    logger.info("Connecting to database...")
    engine = create_engine(settings.database_url, use_null_pool=True)

    async with engine.begin() as conn:
        logger.info("Creating tables (checkfirst=True)...")
        await conn.run_sync(Base.metadata.create_all, checkfirst=True)

    await engine.dispose()
    logger.success(f"Database tables created successfully! ({len(Base.metadata.tables)} tables)")


if __name__ == "__main__":
    asyncio.run(init_database())
