"""
Pro Profiles Core - Database Initialization

Creates the professional profile tables (and the partial unique index on
background checks) in the configured database.

Usage: python -m database.init_profile_db [create|drop|check]
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import List

from dotenv import load_dotenv

# Load environment variables
ROOT_DIR = Path(__file__).parent.parent
load_dotenv(ROOT_DIR / '.env')

from sqlalchemy.ext.asyncio import AsyncEngine

from database.connection import get_engine, Base
from database import profile_models  # noqa: F401  registers the tables on Base

logger = logging.getLogger(__name__)


def _table_names(sync_conn) -> List[str]:
    return sorted(sync_conn.dialect.get_table_names(sync_conn))


async def create_tables(engine: AsyncEngine) -> List[str]:
    """Create all profile tables"""
    logger.info("Creating profile database tables...")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        tables = await conn.run_sync(_table_names)

    logger.info(f"Created profile tables: {tables}")
    return tables


async def drop_tables(engine: AsyncEngine):
    """Drop all profile tables (use with caution!)"""
    logger.info("Dropping profile database tables...")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    logger.info("All profile tables dropped")


async def check_tables(engine: AsyncEngine) -> List[str]:
    """Return the expected tables that are missing"""
    async with engine.connect() as conn:
        existing = set(await conn.run_sync(_table_names))
    return sorted(set(Base.metadata.tables) - existing)


async def main(argv: List[str]) -> int:
    """Main initialization function"""
    command = argv[1] if len(argv) > 1 else "create"
    engine = get_engine()

    try:
        if command == "create":
            tables = await create_tables(engine)
            print(f"Created tables: {tables}")
        elif command == "drop":
            await drop_tables(engine)
        elif command == "check":
            missing = await check_tables(engine)
            if missing:
                print(f"Missing tables: {missing}")
                return 1
            print("All profile tables exist")
        else:
            print(f"Unknown command: {command}")
            print("Usage: python -m database.init_profile_db [create|drop|check]")
            return 2
    finally:
        await engine.dispose()

    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    sys.exit(asyncio.run(main(sys.argv)))
