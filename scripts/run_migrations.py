"""Apply the SQL files in migrations/ in name order"""
import asyncio
import logging
import sys
import os
from pathlib import Path

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from prep_gamification.config import validate_config
from prep_gamification.db.connection import db
from prep_gamification.logging_config import setup_logging

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent.parent / "migrations"


async def main():
    """Run every migration file against DATABASE_URL"""
    setup_logging()
    validate_config()

    files = sorted(MIGRATIONS_DIR.glob("*.sql"))
    if not files:
        logger.info("No migrations found")
        return

    logger.info("Initializing database connection...")
    await db.init_pool()

    try:
        async with db.connection() as conn:
            for path in files:
                logger.info(f"Applying {path.name}")
                await conn.execute(path.read_text())
                await conn.commit()
        logger.info(f"✅ Applied {len(files)} migration(s)")
    finally:
        await db.close_pool()


if __name__ == "__main__":
    asyncio.run(main())
