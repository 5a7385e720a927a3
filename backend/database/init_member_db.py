"""
Member Sync - Database Initialization

Creates the users, auth_sessions and member_profiles tables.
Run this script once against a fresh database.
"""

import asyncio
import logging

from sqlalchemy import text

from database.connection import get_engine, Base
from database.member_models import UserDB, AuthSessionDB, MemberProfileDB  # noqa: F401

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def create_tables():
    """Create all member tables"""
    logger.info("Creating member database tables...")

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

        result = await conn.execute(text("""
            SELECT table_name
            FROM information_schema.tables
            WHERE table_schema = 'public'
            AND table_name IN ('users', 'auth_sessions', 'member_profiles')
            ORDER BY table_name
        """))
        tables = [row[0] for row in result.fetchall()]

        logger.info(f"Created member tables: {tables}")
        return tables


if __name__ == "__main__":
    asyncio.run(create_tables())
