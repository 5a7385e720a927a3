from functools import lru_cache
from pathlib import Path
import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from dotenv import load_dotenv

from config import get_settings

logger = logging.getLogger(__name__)

ROOT_DIR = Path(__file__).parent.parent
load_dotenv(ROOT_DIR / '.env')


class Base(DeclarativeBase):
    pass


@lru_cache()
def get_engine() -> AsyncEngine:
    """Create the async engine on first use so imports never need a database."""
    return create_async_engine(
        get_settings().get_database_url(),
        echo=False,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
    )


@lru_cache()
def get_sessionmaker() -> async_sessionmaker:
    return async_sessionmaker(
        get_engine(),
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False
    )


async def get_db():
    """Dependency to get database session"""
    async with get_sessionmaker()() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db():
    """Verify the database is reachable and the member tables exist"""
    try:
        async with get_engine().begin() as conn:
            await conn.execute(text("SELECT 1"))
            logger.info("PostgreSQL connection successful")

            result = await conn.execute(text("""
                SELECT table_name
                FROM information_schema.tables
                WHERE table_schema = 'public'
                  AND table_name IN ('users', 'auth_sessions', 'member_profiles')
            """))
            tables = sorted(row[0] for row in result.fetchall())
            if len(tables) < 3:
                logger.warning(f"Member tables incomplete ({tables}); run database/init_member_db.py")
            return True
    except Exception as e:
        logger.error(f"Database initialization error: {e}")
        raise
