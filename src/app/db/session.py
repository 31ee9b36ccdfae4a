import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlalchemy.sql import text

from app.core.config import settings
from app.core.scheduler import scheduler, setup_scheduler

logger = logging.getLogger(__name__)


engine = create_async_engine(
    settings.DATABASE_URL,
    echo=False,
    pool_pre_ping=True,
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
)


AsyncSessionFactory = sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

async def get_db() -> AsyncGenerator[AsyncSession, None]:

    async with AsyncSessionFactory() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            await session.rollback()
            logger.error(f"Database session error: {e}")
            raise
        finally:
            await session.close()

async def check_database() -> bool:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database check failed: {e}")
        return False

@asynccontextmanager
async def lifespan(app):

    logger.info("Starting outbreak detection service...")

    # Scans degrade to empty reads, so a missing database is not fatal at startup.
    if await check_database():
        logger.info("Database connection established.")

    if settings.SCHEDULER_ENABLED:
        try:
            setup_scheduler()
        except Exception as e:
            logger.error(f"Failed to start the scheduler: {e}")
    else:
        logger.info("Scheduled outbreak scans are disabled (SCHEDULER_ENABLED=false).")

    yield

    logger.info("Shutting down...")

    if scheduler.running:
        # Running scans are abandoned.
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped.")

    await engine.dispose()
    logger.info("Database connections closed.")
