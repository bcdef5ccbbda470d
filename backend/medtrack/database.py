import asyncio
import logging
from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from medtrack.config import Settings, settings
from medtrack.models import Base

logger = logging.getLogger("medtrack.database")

MAX_RETRY_DELAY_SECONDS = 10.0


def build_engine(config: Settings) -> AsyncEngine:
    return create_async_engine(
        config.database_url,
        echo=config.database_echo,
        pool_size=config.database_pool_size,
        max_overflow=config.database_max_overflow,
        pool_timeout=30,
        pool_recycle=config.database_pool_recycle,
        pool_pre_ping=config.database_pool_pre_ping,
    )


engine = build_engine(settings)

# Dose rows are read back after commit to build responses and side effects.
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


def retry_delay(attempt: int) -> float:
    return min(settings.database_init_retry_delay_seconds * attempt, MAX_RETRY_DELAY_SECONDS)


async def _prepare_schema() -> None:
    async with engine.begin() as conn:
        if settings.debug:
            await conn.run_sync(Base.metadata.create_all)
        else:
            logger.info("Schema is managed by Alembic; skipping create_all")


async def init_db() -> None:
    """Wait for the database, creating tables in debug mode.

    Retries ``database_init_retries`` times with a linear backoff so the API
    can start alongside a database container that is still booting.
    """
    attempts = settings.database_init_retries + 1
    for attempt in range(1, attempts + 1):
        try:
            await _prepare_schema()
        except Exception as exc:
            if attempt == attempts:
                logger.exception("Database unavailable after %d attempts", attempt)
                raise
            delay = retry_delay(attempt)
            logger.warning(
                "Database not ready (%s), attempt %d/%d; retrying in %.1fs",
                exc.__class__.__name__,
                attempt,
                attempts,
                delay,
            )
            await asyncio.sleep(delay)
        else:
            if attempt > 1:
                logger.info("Database ready after %d attempts", attempt)
            return


async def close_db() -> None:
    await engine.dispose()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session, committed when the endpoint returns normally."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
