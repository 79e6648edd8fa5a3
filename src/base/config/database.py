import logging
import os

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from src.base.utils.env_utils import is_local_development

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./local.db"


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""

    pass


def get_database_url() -> str:
    """Resolve database URL from environment, defaulting to local SQLite."""
    return os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL


def create_engine_for_url(url: str) -> AsyncEngine:
    connect_args: dict = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_async_engine(url, connect_args=connect_args)


async def init_db() -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """Initialize the database engine and session factory.

    In local development the users table is created on startup; everywhere
    else the schema is owned by Alembic (`alembic upgrade head`).

    Returns:
        Tuple of (engine, session_factory).
    """
    url = get_database_url()

    # Log connection target without credentials
    safe_url = url.split("@")[-1] if "@" in url else url
    logger.info("Connecting to database: %s", safe_url)

    engine = create_engine_for_url(url)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)

    if is_local_development():
        import src.domain.models.entities  # noqa: F401

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Development schema ensured.")

    return engine, session_factory


async def close_db(engine: AsyncEngine) -> None:
    """Dispose the database engine and release connections."""
    if engine:
        await engine.dispose()
        logger.info("Database connection closed.")
