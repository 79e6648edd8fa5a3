import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from src.base.config.database import close_db, init_db
from src.domain.services.user_service import UserService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Centralized initialization and teardown for app services."""
    logger.info("Starting application lifespan...")

    engine, session_factory = await init_db()
    app.state.db_engine = engine
    app.state.db_session_factory = session_factory
    app.state.user_service = UserService()

    logger.info("Services initialized.")
    try:
        yield  # --- Application runs here ---
    finally:
        await close_db(engine)
