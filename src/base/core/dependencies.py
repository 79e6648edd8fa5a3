from collections.abc import AsyncIterator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.domain.services.user_service import UserService


async def get_db_session(request: Request) -> AsyncIterator[AsyncSession]:
    """Yield a request-scoped session from the app's session factory."""
    async with request.app.state.db_session_factory() as session:
        yield session


def get_user_service(request: Request) -> UserService:
    """Return the singleton UserService instance from app state."""
    return request.app.state.user_service
