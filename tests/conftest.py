import json

import pytest
from fastapi import FastAPI, Request
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from starlette.middleware.base import BaseHTTPMiddleware

import src.domain.models.entities  # noqa: F401
from src.base.config.database import Base
from src.base.middleware.global_exception_handler_middleware import (
    register_exception_handlers,
)
from src.base.routes.health import router as health_router
from src.domain.data.user_data_context import UserDataContext
from src.domain.routes.auth_test_routes import router as auth_test_router
from src.domain.routes.user_routes import router as user_router
from src.domain.services.user_service import UserService

CLAIMS_HEADER = "X-Test-Claims"


class FakeAuthMiddleware(BaseHTTPMiddleware):
    """Middleware that sets request.state.claims from the X-Test-Claims header."""

    async def dispatch(self, request: Request, call_next):
        header = request.headers.get(CLAIMS_HEADER)
        if header:
            request.state.claims = json.loads(header)
        return await call_next(request)


def claims_header(**claims) -> dict[str, str]:
    return {CLAIMS_HEADER: json.dumps(claims)}


@pytest.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://", connect_args={"check_same_thread": False}
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session_factory(db_engine):
    return async_sessionmaker(db_engine, expire_on_commit=False)


@pytest.fixture
async def db_session(db_session_factory):
    async with db_session_factory() as session:
        yield session


@pytest.fixture
def data_context():
    return UserDataContext()


@pytest.fixture
def user_service(data_context):
    return UserService(data_context)


def build_app(db_session_factory, user_service) -> FastAPI:
    test_app = FastAPI()
    test_app.state.db_session_factory = db_session_factory
    test_app.state.user_service = user_service
    test_app.add_middleware(FakeAuthMiddleware)
    register_exception_handlers(test_app)
    test_app.include_router(health_router, prefix="/api/users")
    test_app.include_router(user_router, prefix="/api")
    test_app.include_router(auth_test_router, prefix="/api")
    return test_app


@pytest.fixture
def app(db_session_factory, user_service):
    return build_app(db_session_factory, user_service)


@pytest.fixture
async def client(app):
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as c:
        yield c
