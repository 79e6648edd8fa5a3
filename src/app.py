import logging

from dotenv import load_dotenv
from fastapi import FastAPI

from src.base.config.logging_config import LoggingConfig
from src.base.core.lifespan import lifespan
from src.base.middleware.correlation_middleware import CorrelationMiddleware
from src.base.middleware.global_exception_handler_middleware import (
    register_exception_handlers,
)
from src.base.middleware.jwt_middleware import JWTMiddleware
from src.base.routes.health import router as health_router
from src.domain.routes.auth_test_routes import router as auth_test_router
from src.domain.routes.user_routes import router as user_router

# Load environment variables
load_dotenv()

# --- Logging configuration ---
LoggingConfig.setup_logging()
logger = logging.getLogger(__name__)

logger.info("Starting InsightSage Auth API")

# --- FastAPI app ---
app = FastAPI(title="InsightSage Auth API", version="1.0.0", lifespan=lifespan)

# --- Middleware (last added runs first) ---
app.add_middleware(JWTMiddleware)
register_exception_handlers(app)
app.add_middleware(CorrelationMiddleware)

# --- Routes ---
app.include_router(health_router, prefix="/api/users")
app.include_router(user_router, prefix="/api")
app.include_router(auth_test_router, prefix="/api")
