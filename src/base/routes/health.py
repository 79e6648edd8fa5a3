import datetime
import logging

from fastapi import APIRouter, Request
from sqlalchemy import text

from src.base.models.api_response import ApiResponse, envelope_response
from src.base.utils.env_utils import get_environment

router = APIRouter(tags=["Health"], prefix="")
logger = logging.getLogger(__name__)


@router.get("/health")
async def health(request: Request):
    """
    Health check endpoint.
    Always 200; reports "degraded" when the database cannot be reached.
    """
    result = {
        "status": "healthy",
        "timestamp": datetime.datetime.now(datetime.UTC).isoformat(),
        "environment": get_environment() or None,
    }

    session_factory = getattr(request.app.state, "db_session_factory", None)
    if session_factory is None:
        result["database"] = "not configured"
    else:
        try:
            async with session_factory() as session:
                await session.execute(text("SELECT 1"))
            result["database"] = "connected"
        except Exception:
            logger.exception("Database health check failed")
            result["database"] = "unavailable"
            result["status"] = "degraded"

    return envelope_response(ApiResponse.success(result))
