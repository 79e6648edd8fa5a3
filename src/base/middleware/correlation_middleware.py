import logging
import uuid
from contextvars import ContextVar

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

CORRELATION_HEADER = "x-correlation-id"

correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")

logger = logging.getLogger(__name__)


def get_correlation_id() -> str:
    return correlation_id.get("")


class CorrelationMiddleware(BaseHTTPMiddleware):
    """Tags each request with a correlation ID, echoed back in the response headers."""

    async def dispatch(self, request: Request, call_next):
        value = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        token = correlation_id.set(value)
        try:
            logger.debug("Request %s %s", request.method, request.url.path)
            response: Response = await call_next(request)
            response.headers[CORRELATION_HEADER] = value
            return response
        finally:
            correlation_id.reset(token)


class CorrelationFilter(logging.Filter):
    """Logging filter to add correlation ID to log records."""

    def filter(self, record):
        record.correlation_id = correlation_id.get("")
        return True
