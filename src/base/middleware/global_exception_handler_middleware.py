import logging
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from src.base.models.api_response import ApiResponse, envelope_response

logger = logging.getLogger(__name__)


class GlobalExceptionHandlerMiddleware(BaseHTTPMiddleware):
    """
    Last line of defense: any exception escaping a route becomes a 500 envelope.
    """

    def __init__(self, app: ASGIApp):
        super().__init__(app)

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as ex:
            logger.error(
                "Unhandled exception occurred",
                exc_info=ex,
                extra={"path": str(request.url)},
            )
            return envelope_response(ApiResponse.from_exception(ex))


async def _http_exception_handler(request: Request, exc: StarletteHTTPException):
    return envelope_response(ApiResponse.failure(exc.status_code, str(exc.detail)))


async def _validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    ]
    return envelope_response(ApiResponse.failure(HTTPStatus.BAD_REQUEST, *errors))


def register_exception_handlers(app: FastAPI) -> None:
    """Render framework-raised errors in the envelope shape as well."""
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_middleware(GlobalExceptionHandlerMiddleware)
