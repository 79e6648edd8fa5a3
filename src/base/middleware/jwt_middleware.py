import logging
from http import HTTPStatus

from fastapi import Request
from jose import ExpiredSignatureError, JWTError
from starlette.middleware.base import BaseHTTPMiddleware

from src.base.auth.auth_core import validate_jwt_token
from src.base.models.api_response import ApiResponse, envelope_response

logger = logging.getLogger(__name__)

# Paths that don’t require auth
WHITELIST = [
    "/api/users/login",
    "/api/users/health",
    "/api/auth-test/anonymous",
    "/docs",
    "/openapi.json",
    "/favicon.ico",
    "/docs/oauth2-redirect",
]


def _unauthorized(message: str):
    return envelope_response(
        ApiResponse.failure(HTTPStatus.UNAUTHORIZED, message)
    )


class JWTMiddleware(BaseHTTPMiddleware):
    """
    Validates the bearer token on every non-public request and stores the
    claims on ``request.state.claims``.
    """

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        method = request.method

        if path in WHITELIST or method == "OPTIONS":
            logger.debug("Skipping auth for public path: %s %s", method, path)
            return await call_next(request)

        auth_header = request.headers.get("authorization")
        if not auth_header or not auth_header.startswith("Bearer "):
            logger.warning("Missing or invalid Authorization header for: %s %s", method, path)
            return _unauthorized("Missing or invalid Authorization header")

        token = auth_header[len("Bearer ") :]

        try:
            request.state.claims = validate_jwt_token(token)
        except ExpiredSignatureError:
            logger.warning("JWT token expired for: %s %s", method, path)
            return _unauthorized("Token has expired")
        except JWTError as e:
            logger.error("JWT validation failed for %s %s: %s", method, path, e)
            return _unauthorized(f"Invalid token: {e}")

        return await call_next(request)
