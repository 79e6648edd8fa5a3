import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from src.client.errors import ApiError
from src.client.token_provider import TokenProvider

logger = logging.getLogger(__name__)

Handler = Callable[[httpx.Request], Awaitable[Any]]

FULL_RESPONSE_HEADER = "X-Full-Response"

DEFAULT_PUBLIC_URLS = (
    "graph.microsoft.com",
    "/api/public",
    "/api/health",
    "/api/version",
    "/api/users/health",
)

ENVELOPE_KEYS = ("result", "status", "errors", "exceptionDetails")


class Interceptor:
    """One link of the request chain. Call ``call_next`` to continue."""

    async def intercept(self, request: httpx.Request, call_next: Handler) -> Any:
        return await call_next(request)


class AuthInterceptor(Interceptor):
    """Attach a bearer token unless the URL is on the public allow-list."""

    def __init__(
        self,
        token_provider: TokenProvider,
        public_urls: tuple[str, ...] = DEFAULT_PUBLIC_URLS,
    ):
        self._token_provider = token_provider
        self._public_urls = public_urls

    def should_skip(self, url: str) -> bool:
        return any(fragment in url for fragment in self._public_urls)

    async def intercept(self, request: httpx.Request, call_next: Handler) -> Any:
        url = str(request.url)
        if self.should_skip(url):
            return await call_next(request)

        try:
            token = await self._token_provider.acquire_token()
        except Exception:
            logger.exception("Failed to acquire token for %s", url)
            token = None

        if token:
            request.headers["Authorization"] = f"Bearer {token}"
        else:
            logger.warning("Sending %s without an access token", url)
        return await call_next(request)


def is_envelope(body: Any) -> bool:
    return (
        isinstance(body, dict)
        and all(key in body for key in ENVELOPE_KEYS)
        and isinstance(body["status"], int)
        and isinstance(body["errors"], list)
    )


class ApiResponseInterceptor(Interceptor):
    """Unwrap envelopes: ``result`` on success, ApiError otherwise."""

    async def intercept(self, request: httpx.Request, call_next: Handler) -> Any:
        response: httpx.Response = await call_next(request)
        url = str(request.url)
        body = _json_or_none(response)

        if is_envelope(body):
            if request.headers.get(FULL_RESPONSE_HEADER):
                return body
            if body["status"] == 200 and not body["errors"]:
                return body["result"]
            logger.error(
                "API error response from %s: status=%s errors=%s",
                url,
                body["status"],
                body["errors"],
            )
            raise ApiError(
                body["status"], body["errors"], body.get("exceptionDetails"), url
            )

        if response.is_error:
            raise ApiError(response.status_code, [response.text or ""], url=url)
        return body if body is not None else response.text


def _json_or_none(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return None


class ErrorInterceptor(Interceptor):
    """Retry once on 5xx or network failures and handle 401.

    ``on_unauthorized`` is called (and awaited when it is a coroutine
    function) after a 401 so the caller can drop its auth state and send
    the user back to login.
    """

    def __init__(
        self,
        on_unauthorized: Callable[[], Any] | None = None,
        retries: int = 1,
    ):
        self._on_unauthorized = on_unauthorized
        self._retries = retries

    async def intercept(self, request: httpx.Request, call_next: Handler) -> Any:
        attempt = 0
        while True:
            try:
                return await call_next(request)
            except httpx.TransportError as exc:
                error = ApiError.from_transport(exc)
                cause: BaseException | None = exc
            except ApiError as exc:
                error, cause = exc, None

            if attempt < self._retries and error.is_retryable:
                attempt += 1
                logger.warning(
                    "Retrying %s %s after %s", request.method, request.url, error
                )
                continue

            logger.error(
                "HTTP error (%s) for %s: %s", error.status, request.url, error
            )
            if error.status == 401:
                await self._handle_unauthorized()
            if cause is not None:
                raise error from cause
            raise error

    async def _handle_unauthorized(self) -> None:
        if self._on_unauthorized is None:
            return
        outcome = self._on_unauthorized()
        if inspect.isawaitable(outcome):
            await outcome
