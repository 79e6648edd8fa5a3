import functools
import logging
import os
from typing import Any

import httpx

from src.client.interceptors import (
    ApiResponseInterceptor,
    AuthInterceptor,
    ErrorInterceptor,
    Handler,
    Interceptor,
)
from src.client.token_provider import TokenProvider

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0


def get_api_base_url() -> str:
    return os.getenv("AUTH_API_BASE_URL", "http://localhost:5000/api")


class ApiClient:
    """HTTP client that runs every call through an ordered interceptor chain.

    The first interceptor in the list is the outermost one.
    """

    def __init__(
        self,
        base_url: str | None = None,
        interceptors: list[Interceptor] | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._http = http_client or httpx.AsyncClient(
            base_url=base_url or get_api_base_url(), timeout=DEFAULT_TIMEOUT_SECONDS
        )
        self._interceptors = list(interceptors or [])

    @classmethod
    def with_default_pipeline(
        cls,
        token_provider: TokenProvider,
        on_unauthorized=None,
        base_url: str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> "ApiClient":
        """Error handling, then auth, then envelope unwrapping."""
        return cls(
            base_url=base_url,
            interceptors=[
                ErrorInterceptor(on_unauthorized=on_unauthorized),
                AuthInterceptor(token_provider),
                ApiResponseInterceptor(),
            ],
            http_client=http_client,
        )

    async def _send(self, request: httpx.Request) -> httpx.Response:
        return await self._http.send(request)

    def _chain(self) -> Handler:
        handler: Handler = self._send
        for interceptor in reversed(self._interceptors):
            handler = functools.partial(interceptor.intercept, call_next=handler)
        return handler

    async def request(
        self,
        method: str,
        endpoint: str,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        request = self._http.build_request(method, endpoint, json=json, headers=headers)
        logger.debug("%s %s", method, request.url)
        return await self._chain()(request)

    async def get(self, endpoint: str, headers: dict[str, str] | None = None) -> Any:
        return await self.request("GET", endpoint, headers=headers)

    async def post(self, endpoint: str, data: Any, headers: dict[str, str] | None = None) -> Any:
        return await self.request("POST", endpoint, json=data, headers=headers)

    async def put(self, endpoint: str, data: Any, headers: dict[str, str] | None = None) -> Any:
        return await self.request("PUT", endpoint, json=data, headers=headers)

    async def patch(self, endpoint: str, data: Any, headers: dict[str, str] | None = None) -> Any:
        return await self.request("PATCH", endpoint, json=data, headers=headers)

    async def delete(self, endpoint: str, headers: dict[str, str] | None = None) -> Any:
        return await self.request("DELETE", endpoint, headers=headers)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
