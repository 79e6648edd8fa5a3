from http import HTTPStatus

import httpx

NETWORK_ERROR_STATUS = 0

NETWORK_MESSAGE = "Network connection problem. Please check your internet connection."
DEFAULT_SERVER_MESSAGE = "Server error. Please try again later."
DEFAULT_CLIENT_MESSAGE = "An error occurred. Please try again."

USER_MESSAGES = {
    400: "Invalid request. Please check your input and try again.",
    401: "Your session has expired. Please log in again.",
    403: "You do not have permission to perform this action.",
    404: "The requested resource was not found.",
    409: "There was a conflict with your request. Please refresh and try again.",
    422: "Please check your input and correct any errors.",
    429: "Too many requests. Please wait a moment and try again.",
    500: DEFAULT_SERVER_MESSAGE,
    502: "Service temporarily unavailable. Please try again later.",
    503: "Service is temporarily down. Please try again later.",
    504: "Request timed out. Please try again.",
}


def user_message_for(status: int) -> str:
    """Map a status (0 for network failures) to a message fit for end users."""
    if status == NETWORK_ERROR_STATUS:
        return NETWORK_MESSAGE
    if status in USER_MESSAGES:
        return USER_MESSAGES[status]
    return DEFAULT_SERVER_MESSAGE if status >= 500 else DEFAULT_CLIENT_MESSAGE


class ApiError(Exception):
    """A failed API call, from either an error envelope or the transport."""

    def __init__(
        self,
        status: int,
        errors: list[str] | None = None,
        exception_details: str | None = None,
        url: str | None = None,
    ):
        self.status = status
        self.errors = list(errors or [])
        self.exception_details = exception_details
        self.url = url
        self.user_message = user_message_for(status)
        super().__init__(self.errors[0] if self.errors else self._status_text())

    def _status_text(self) -> str:
        if self.status == NETWORK_ERROR_STATUS:
            return "Network error"
        try:
            return f"HTTP {self.status} {HTTPStatus(self.status).phrase}"
        except ValueError:
            return f"HTTP {self.status}"

    @property
    def is_retryable(self) -> bool:
        return self.status == NETWORK_ERROR_STATUS or self.status >= 500

    @classmethod
    def from_transport(cls, exc: httpx.TransportError) -> "ApiError":
        url = None
        try:
            url = str(exc.request.url)
        except RuntimeError:
            pass
        return cls(NETWORK_ERROR_STATUS, [f"Network Error: {exc}"], url=url)
