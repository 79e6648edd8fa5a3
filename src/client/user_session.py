import logging
import time
from collections.abc import Callable
from typing import Any

from src.client.api_client import ApiClient
from src.client.errors import ApiError
from src.client.token_provider import MsalTokenProvider

logger = logging.getLogger(__name__)

LOGIN_ENDPOINT = "users/login"
SYNC_COOLDOWN_SECONDS = 5.0


def login_payload_from_account(account: dict[str, Any]) -> dict[str, Any]:
    """Build the login body from an MSAL account entry."""
    claims = account.get("id_token_claims") or {}
    username = account.get("username") or ""
    return {
        "externalUserId": account.get("local_account_id")
        or account.get("home_account_id")
        or "",
        "email": username or claims.get("email") or "",
        "name": claims.get("name") or username or "Unknown User",
        "tenantId": account.get("realm") or claims.get("tid") or "",
    }


class UserSession:
    """Keeps the signed-in user in sync with the backend.

    Syncs within the cooldown window, or while another sync is running,
    reuse the last known user. This only saves network calls; two callers
    racing may both sync.
    """

    def __init__(
        self,
        api: ApiClient,
        token_provider: MsalTokenProvider,
        cooldown_seconds: float = SYNC_COOLDOWN_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._api = api
        self._tokens = token_provider
        self._cooldown = cooldown_seconds
        self._clock = clock
        self._sync_in_progress = False
        self._last_sync: float | None = None
        self.current_user: dict[str, Any] | None = None

    def is_authenticated(self) -> bool:
        return self._tokens.active_account() is not None

    def _recently_synced(self, now: float) -> bool:
        return (
            self.current_user is not None
            and self._last_sync is not None
            and now - self._last_sync < self._cooldown
        )

    async def sync(self, force: bool = False) -> dict[str, Any] | None:
        """Post the active account to the login endpoint and keep the result."""
        if self._sync_in_progress and not force:
            return self.current_user

        now = self._clock()
        if not force and self._recently_synced(now):
            return self.current_user

        account = self._tokens.active_account()
        if account is None:
            logger.warning("No active account to sync")
            return None

        self._sync_in_progress = True
        try:
            user = await self._api.post(LOGIN_ENDPOINT, login_payload_from_account(account))
        finally:
            self._sync_in_progress = False

        self._last_sync = now
        self.current_user = user
        logger.info("User synced with backend")
        return user

    async def get_current_user(self) -> dict[str, Any] | None:
        """Synced user, or the locally known account when the backend fails."""
        account = self._tokens.active_account()
        if account is None:
            return None
        try:
            return await self.sync()
        except ApiError as e:
            logger.warning("User sync failed, using local account data: %s", e)
            self.current_user = {"id": 0, **login_payload_from_account(account)}
            return self.current_user

    def clear_sync_cache(self) -> None:
        self._sync_in_progress = False
        self._last_sync = None

    def logout(self) -> None:
        self.current_user = None
        self.clear_sync_cache()
        self._tokens.clear()
