import asyncio
import logging
from typing import Protocol

import msal

logger = logging.getLogger(__name__)


class TokenProvider(Protocol):
    async def acquire_token(self) -> str | None: ...

    def clear(self) -> None: ...


class MsalTokenProvider:
    """Silent token acquisition for the account cached in an MSAL client app.

    Returns None instead of raising when no account is signed in or the
    token cannot be refreshed silently.
    """

    def __init__(self, app: msal.ClientApplication, scopes: list[str]):
        self._app = app
        self._scopes = scopes

    @classmethod
    def for_public_client(
        cls, client_id: str, tenant_id: str, scopes: list[str]
    ) -> "MsalTokenProvider":
        app = msal.PublicClientApplication(
            client_id, authority=f"https://login.microsoftonline.com/{tenant_id}"
        )
        return cls(app, scopes)

    def active_account(self) -> dict | None:
        accounts = self._app.get_accounts()
        return accounts[0] if accounts else None

    async def acquire_token(self) -> str | None:
        account = self.active_account()
        if account is None:
            logger.warning("No active account; sending request without a token")
            return None

        result = await asyncio.to_thread(
            self._app.acquire_token_silent, self._scopes, account=account
        )
        if not result or "access_token" not in result:
            logger.error(
                "Silent token acquisition failed: %s",
                (result or {}).get("error_description", "no cached token"),
            )
            return None
        return result["access_token"]

    def clear(self) -> None:
        """Forget every cached account."""
        for account in self._app.get_accounts():
            self._app.remove_account(account)
        logger.info("Cleared cached MSAL accounts")
