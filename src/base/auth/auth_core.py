import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict

import requests
from jose import JWTError, jwt

logger = logging.getLogger(__name__)

# Tolerated clock drift between us and the identity provider
CLOCK_SKEW_SECONDS = 300


@dataclass(frozen=True)
class AuthSettings:
    tenant_id: str
    audience: str

    @property
    def issuers(self) -> list[str]:
        # v2.0 endpoint tokens and legacy v1 tokens
        return [
            f"https://login.microsoftonline.com/{self.tenant_id}/v2.0",
            f"https://sts.windows.net/{self.tenant_id}/",
        ]

    @property
    def jwks_url(self) -> str:
        return f"https://login.microsoftonline.com/{self.tenant_id}/discovery/v2.0/keys"


def get_auth_settings() -> AuthSettings:
    """Read Entra ID settings from the environment.

    AZURE_AUDIENCE wins over AZURE_CLIENT_ID when both are set.
    """
    tenant_id = os.getenv("AZURE_TENANT_ID")
    audience = os.getenv("AZURE_AUDIENCE") or os.getenv("AZURE_CLIENT_ID")
    if not tenant_id or not audience:
        raise RuntimeError(
            "AZURE_TENANT_ID and AZURE_CLIENT_ID (or AZURE_AUDIENCE) must be set"
        )
    return AuthSettings(tenant_id=tenant_id, audience=audience)


@lru_cache(maxsize=4)
def get_jwks(jwks_url: str) -> Dict[str, Any]:
    return requests.get(jwks_url, timeout=10).json()


def _find_signing_key(jwks_url: str, kid: str | None) -> Dict[str, Any] | None:
    key = next((k for k in get_jwks(jwks_url)["keys"] if k["kid"] == kid), None)
    if key is None:
        # Keys rotate; refetch once before giving up
        get_jwks.cache_clear()
        key = next((k for k in get_jwks(jwks_url)["keys"] if k["kid"] == kid), None)
    return key


def validate_jwt_token(token: str) -> Dict[str, Any]:
    """
    Validates a JWT and returns claims (raises JWTError/ExpiredSignatureError if invalid).
    """
    settings = get_auth_settings()
    logger.debug("Starting JWT token validation")

    try:
        kid = jwt.get_unverified_header(token).get("kid")
        logger.debug("Token key ID: %s", kid)

        key = _find_signing_key(settings.jwks_url, kid)
        if not key:
            logger.error("No matching signing key found for kid: %s", kid)
            raise JWTError("Invalid signing key")

        payload = jwt.decode(
            token,
            key,
            algorithms=["RS256"],
            audience=settings.audience,
            issuer=settings.issuers,
            options={"leeway": CLOCK_SKEW_SECONDS},
        )

        logger.info("JWT validated successfully")
        return payload

    except JWTError as e:
        logger.error("JWT validation failed: %s", e)
        raise
    except Exception as e:
        logger.error("Unexpected error during JWT validation: %s", e)
        raise JWTError(f"Token validation error: {e}")
