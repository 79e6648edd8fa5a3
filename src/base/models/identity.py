"""
Caller identity module.

This module defines the Identity value that represents the authenticated
caller of a request, populated once from validated JWT claims by the
endpoint layer and passed explicitly into the services that need it.
"""

from typing import Any

from pydantic import BaseModel, Field

# Claim names tried in order for each identity attribute
USER_ID_CLAIMS = ("oid", "sub")
EMAIL_CLAIMS = ("emails", "email", "preferred_username", "upn")
NAME_CLAIMS = ("name",)
TENANT_CLAIMS = ("tid",)


def _first_claim(claims: dict[str, Any], names: tuple[str, ...]) -> str | None:
    for name in names:
        value = claims.get(name)
        # B2C tokens carry "emails" as a list
        if isinstance(value, list):
            value = value[0] if value else None
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


class Identity(BaseModel):
    """
    Represents the authenticated caller.

    Attributes:
        user_id: Identity provider subject ('oid', falling back to 'sub')
        email: Email ('emails', 'email', 'preferred_username' or 'upn')
        name: Display name ('name')
        tenant_id: Directory tenant ('tid')
        roles: App roles ('roles')
        scopes: Delegated scopes ('scp', space separated)
    """

    user_id: str | None = Field(None, description="Identity provider subject (Entra object ID)")
    email: str | None = Field(None, description="Email address or preferred username")
    name: str | None = Field(None, description="Display name")
    tenant_id: str | None = Field(None, description="Directory tenant ID")
    roles: list[str] = Field(default_factory=list, description="App roles granted to the caller")
    scopes: list[str] = Field(default_factory=list, description="Delegated scopes granted to the caller")

    @classmethod
    def from_claims(cls, claims: dict[str, Any]) -> "Identity":
        if claims is None:
            raise ValueError("No claims available for the current request")

        scp = claims.get("scp")
        return cls(
            user_id=_first_claim(claims, USER_ID_CLAIMS),
            email=_first_claim(claims, EMAIL_CLAIMS),
            name=_first_claim(claims, NAME_CLAIMS),
            tenant_id=_first_claim(claims, TENANT_CLAIMS),
            roles=list(claims.get("roles") or []),
            scopes=scp.split() if isinstance(scp, str) else [],
        )

    model_config = {
        "json_schema_extra": {
            "example": {
                "user_id": "12345678-1234-1234-1234-123456789012",
                "email": "user@example.com",
                "name": "John Doe",
                "tenant_id": "87654321-4321-4321-4321-210987654321",
                "roles": [],
                "scopes": ["access_as_user"],
            }
        }
    }
