import datetime

from fastapi import APIRouter, Request

from src.base.models.api_response import ApiResponse, envelope_response
from src.base.models.identity import Identity

router = APIRouter(prefix="/auth-test", tags=["Test Auth"])

TOKEN_PREVIEW_LENGTH = 20


def _now() -> str:
    return datetime.datetime.now(datetime.UTC).isoformat()


@router.get("/anonymous")
async def anonymous_endpoint():
    result = {
        "message": "This endpoint works without authentication",
        "timestamp": _now(),
    }
    return envelope_response(ApiResponse.success(result))


@router.get("/protected")
async def protected_endpoint(request: Request):
    claims = request.state.claims
    identity = Identity.from_claims(claims)
    result = {
        "message": "Authentication successful!",
        "user": identity.name or "Unknown",
        "claims": [{"type": k, "value": v} for k, v in claims.items()],
        "timestamp": _now(),
    }
    return envelope_response(ApiResponse.success(result))


@router.get("/token-info")
async def token_info(request: Request):
    """Describe the presented token without echoing it in full."""
    header = request.headers.get("authorization", "")
    token = header.split(" ")[-1] if header else ""
    identity = Identity.from_claims(request.state.claims)
    result = {
        "hasToken": bool(token),
        "tokenLength": len(token),
        "tokenStart": token[:TOKEN_PREVIEW_LENGTH] + "...",
        "userId": identity.user_id,
        "email": identity.email,
        "name": identity.name,
        "tenantId": identity.tenant_id,
        "allClaims": request.state.claims,
    }
    return envelope_response(ApiResponse.success(result))
