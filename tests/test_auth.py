import time
from unittest.mock import MagicMock

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from jose import ExpiredSignatureError, JWTError, jwk, jwt

from src.base.auth import auth_core
from src.base.middleware import jwt_middleware
from src.base.middleware.global_exception_handler_middleware import (
    register_exception_handlers,
)
from src.base.middleware.jwt_middleware import JWTMiddleware
from src.domain.routes.user_routes import router as user_router
from src.domain.services.user_service import UserService

TENANT = "tenant-1"
AUDIENCE = "api-client-id"
KID = "test-key"


@pytest.fixture
def auth_env(monkeypatch):
    monkeypatch.setenv("AZURE_TENANT_ID", TENANT)
    monkeypatch.setenv("AZURE_CLIENT_ID", AUDIENCE)
    monkeypatch.delenv("AZURE_AUDIENCE", raising=False)


@pytest.fixture(scope="module")
def rsa_keys():
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = private_key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode()
    public_pem = private_key.public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()
    public_jwk = jwk.construct(public_pem, "RS256").to_dict()
    public_jwk["kid"] = KID
    return private_pem, public_jwk


@pytest.fixture
def jwks(monkeypatch, rsa_keys):
    mock = MagicMock(return_value={"keys": [rsa_keys[1]]})
    monkeypatch.setattr(auth_core, "get_jwks", mock)
    return mock


def _token(private_pem, kid=KID, **overrides) -> str:
    now = int(time.time())
    claims = {
        "iss": f"https://login.microsoftonline.com/{TENANT}/v2.0",
        "aud": AUDIENCE,
        "iat": now,
        "nbf": now,
        "exp": now + 3600,
        "oid": "oid-001",
        "name": "Alice",
    }
    claims.update(overrides)
    return jwt.encode(claims, private_pem, algorithm="RS256", headers={"kid": kid})


class TestAuthSettings:
    def test_missing_settings_raise(self, monkeypatch):
        monkeypatch.delenv("AZURE_TENANT_ID", raising=False)
        monkeypatch.delenv("AZURE_CLIENT_ID", raising=False)
        monkeypatch.delenv("AZURE_AUDIENCE", raising=False)
        with pytest.raises(RuntimeError):
            auth_core.get_auth_settings()

    def test_audience_override(self, auth_env, monkeypatch):
        monkeypatch.setenv("AZURE_AUDIENCE", "api://custom")
        settings = auth_core.get_auth_settings()
        assert settings.audience == "api://custom"
        assert f"https://login.microsoftonline.com/{TENANT}/v2.0" in settings.issuers


class TestValidateJwtToken:
    def test_valid_token_returns_claims(self, auth_env, jwks, rsa_keys):
        claims = auth_core.validate_jwt_token(_token(rsa_keys[0]))
        assert claims["oid"] == "oid-001"

    def test_v1_issuer_accepted(self, auth_env, jwks, rsa_keys):
        token = _token(rsa_keys[0], iss=f"https://sts.windows.net/{TENANT}/")
        assert auth_core.validate_jwt_token(token)["name"] == "Alice"

    def test_expired_token(self, auth_env, jwks, rsa_keys):
        past = int(time.time()) - 3600
        with pytest.raises(ExpiredSignatureError):
            auth_core.validate_jwt_token(_token(rsa_keys[0], iat=past - 60, nbf=past - 60, exp=past))

    def test_small_clock_skew_tolerated(self, auth_env, jwks, rsa_keys):
        just_expired = int(time.time()) - 60
        token = _token(rsa_keys[0], iat=just_expired - 600, nbf=just_expired - 600, exp=just_expired)
        assert auth_core.validate_jwt_token(token)["oid"] == "oid-001"

    def test_wrong_audience(self, auth_env, jwks, rsa_keys):
        with pytest.raises(JWTError):
            auth_core.validate_jwt_token(_token(rsa_keys[0], aud="someone-else"))

    def test_unknown_kid_refetches_then_fails(self, auth_env, jwks, rsa_keys):
        with pytest.raises(JWTError, match="Invalid signing key"):
            auth_core.validate_jwt_token(_token(rsa_keys[0], kid="rotated"))
        assert jwks.call_count == 2
        jwks.cache_clear.assert_called_once()


@pytest.fixture
async def jwt_client(db_session_factory):
    app = FastAPI()
    app.state.db_session_factory = db_session_factory
    app.state.user_service = UserService()
    app.add_middleware(JWTMiddleware)
    register_exception_handlers(app)
    app.include_router(user_router, prefix="/api")
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c


class TestJWTMiddleware:
    async def test_missing_header_is_401_envelope(self, jwt_client):
        resp = await jwt_client.get("/api/users/me")

        assert resp.status_code == 401
        assert resp.json()["errors"] == ["Missing or invalid Authorization header"]

    async def test_expired_token(self, jwt_client, monkeypatch):
        monkeypatch.setattr(
            jwt_middleware,
            "validate_jwt_token",
            MagicMock(side_effect=ExpiredSignatureError("expired")),
        )
        resp = await jwt_client.get("/api/users/me", headers={"Authorization": "Bearer t"})

        assert resp.status_code == 401
        assert resp.json()["errors"] == ["Token has expired"]

    async def test_invalid_token(self, jwt_client, monkeypatch):
        monkeypatch.setattr(
            jwt_middleware, "validate_jwt_token", MagicMock(side_effect=JWTError("bad sig"))
        )
        resp = await jwt_client.get("/api/users/me", headers={"Authorization": "Bearer t"})

        assert resp.status_code == 401
        assert resp.json()["errors"] == ["Invalid token: bad sig"]

    async def test_valid_token_sets_claims(self, jwt_client, monkeypatch):
        monkeypatch.setattr(
            jwt_middleware,
            "validate_jwt_token",
            MagicMock(return_value={"oid": "oid-001", "email": "a@test.com"}),
        )
        resp = await jwt_client.get("/api/users/me", headers={"Authorization": "Bearer t"})

        assert resp.status_code == 200
        assert resp.json()["result"]["email"] == "a@test.com"

    async def test_login_is_public(self, jwt_client):
        resp = await jwt_client.post("/api/users/login", json={"email": ""})

        assert resp.status_code == 400
        assert resp.json()["errors"] == ["Email is required"]
