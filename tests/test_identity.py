import pytest

from src.base.models.api_response import ApiResponse, root_cause
from src.base.models.identity import Identity


class TestIdentityFromClaims:
    def test_entra_access_token_claims(self):
        identity = Identity.from_claims(
            {
                "oid": "oid-1",
                "sub": "sub-1",
                "preferred_username": "alice@test.com",
                "name": "Alice",
                "tid": "tenant-1",
                "roles": ["Admin"],
                "scp": "access_as_user user.read",
            }
        )

        assert identity.user_id == "oid-1"
        assert identity.email == "alice@test.com"
        assert identity.tenant_id == "tenant-1"
        assert identity.roles == ["Admin"]
        assert identity.scopes == ["access_as_user", "user.read"]

    def test_b2c_emails_list_and_sub_fallback(self):
        identity = Identity.from_claims({"sub": "sub-1", "emails": ["b2c@test.com"]})

        assert identity.user_id == "sub-1"
        assert identity.email == "b2c@test.com"
        assert identity.scopes == []

    def test_no_claims(self):
        with pytest.raises(ValueError):
            Identity.from_claims(None)


class TestApiResponse:
    def test_wire_shape_is_camel_case(self):
        assert ApiResponse.failure(400, "bad").to_wire() == {
            "result": None,
            "status": 400,
            "errors": ["bad"],
            "exceptionDetails": None,
        }

    def test_root_cause_follows_implicit_context(self):
        try:
            try:
                raise KeyError("inner")
            except KeyError:
                raise ValueError("outer")
        except ValueError as ex:
            assert isinstance(root_cause(ex), KeyError)
            envelope = ApiResponse.from_exception(ex)

        assert envelope.status == 500
        assert envelope.errors == ["'inner'"]
        assert "ValueError: outer" in envelope.exception_details
        assert not envelope.succeeded
