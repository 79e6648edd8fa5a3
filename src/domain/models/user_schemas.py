import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from src.domain.models.entities.user import UNPERSISTED_ID, User

_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LoginRequest(BaseModel):
    """Login body. Every field is optional so the handler's guards decide."""

    model_config = _CAMEL

    external_user_id: str | None = Field(None, max_length=256)
    email: str | None = Field(None, max_length=256)
    name: str | None = Field(None, max_length=256)
    tenant_id: str | None = Field(None, max_length=256)

    def to_candidate(self) -> User:
        return User(
            external_user_id=self.external_user_id,
            email=self.email,
            name=self.name,
            tenant_id=self.tenant_id,
        )


class UserResponse(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )

    id: int = UNPERSISTED_ID
    external_user_id: str | None = None
    email: str | None = None
    name: str | None = None
    tenant_id: str | None = None
    created_at: datetime.datetime | None = None
    updated_at: datetime.datetime | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _unset_id_is_unpersisted(cls, value):
        return UNPERSISTED_ID if value is None else value
