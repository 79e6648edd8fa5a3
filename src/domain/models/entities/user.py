import datetime

from sqlalchemy import DateTime, Index, String, func, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from src.base.config.database import Base

EMAIL_UNIQUE_INDEX = "ix_users_email_unique"

# Null emails are excluded from the uniqueness check
_EMAIL_NOT_NULL = text("email IS NOT NULL")

UNPERSISTED_ID = 0


def _as_utc(value: datetime.datetime | None) -> datetime.datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.UTC)
    return value.astimezone(datetime.UTC)


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC datetimes on every backend.

    SQLite drops the offset on storage, so values are normalized to UTC on
    the way in and naive values read back are marked as UTC.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return _as_utc(value)

    def process_result_value(self, value, dialect):
        return _as_utc(value)


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        Index(
            EMAIL_UNIQUE_INDEX,
            "email",
            unique=True,
            sqlite_where=_EMAIL_NOT_NULL,
            postgresql_where=_EMAIL_NOT_NULL,
            mssql_where=_EMAIL_NOT_NULL,
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    external_user_id: Mapped[str | None] = mapped_column(String(256), index=True)
    email: Mapped[str | None] = mapped_column(String(256))
    name: Mapped[str | None] = mapped_column(String(256))
    tenant_id: Mapped[str | None] = mapped_column(String(256), index=True)
    created_at: Mapped[datetime.datetime] = mapped_column(
        UTCDateTime(), server_default=func.now()
    )
    updated_at: Mapped[datetime.datetime] = mapped_column(
        UTCDateTime(), server_default=func.now()
    )

    @property
    def is_persisted(self) -> bool:
        return bool(self.id)

    def __repr__(self) -> str:
        return f"User(id={self.id!r}, email={self.email!r})"
