import datetime
import logging
from contextlib import asynccontextmanager

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.domain.exceptions import (
    DataAccessError,
    DuplicateEmailError,
    UserNotFoundError,
)
from src.domain.models.entities.user import EMAIL_UNIQUE_INDEX, User

logger = logging.getLogger(__name__)

USER_DELETED = "User deleted successfully"
USER_NOT_FOUND = "User not found"

_UPDATABLE_FIELDS = ("external_user_id", "email", "name", "tenant_id")


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


def _is_email_unique_violation(exc: IntegrityError) -> bool:
    # Postgres and SQL Server name the index, SQLite names the column
    message = str(exc.orig if exc.orig is not None else exc).lower()
    return EMAIL_UNIQUE_INDEX in message or "users.email" in message


def _store_message(exc: SQLAlchemyError) -> str:
    orig = getattr(exc, "orig", None)
    return str(orig if orig is not None else exc)


@asynccontextmanager
async def _store_errors(session: AsyncSession, operation: str):
    """Translate driver errors into DataAccessError, rolling back first."""
    try:
        yield
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.error("User store operation %s failed: %s", operation, exc)
        raise DataAccessError(_store_message(exc)) from exc


class UserDataContext:
    """CRUD over the users table. Raw SQLAlchemy errors never leave this class."""

    async def get_by_id(self, session: AsyncSession, user_id: int) -> User:
        """Return the user or raise UserNotFoundError."""
        async with _store_errors(session, "get_by_id"):
            user = await session.get(User, user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    async def get_by_email(self, session: AsyncSession, email: str) -> User | None:
        async with _store_errors(session, "get_by_email"):
            result = await session.execute(select(User).where(User.email == email))
            return result.scalars().first()

    async def get_by_external_user_id(
        self, session: AsyncSession, external_user_id: str
    ) -> User | None:
        async with _store_errors(session, "get_by_external_user_id"):
            result = await session.execute(
                select(User).where(User.external_user_id == external_user_id)
            )
            return result.scalars().first()

    async def list_all(self, session: AsyncSession) -> list[User]:
        async with _store_errors(session, "list_all"):
            result = await session.execute(select(User).order_by(User.id))
            return list(result.scalars().all())

    async def list_by_tenant(self, session: AsyncSession, tenant_id: str) -> list[User]:
        async with _store_errors(session, "list_by_tenant"):
            result = await session.execute(
                select(User).where(User.tenant_id == tenant_id).order_by(User.id)
            )
            return list(result.scalars().all())

    async def add(self, session: AsyncSession, user: User) -> int:
        """Insert a new user and return the store-assigned id.

        Any caller-supplied id is discarded. A clash on the unique email
        index raises DuplicateEmailError carrying the offending email.
        """
        now = _utcnow()
        user.id = None
        user.created_at = now
        user.updated_at = now

        session.add(user)
        await self._commit(session, user.email, "insert")
        logger.info("Created user id=%s", user.id)
        return user.id

    async def update(self, session: AsyncSession, user: User) -> int:
        """Write the user's fields onto its stored row.

        The row must already exist; an unknown id raises UserNotFoundError
        and nothing is inserted.
        """
        async with _store_errors(session, "update"):
            stored = await session.get(User, user.id)
        if stored is None:
            raise UserNotFoundError(user.id)

        if stored is not user:
            for field in _UPDATABLE_FIELDS:
                setattr(stored, field, getattr(user, field))
        stored.updated_at = user.updated_at = _utcnow()

        await self._commit(session, stored.email, "update")
        logger.info("Updated user id=%s", stored.id)
        return stored.id

    async def _commit(self, session: AsyncSession, email: str | None, operation: str) -> None:
        try:
            await session.commit()
        except IntegrityError as exc:
            await session.rollback()
            if _is_email_unique_violation(exc):
                logger.warning("Duplicate email rejected by store: %s", email)
                raise DuplicateEmailError(email) from exc
            logger.error("User %s violated a constraint: %s", operation, exc)
            raise DataAccessError(_store_message(exc)) from exc
        except SQLAlchemyError as exc:
            await session.rollback()
            logger.error("User %s failed: %s", operation, exc)
            raise DataAccessError(_store_message(exc)) from exc

    async def delete(self, session: AsyncSession, user_id: int) -> str:
        """Delete by id. A missing row is reported, not raised."""
        async with _store_errors(session, "delete"):
            user = await session.get(User, user_id)
            if user is None:
                logger.info("Delete requested for missing user id=%s", user_id)
                return USER_NOT_FOUND
            await session.delete(user)
            await session.commit()
        logger.info("Deleted user id=%s", user_id)
        return USER_DELETED
