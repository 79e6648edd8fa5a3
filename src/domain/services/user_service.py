import datetime
import logging
from typing import Awaitable, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from src.base.models.identity import Identity
from src.domain.data.user_data_context import UserDataContext
from src.domain.exceptions import DuplicateEmailError, UserNotFoundError
from src.domain.models.entities.user import UNPERSISTED_ID, User
from src.domain.services.service_result import FailureKind, ServiceResult

logger = logging.getLogger(__name__)

T = TypeVar("T")

EMAIL_REQUIRED = "Email is required for login."
DUPLICATE_EMAIL = "A user with this email already exists. Please try again."


class UserService:
    """User operations. Every public method returns a ServiceResult and never raises."""

    def __init__(self, data_context: UserDataContext | None = None):
        self._data = data_context or UserDataContext()

    async def login(self, session: AsyncSession, candidate: User | None) -> ServiceResult[User]:
        """Find the user by email and refresh it, or create it.

        Only ``updated_at`` changes on an existing user; the candidate's
        other fields are used for new users only.
        """
        if candidate is None or not (candidate.email or "").strip():
            return ServiceResult.fail(EMAIL_REQUIRED, FailureKind.VALIDATION)

        try:
            existing = await self._data.get_by_email(session, candidate.email)
            if existing is not None:
                existing.updated_at = datetime.datetime.now(datetime.UTC)
                await self._data.update(session, existing)
                logger.info("Login refreshed user id=%s", existing.id)
                return ServiceResult.ok(existing)

            new_user = User(
                id=UNPERSISTED_ID,
                external_user_id=candidate.external_user_id,
                email=candidate.email,
                name=candidate.name,
                tenant_id=candidate.tenant_id,
            )
            await self._data.add(session, new_user)
            logger.info("Login created user id=%s", new_user.id)
            return ServiceResult.ok(new_user)

        except DuplicateEmailError:
            # Another login created the same email between lookup and insert
            logger.warning("Concurrent login created email %s first", candidate.email)
            return ServiceResult.fail(DUPLICATE_EMAIL, FailureKind.CONFLICT)
        except Exception as ex:
            logger.exception("Login failed for email %s", candidate.email)
            return ServiceResult.fail(str(ex))

    def get_current_user(self, identity: Identity) -> ServiceResult[User]:
        """Materialize a transient (unsaved) user from the caller's identity."""
        return ServiceResult.ok(
            User(
                id=UNPERSISTED_ID,
                external_user_id=identity.user_id,
                email=identity.email,
                name=identity.name,
                tenant_id=identity.tenant_id,
            )
        )

    async def get_by_id(self, session: AsyncSession, user_id: int) -> ServiceResult[User]:
        return await self._run("get_by_id", self._data.get_by_id(session, user_id))

    async def get_by_email(self, session: AsyncSession, email: str) -> ServiceResult[User]:
        return await self._run("get_by_email", self._data.get_by_email(session, email))

    async def get_by_external_user_id(
        self, session: AsyncSession, external_user_id: str
    ) -> ServiceResult[User]:
        return await self._run(
            "get_by_external_user_id",
            self._data.get_by_external_user_id(session, external_user_id),
        )

    async def list_users(
        self, session: AsyncSession, tenant_id: str | None = None
    ) -> ServiceResult[list[User]]:
        if tenant_id:
            return await self._run(
                "list_by_tenant", self._data.list_by_tenant(session, tenant_id)
            )
        return await self._run("list_all", self._data.list_all(session))

    async def save(self, session: AsyncSession, user: User) -> ServiceResult[int]:
        """Add when the user is unpersisted, update otherwise; result is the id."""
        if user.is_persisted:
            return await self._run("update", self._data.update(session, user))
        return await self._run("add", self._data.add(session, user))

    async def delete(self, session: AsyncSession, user_id: int) -> ServiceResult[str]:
        return await self._run("delete", self._data.delete(session, user_id))

    async def _run(self, operation: str, call: Awaitable[T]) -> ServiceResult[T]:
        try:
            return ServiceResult.ok(await call)
        except UserNotFoundError as ex:
            return ServiceResult.fail(str(ex), FailureKind.NOT_FOUND)
        except DuplicateEmailError as ex:
            return ServiceResult.fail(str(ex), FailureKind.CONFLICT)
        except Exception as ex:
            logger.exception("User operation %s failed", operation)
            return ServiceResult.fail(str(ex))
