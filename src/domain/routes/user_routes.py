import logging
from collections.abc import Callable
from http import HTTPStatus
from typing import Any

from fastapi import APIRouter, Body, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.base.core.dependencies import get_db_session, get_user_service
from src.base.models.api_response import ApiResponse, envelope_response
from src.base.models.identity import Identity
from src.domain.models.user_schemas import LoginRequest, UserResponse
from src.domain.services.service_result import FailureKind, ServiceResult
from src.domain.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["Users"])
logger = logging.getLogger(__name__)

USER_DATA_REQUIRED = "User data is required"
EMAIL_REQUIRED = "Email is required"

FAILURE_STATUS = {
    FailureKind.VALIDATION: HTTPStatus.BAD_REQUEST,
    FailureKind.CONFLICT: HTTPStatus.CONFLICT,
    FailureKind.NOT_FOUND: HTTPStatus.NOT_FOUND,
    FailureKind.UNEXPECTED: HTTPStatus.INTERNAL_SERVER_ERROR,
}


def _status_for(outcome: ServiceResult) -> HTTPStatus:
    if outcome.succeeded:
        return HTTPStatus.OK
    return FAILURE_STATUS.get(outcome.failure, HTTPStatus.INTERNAL_SERVER_ERROR)


def _to_envelope(
    outcome: ServiceResult, convert: Callable[[Any], Any] = UserResponse.model_validate
) -> ApiResponse:
    """Map a service outcome to its envelope; the status is decided here only."""
    result = None
    if outcome.succeeded and outcome.result is not None:
        result = convert(outcome.result)
    return ApiResponse(
        result=result, status=_status_for(outcome), errors=list(outcome.errors)
    )


def _user_list(users) -> list[UserResponse]:
    return [UserResponse.model_validate(u) for u in users]


@router.get("/me", response_model=ApiResponse[UserResponse])
async def get_me(
    request: Request,
    service: UserService = Depends(get_user_service),
):
    """Return the caller as derived from the token claims (nothing is persisted)."""
    try:
        identity = Identity.from_claims(getattr(request.state, "claims", None))
        envelope = _to_envelope(service.get_current_user(identity))
    except Exception as ex:
        logger.exception("Resolving the current user failed")
        envelope = ApiResponse.from_exception(ex)
    return envelope_response(envelope)


@router.post("/login", response_model=ApiResponse[UserResponse])
async def login(
    body: LoginRequest | None = Body(None),
    session: AsyncSession = Depends(get_db_session),
    service: UserService = Depends(get_user_service),
):
    """Create the user on first login, refresh its timestamp afterwards."""
    try:
        if body is None:
            return envelope_response(
                ApiResponse.failure(HTTPStatus.BAD_REQUEST, USER_DATA_REQUIRED)
            )
        if not body.email:
            return envelope_response(
                ApiResponse.failure(HTTPStatus.BAD_REQUEST, EMAIL_REQUIRED)
            )

        outcome = await service.login(session, body.to_candidate())
        envelope = _to_envelope(outcome)
    except Exception as ex:
        logger.exception("Login request failed")
        envelope = ApiResponse.from_exception(ex)
    return envelope_response(envelope)


@router.get("", response_model=ApiResponse[list[UserResponse]])
async def list_users(
    tenant_id: str | None = None,
    session: AsyncSession = Depends(get_db_session),
    service: UserService = Depends(get_user_service),
):
    """List users, optionally restricted to one tenant."""
    outcome = await service.list_users(session, tenant_id=tenant_id)
    return envelope_response(_to_envelope(outcome, _user_list))


@router.get("/{user_id}", response_model=ApiResponse[UserResponse])
async def get_user(
    user_id: int,
    session: AsyncSession = Depends(get_db_session),
    service: UserService = Depends(get_user_service),
):
    outcome = await service.get_by_id(session, user_id)
    return envelope_response(_to_envelope(outcome))


@router.delete("/{user_id}", response_model=ApiResponse[str])
async def delete_user(
    user_id: int,
    session: AsyncSession = Depends(get_db_session),
    service: UserService = Depends(get_user_service),
):
    """Delete a user. Deleting a missing user is not an error."""
    outcome = await service.delete(session, user_id)
    return envelope_response(_to_envelope(outcome, str))
