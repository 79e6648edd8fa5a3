"""
Response envelope shared by every endpoint.

On the wire it is ``{result, status, errors, exceptionDetails}``; clients may
treat an empty ``errors`` list as the only success predicate.
"""

import traceback
from http import HTTPStatus
from typing import Generic, TypeVar

from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


def root_cause(ex: BaseException) -> BaseException:
    """Return the innermost exception of a chained exception."""
    seen = {id(ex)}
    while True:
        inner = ex.__cause__
        if inner is None and not ex.__suppress_context__:
            inner = ex.__context__
        if inner is None or id(inner) in seen:
            return ex
        seen.add(id(inner))
        ex = inner


def root_cause_message(ex: BaseException) -> str:
    cause = root_cause(ex)
    return str(cause) or cause.__class__.__name__


class ApiResponse(BaseModel, Generic[T]):
    """Uniform success/error wrapper returned by every endpoint."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    result: T | None = None
    status: int = int(HTTPStatus.OK)
    errors: list[str] = Field(default_factory=list)
    exception_details: str | None = None

    @property
    def succeeded(self) -> bool:
        return not self.errors

    @classmethod
    def success(cls, result: T | None = None) -> "ApiResponse[T]":
        return cls(result=result, status=int(HTTPStatus.OK))

    @classmethod
    def failure(cls, status: int, *errors: str) -> "ApiResponse[T]":
        return cls(status=int(status), errors=list(errors))

    @classmethod
    def from_exception(cls, ex: BaseException) -> "ApiResponse[T]":
        """500 envelope carrying the root-cause message and the full traceback."""
        return cls(
            status=int(HTTPStatus.INTERNAL_SERVER_ERROR),
            errors=[root_cause_message(ex)],
            exception_details="".join(traceback.format_exception(ex)),
        )

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


def envelope_response(envelope: ApiResponse) -> JSONResponse:
    """Render an envelope with an HTTP status equal to ``envelope.status``."""
    return JSONResponse(status_code=envelope.status, content=envelope.to_wire())
