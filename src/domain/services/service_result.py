from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class FailureKind(str, Enum):
    VALIDATION = "validation"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    UNEXPECTED = "unexpected"


@dataclass
class ServiceResult(Generic[T]):
    """Outcome of a service call. Success is exactly "no errors"."""

    result: T | None = None
    errors: list[str] = field(default_factory=list)
    failure: FailureKind | None = None

    @property
    def succeeded(self) -> bool:
        return not self.errors

    @classmethod
    def ok(cls, result: T | None = None) -> "ServiceResult[T]":
        return cls(result=result)

    @classmethod
    def fail(
        cls, error: str, kind: FailureKind = FailureKind.UNEXPECTED
    ) -> "ServiceResult[T]":
        return cls(errors=[error], failure=kind)
