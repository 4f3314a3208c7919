import enum
from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")


class ErrorCode(enum.IntEnum):
    """Failure codes returned by registry operations. Values are HTTP statuses."""

    BAD_REQUEST = 400
    UNAUTHORIZED = 403
    NOT_FOUND = 404
    CONFLICT = 409
    FULL = 507


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    code: ErrorCode
    detail: str = ""


Result = Union[Ok[T], Err]
