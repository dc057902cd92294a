"""
Operation results - Explicit success/error values for core operations.

Every AccountLifecycle and SessionManager operation returns either Ok(value)
or Err(kind, detail). The transport adapter maps ErrorKind to a status code.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar, Union

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Failure kinds a core operation can report."""

    VALIDATION_ERROR = "validation_error"
    CONFLICT = "conflict"
    INVALID_CREDENTIALS = "invalid_credentials"
    INVALID_OR_EXPIRED_TOKEN = "invalid_or_expired_token"
    ALREADY_VERIFIED = "already_verified"
    SAME_PASSWORD = "same_password"
    UNAUTHORIZED = "unauthorized"
    DELIVERY_ERROR = "delivery_error"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome carrying the operation's payload."""

    value: T


@dataclass(frozen=True)
class Err:
    """Failed outcome carrying exactly one error kind."""

    kind: ErrorKind
    detail: str = ""


Result = Union[Ok[T], Err]
