"""Result<T> pattern — domain functions return this instead of raising exceptions for normal flow."""
from __future__ import annotations
from enum import Enum
from typing import TypeVar, Generic, Optional

T = TypeVar("T")


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    VALIDATION = "validation"
    CONFLICT = "conflict"


class Result(Generic[T]):
    def __init__(
        self,
        is_success: bool,
        value: Optional[T] = None,
        error: Optional[str] = None,
        kind: Optional[ErrorKind] = None,
    ):
        self.is_success = is_success
        self.value = value
        self.error = error
        self.kind = kind

    @classmethod
    def ok(cls, value: T) -> "Result[T]":
        return cls(is_success=True, value=value)

    @classmethod
    def fail(cls, error: str, kind: ErrorKind = ErrorKind.VALIDATION) -> "Result[T]":
        return cls(is_success=False, error=error, kind=kind)

    @classmethod
    def not_found(cls, error: str) -> "Result[T]":
        return cls.fail(error, ErrorKind.NOT_FOUND)

    @classmethod
    def forbidden(cls, error: str) -> "Result[T]":
        return cls.fail(error, ErrorKind.FORBIDDEN)

    @classmethod
    def conflict(cls, error: str) -> "Result[T]":
        return cls.fail(error, ErrorKind.CONFLICT)

    @classmethod
    def propagate(cls, other: "Result") -> "Result[T]":
        """Re-wrap a failed result, keeping its message and kind."""
        return cls.fail(other.error, other.kind or ErrorKind.VALIDATION)

    def __repr__(self) -> str:
        if self.is_success:
            return f"Result.ok({self.value!r})"
        return f"Result.fail({self.error!r}, {self.kind})"
