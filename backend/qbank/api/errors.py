"""Maps domain Result failures onto HTTP errors."""
from __future__ import annotations
from typing import TypeVar

from fastapi import HTTPException, status

from qbank.domain.common.result import ErrorKind, Result

T = TypeVar("T")

_STATUS_BY_KIND = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
}


def unwrap(result: Result[T]) -> T:
    """Return the value of a successful result or raise the matching HTTPException."""
    if result.is_success:
        return result.value
    code = _STATUS_BY_KIND.get(result.kind, status.HTTP_400_BAD_REQUEST)
    raise HTTPException(status_code=code, detail=result.error)
