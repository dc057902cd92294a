"""
Error mapping - Domain ErrorKind to HTTP status.

Routes call raise_for_error() with the Err returned by a domain operation.
"""

from typing import NoReturn

from fastapi import HTTPException, status

from gatekeep.domain.results import Err, ErrorKind

STATUS_BY_KIND = {
    ErrorKind.VALIDATION_ERROR: 422,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.INVALID_CREDENTIALS: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.INVALID_OR_EXPIRED_TOKEN: status.HTTP_400_BAD_REQUEST,
    ErrorKind.ALREADY_VERIFIED: status.HTTP_400_BAD_REQUEST,
    ErrorKind.SAME_PASSWORD: status.HTTP_400_BAD_REQUEST,
    ErrorKind.DELIVERY_ERROR: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
}


def raise_for_error(error: Err) -> NoReturn:
    """Raise the HTTPException matching a domain error."""
    headers = None
    if error.kind is ErrorKind.UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}
    raise HTTPException(
        status_code=STATUS_BY_KIND[error.kind],
        detail=error.detail or error.kind.value,
        headers=headers,
    )
