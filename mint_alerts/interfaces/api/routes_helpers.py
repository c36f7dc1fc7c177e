"""Helper utilities shared across API route handlers."""

from fastapi import HTTPException, status

from mint_alerts.domain.errors import (
    BudgetNotFoundError,
    InvalidStateError,
    NotificationNotFoundError,
    ValidationError,
)

_STATUS_BY_ERROR: tuple[tuple[type[Exception], int], ...] = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotificationNotFoundError, status.HTTP_404_NOT_FOUND),
    (BudgetNotFoundError, status.HTTP_404_NOT_FOUND),
    (InvalidStateError, status.HTTP_409_CONFLICT),
)

DOMAIN_ERRORS = tuple(error for error, _ in _STATUS_BY_ERROR)


def to_http_exception(exc: Exception) -> HTTPException:
    """Return the ``HTTPException`` that represents a domain error."""

    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Unexpected error"
    )


__all__ = ["DOMAIN_ERRORS", "to_http_exception"]
