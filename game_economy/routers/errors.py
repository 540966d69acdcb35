from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError

from game_economy.exceptions import (
    EconomyError,
    EmptyInputError,
    InsufficientFundsError,
    InsufficientResourceError,
    InvalidStateError,
    NegativeBalanceError,
    NotFoundError,
    PersistenceError,
)

# First match wins, so subclasses come before their category.
_STATUS_BY_ERROR = (
    (InsufficientFundsError,    status.HTTP_402_PAYMENT_REQUIRED),
    (NotFoundError,             status.HTTP_404_NOT_FOUND),
    (InsufficientResourceError, status.HTTP_409_CONFLICT),
    (NegativeBalanceError,      status.HTTP_500_INTERNAL_SERVER_ERROR),
    (InvalidStateError,         status.HTTP_409_CONFLICT),
    (EmptyInputError,           status.HTTP_422_UNPROCESSABLE_ENTITY),
    (PersistenceError,          status.HTTP_503_SERVICE_UNAVAILABLE),
)


def handle_service_errors(exc: Exception) -> HTTPException:
    if isinstance(exc, EconomyError):
        for exc_cls, http_code in _STATUS_BY_ERROR:
            if isinstance(exc, exc_cls):
                return HTTPException(status_code=http_code, detail={"code": exc.code, "message": str(exc)})
    if isinstance(exc, SQLAlchemyError):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"code": PersistenceError.code, "message": str(exc)},
        )
    return HTTPException(status_code=500, detail={"code": "INTERNAL_ERROR", "message": str(exc)})
