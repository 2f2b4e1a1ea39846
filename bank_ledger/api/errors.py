"""
Mapping of ledger errors to HTTP responses
"""

from fastapi import HTTPException

from ..errors import (
    AccountNotActiveError, CurrencyMismatchError, InsufficientFundsError,
    InvalidStateError, InvalidTypeError, LedgerError, LockTimeoutError,
    NotFoundError, PersistenceError, ValidationError
)

STATUS_CODES = {
    NotFoundError: 404,
    ValidationError: 400,
    CurrencyMismatchError: 400,
    InvalidStateError: 409,
    InvalidTypeError: 422,
    InsufficientFundsError: 422,
    AccountNotActiveError: 422,
    PersistenceError: 503,
    LockTimeoutError: 503,
}


def to_http_exception(error: LedgerError) -> HTTPException:
    """HTTPException whose detail carries the error kind and message"""
    # nearest mapped ancestor wins, so subclasses inherit their parent's code
    code = next((STATUS_CODES[cls] for cls in type(error).__mro__ if cls in STATUS_CODES), 400)
    return HTTPException(status_code=code, detail={
        "error": type(error).__name__,
        "message": str(error)
    })
