"""
Ledger Errors

Exception hierarchy shared by the core. Callers can tell "retry later"
(PersistenceError, LockTimeoutError) apart from business rule failures.
"""


class LedgerError(Exception):
    """Base exception for all ledger errors."""


class NotFoundError(LedgerError):
    """Raised when an account or transaction does not exist."""


class ValidationError(LedgerError):
    """Raised when input is missing or malformed."""


class InvalidStateError(LedgerError):
    """Raised when an operation is attempted outside its required status."""


class InvalidTypeError(LedgerError):
    """Raised when a stored transaction has a type the processor cannot handle."""


class AccountNotActiveError(LedgerError):
    """Raised when debiting or crediting an account that is not active."""

    def __init__(self, message: str = "account is not active"):
        super().__init__(message)


class InsufficientFundsError(LedgerError):
    """Raised when a debit would drive a balance below zero."""

    def __init__(self, message: str = "insufficient funds"):
        super().__init__(message)


class CurrencyMismatchError(LedgerError):
    """Raised when combining money in different currencies."""


class PersistenceError(LedgerError):
    """Opaque failure from the storage backend. Safe to retry."""


class LockTimeoutError(LedgerError):
    """Raised when a lock could not be acquired before the deadline."""
