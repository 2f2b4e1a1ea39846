"""
Currency and Money Module

Money is held as an exact integer count of minor units (cents, satang).
NEVER uses float for monetary values; to_float() exists for display only.
"""

from dataclasses import dataclass
from enum import Enum

from .errors import CurrencyMismatchError


class Currency(Enum):
    """Supported ISO 4217 currencies with their minor-unit precision"""
    USD = ("USD", 2)  # US Dollar, cents
    THB = ("THB", 2)  # Thai Baht, satang

    def __init__(self, code: str, precision: int):
        self.code = code
        self.precision = precision

    @classmethod
    def from_code(cls, code: str) -> 'Currency':
        """Look up a currency by its ISO code"""
        try:
            return cls[code.upper()]
        except (KeyError, AttributeError):
            raise ValueError(f"Unsupported currency: {code}")


@dataclass(frozen=True)
class Money:
    """
    Immutable money value: integer minor units bound to a currency.
    Every operation returns a new value.
    """
    amount: int
    currency: Currency

    def __post_init__(self):
        # bool is an int subclass but never a valid amount
        if isinstance(self.amount, bool) or not isinstance(self.amount, int):
            raise TypeError(f"Money amount must be an integer number of minor units, got {self.amount!r}")
        if not isinstance(self.currency, Currency):
            raise TypeError(f"Money currency must be a Currency, got {self.currency!r}")

    @classmethod
    def zero(cls, currency: Currency) -> 'Money':
        return cls(0, currency)

    def _check_currency(self, other: 'Money', verb: str) -> None:
        if self.currency != other.currency:
            raise CurrencyMismatchError(
                f"Cannot {verb} {self.currency.code} and {other.currency.code}"
            )

    def add(self, other: 'Money') -> 'Money':
        self._check_currency(other, "add")
        return Money(self.amount + other.amount, self.currency)

    def subtract(self, other: 'Money') -> 'Money':
        self._check_currency(other, "subtract")
        return Money(self.amount - other.amount, self.currency)

    def __add__(self, other: 'Money') -> 'Money':
        return self.add(other)

    def __sub__(self, other: 'Money') -> 'Money':
        return self.subtract(other)

    def __neg__(self) -> 'Money':
        return Money(-self.amount, self.currency)

    def __lt__(self, other: 'Money') -> bool:
        self._check_currency(other, "compare")
        return self.amount < other.amount

    def __le__(self, other: 'Money') -> bool:
        self._check_currency(other, "compare")
        return self.amount <= other.amount

    def __gt__(self, other: 'Money') -> bool:
        self._check_currency(other, "compare")
        return self.amount > other.amount

    def __ge__(self, other: 'Money') -> bool:
        self._check_currency(other, "compare")
        return self.amount >= other.amount

    def is_zero(self) -> bool:
        """Check if amount is exactly zero"""
        return self.amount == 0

    def is_positive(self) -> bool:
        """Check if amount is positive"""
        return self.amount > 0

    def is_negative(self) -> bool:
        """Check if amount is negative"""
        return self.amount < 0

    def to_float(self) -> float:
        """Major units as a float. Display helper, never use for arithmetic."""
        return self.amount / (10 ** self.currency.precision)

    def to_display_string(self) -> str:
        """Format for display, e.g. '70.00 USD'"""
        return f"{self.to_float():.{self.currency.precision}f} {self.currency.code}"

    def __str__(self) -> str:
        return self.to_display_string()

    def to_dict(self) -> dict:
        return {"amount": self.amount, "currency": self.currency.code}

    @classmethod
    def from_dict(cls, data: dict) -> 'Money':
        return cls(int(data["amount"]), Currency.from_code(data["currency"]))
