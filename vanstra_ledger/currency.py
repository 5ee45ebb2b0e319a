"""
Currency Support Module

Handles ISO 4217 currency codes and proper Decimal precision for balances
and transaction amounts. NEVER uses float for monetary values.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, getcontext
from dataclasses import dataclass
from typing import Union
from enum import Enum

# Set global decimal context for financial precision
getcontext().prec = 28


class Currency(Enum):
    """ISO 4217 Currency Codes with precision info"""
    EUR = ("EUR", 2)  # Euro, 2 decimal places
    USD = ("USD", 2)  # US Dollar, 2 decimal places
    GBP = ("GBP", 2)  # British Pound, 2 decimal places
    CHF = ("CHF", 2)  # Swiss Franc, 2 decimal places
    JPY = ("JPY", 0)  # Japanese Yen, 0 decimal places

    def __init__(self, code: str, precision: int):
        self.code = code
        self.precision = precision

    @classmethod
    def from_code(cls, code: str) -> 'Currency':
        try:
            return cls[code.upper()]
        except KeyError:
            raise ValueError(f"Unsupported currency code: {code}")


@dataclass(frozen=True)
class Money:
    """
    Immutable money representation with currency and proper precision.
    """
    amount: Decimal
    currency: Currency

    def __post_init__(self):
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, 'amount', to_decimal(self.amount))

        object.__setattr__(self, 'amount', validate_decimal_precision(self.amount, self.currency))

    def __add__(self, other: 'Money') -> 'Money':
        if self.currency != other.currency:
            raise ValueError(f"Cannot add {self.currency.code} and {other.currency.code}")
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: 'Money') -> 'Money':
        if self.currency != other.currency:
            raise ValueError(f"Cannot subtract {other.currency.code} from {self.currency.code}")
        return Money(self.amount - other.amount, self.currency)

    def __neg__(self) -> 'Money':
        return Money(-self.amount, self.currency)

    def __abs__(self) -> 'Money':
        return Money(abs(self.amount), self.currency)

    def __gt__(self, other: 'Money') -> bool:
        if self.currency != other.currency:
            raise ValueError(f"Cannot compare {self.currency.code} and {other.currency.code}")
        return self.amount > other.amount

    def is_positive(self) -> bool:
        """Check if amount is positive"""
        return self.amount > Decimal('0')

    def is_negative(self) -> bool:
        """Check if amount is negative"""
        return self.amount < Decimal('0')

    def to_string(self) -> str:
        """Format for logs"""
        if self.currency.precision == 0:
            return f"{self.currency.code} {self.amount:,.0f}"
        return f"{self.currency.code} {self.amount:,.{self.currency.precision}f}"


def to_decimal(value: Union[Decimal, int, float, str]) -> Decimal:
    """
    Convert a number to Decimal without binary float artifacts.

    Floats go through their shortest repr, so 127.45 becomes Decimal('127.45').

    Raises:
        ValueError: If the value is not a finite number
    """
    if isinstance(value, bool):
        raise ValueError(f"Cannot convert {value!r} to Decimal")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"Cannot convert {value!r} to Decimal")
    if not result.is_finite():
        raise ValueError(f"Amount must be finite, got {value!r}")
    return result


def validate_decimal_precision(value: Decimal, currency: Currency) -> Decimal:
    """
    Round decimal to currency precision

    Args:
        value: Decimal to validate
        currency: Currency defining precision

    Returns:
        Properly rounded Decimal
    """
    return value.quantize(
        Decimal('0.1') ** currency.precision,
        rounding=ROUND_HALF_UP
    )
