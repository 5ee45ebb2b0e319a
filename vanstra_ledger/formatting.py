"""
Display formatting helpers (de-DE conventions).
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional, Union

from .currency import Currency, Money, to_decimal


CURRENCY_SYMBOLS = {
    Currency.EUR: "€",
    Currency.USD: "$",
    Currency.GBP: "£",
    Currency.CHF: "CHF",
    Currency.JPY: "¥",
}

SHORT_MONTHS = [
    "Jan.", "Feb.", "März", "Apr.", "Mai", "Juni",
    "Juli", "Aug.", "Sept.", "Okt.", "Nov.", "Dez.",
]

LONG_MONTHS = [
    "Januar", "Februar", "März", "April", "Mai", "Juni",
    "Juli", "August", "September", "Oktober", "November", "Dezember",
]

# Between amount and currency symbol
NBSP = "\u00a0"


def parse_timestamp(value: Union[str, datetime]) -> datetime:
    """Parse an ISO-8601 string (trailing Z allowed); naive values are UTC"""
    if isinstance(value, datetime):
        parsed = value
    else:
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_currency(amount: Union[Decimal, int, float, str],
                    currency: Currency = Currency.EUR) -> str:
    """
    Format an amount the way de-DE renders currency, e.g. "127.543,82 €".
    """
    money = Money(to_decimal(amount), currency)
    sign = "-" if money.is_negative() else ""
    grouped = f"{abs(money).amount:,.{currency.precision}f}"
    # Swap separators: 1,234.56 -> 1.234,56
    grouped = grouped.replace(",", "_").replace(".", ",").replace("_", ".")
    symbol = CURRENCY_SYMBOLS.get(currency, currency.code)
    return f"{sign}{grouped}{NBSP}{symbol}"


def format_date(value: Union[str, datetime], now: Optional[datetime] = None,
                include_year: bool = False) -> str:
    """
    Relative day label for transaction lists.

    "Today" when less than a day old, "Yesterday" when less than two days,
    otherwise "15. Aug." ("15. Aug. 2023" with include_year).
    """
    moment = parse_timestamp(value)
    now = now or datetime.now(timezone.utc)
    age = now - moment

    if age < timedelta(days=1):
        return "Today"
    if age < timedelta(days=2):
        return "Yesterday"

    label = f"{moment.day}. {SHORT_MONTHS[moment.month - 1]}"
    if include_year:
        label = f"{label} {moment.year}"
    return label


def format_date_time(value: Union[str, datetime]) -> str:
    """Long timestamp, e.g. "15. August 2023 um 10:30"."""
    moment = parse_timestamp(value)
    return (
        f"{moment.day}. {LONG_MONTHS[moment.month - 1]} {moment.year} "
        f"um {moment.hour:02d}:{moment.minute:02d}"
    )
