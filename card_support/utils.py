"""Shared utilities used across the support assistant."""

from datetime import date
from decimal import Decimal
from typing import Optional, Union

Number = Union[Decimal, float, int]


def normalize_text(value: Optional[str]) -> str:
    """Case-fold and trim a customer message. ``None`` becomes an empty string.

    Examples:
        >>> normalize_text("  Hello THERE ")
        'hello there'
        >>> normalize_text(None)
        ''
    """
    if value is None:
        return ""
    return value.strip().lower()


def format_display_date(value: date) -> str:
    """Format a date as the assistant says it, e.g. ``1 September 2025``.

    Examples:
        >>> format_display_date(date(2025, 9, 1))
        '1 September 2025'
    """
    return f"{value.day} {value.strftime('%B')} {value.year}"


def format_amount(value: Number, decimals: int = 2) -> str:
    """Format a currency amount without thousands separators.

    Examples:
        >>> format_amount(Decimal("1250"))
        '1250.00'
        >>> format_amount(Decimal("120000.00"), decimals=0)
        '120000'
    """
    return f"{float(value):.{decimals}f}"
