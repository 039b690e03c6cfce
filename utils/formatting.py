"""Output formatting utilities for BankIt pages.

Provides reusable functions for:
- Formatting currency amounts (French conventions, euros)
- Formatting month headers for the category summary
"""

from datetime import date
from typing import Optional


def format_amount(value: Optional[float], precision: int = 2,
                  currency: str = "€") -> str:
    """Format an amount for display.

    Args:
        value: Amount in euros (can be None)
        precision: Decimal places (default: 2)
        currency: Symbol appended after the number (default: "€")

    Returns:
        Formatted string like "1 234,50 €" or "-" for None

    Examples:
        format_amount(1234.5) -> "1 234,50 €"
        format_amount(-12) -> "-12,00 €"
        format_amount(None) -> "-"
    """
    if value is None:
        return "-"
    text = f"{value:,.{precision}f}"
    # swap separators to the French layout: 1,234.50 -> 1 234,50
    text = text.replace(",", " ").replace(".", ",")
    if currency:
        return f"{text} {currency}"
    return text


def format_month(value: date) -> str:
    """Return ``mm/yyyy`` for the first day of a summary month."""
    return f"{value.month:02d}/{value.year}"
