"""
Formatting utilities for analysis notes and API summaries.
"""

from typing import Optional


CURRENCY_SYMBOLS = {
    "USD": "$",
    "GBP": "£",
    "EUR": "€",
}


def format_currency(amount: Optional[float], currency: str = "USD") -> str:
    """
    Format an amount in whole units as currency.

    Args:
        amount: The amount (rounded half up to whole dollars). None gives "n/a".
        currency: Currency code (default USD).

    Returns:
        Formatted currency string, e.g. "$315,000" or "-$4,500".
    """
    if amount is None:
        return "n/a"
    symbol = CURRENCY_SYMBOLS.get(currency, currency + " ")
    whole = int(abs(amount) + 0.5)
    sign = "-" if amount < 0 and whole else ""
    return f"{sign}{symbol}{whole:,}"


def format_percent(value: float, decimals: int = 1) -> str:
    """
    Format a number as a percentage.

    Args:
        value: The percentage value.
        decimals: Number of decimal places.

    Returns:
        Formatted percentage string.
    """
    return f"{value:.{decimals}f}%"


def format_miles(distance: Optional[float]) -> str:
    """Format a distance in miles, e.g. "0.45 mi"."""
    if distance is None:
        return "n/a"
    return f"{distance:.2f} mi"
