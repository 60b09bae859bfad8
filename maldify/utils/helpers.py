"""
Numeric and date helpers shared by the analytics code
"""
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional, Tuple

import pytz

CURRENCY_SYMBOLS = {"USD": "$", "CAD": "CA$", "AUD": "A$", "EUR": "€", "GBP": "£"}


def analysis_window(days: int, now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """Trailing window of `days` ending at `now`, as UTC-aware datetimes"""
    end = now or datetime.now(pytz.UTC)
    if end.tzinfo is None:
        end = pytz.UTC.localize(end)
    return end - timedelta(days=days), end


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    return numerator / denominator if denominator else default


def round_money(value: Any, places: int = 2) -> float:
    """
    Round half-up to a fixed number of decimal places.

    Goes through str() so binary float artifacts (49.995 -> 49.99499...)
    do not flip the rounding direction.
    """
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def format_currency(amount: float, currency: str = "USD") -> str:
    symbol = CURRENCY_SYMBOLS.get(currency.upper())
    if symbol is None:
        return f"{amount:,.2f} {currency}"
    return f"{symbol}{amount:,.2f}"
