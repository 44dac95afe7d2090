"""
Money helpers shared by the pricing and invoice engines.

All arithmetic runs on Decimal and is quantized to cents with
ROUND_HALF_UP (half away from zero) at the point a derived amount is
produced. Engines hand plain floats back to callers.
"""

import math
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable, Optional

from app.config import CURRENCY, CURRENCY_SYMBOLS

_CENT = Decimal("0.01")
_ZERO = Decimal("0")


def is_number(value: Any) -> bool:
    """True for a finite int/float/Decimal. Bools, None and NaN are not numbers."""
    if value is None or isinstance(value, bool):
        return False
    if isinstance(value, Decimal):
        return value.is_finite()
    if isinstance(value, (int, float)):
        return math.isfinite(value)
    return False


def to_decimal(value: Any) -> Decimal:
    """
    Lenient coercion used for every calculator input.

    None, NaN, infinities, bools and unparsable strings all become 0.
    Floats go through ``repr`` so 4.3 stays 4.3 rather than its binary
    expansion.
    """
    if value is None or isinstance(value, bool):
        return _ZERO
    if isinstance(value, Decimal):
        return value if value.is_finite() else _ZERO
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            return _ZERO
        return Decimal(repr(value))
    if isinstance(value, str):
        text = value.strip().replace(",", "")
        if not text:
            return _ZERO
        try:
            parsed = Decimal(text)
        except InvalidOperation:
            return _ZERO
        return parsed if parsed.is_finite() else _ZERO
    return _ZERO


def quantize(value: Any) -> Decimal:
    """Round to cents, half away from zero."""
    return to_decimal(value).quantize(_CENT, rounding=ROUND_HALF_UP)


def round2(value: Any) -> float:
    """round2(787.815) -> 787.82 ; round2(-0.005) -> -0.01"""
    return float(quantize(value))


def money_sum(values: Iterable[Any]) -> float:
    """Exact Decimal sum of currency values, rounded once at the end."""
    total = _ZERO
    for v in values:
        total += to_decimal(v)
    return round2(total)


def line_amount(qty: Any, unit_price: Any) -> float:
    return round2(to_decimal(qty) * to_decimal(unit_price))


def percent_of(amount: Any, rate: Any) -> float:
    return round2(to_decimal(amount) * to_decimal(rate))


# ---------------------------------------------------------------------------
# Display formatting. Never feed these strings back into arithmetic
# ---------------------------------------------------------------------------

def format_currency(
    amount: Optional[float],
    currency: str = CURRENCY,
    whole_units: bool = True,
) -> str:
    """
    Format an amount for display.

    whole_units=True matches the quote screens ($10,500); pass False for
    invoice documents ($10,500.00).
    """
    symbol = CURRENCY_SYMBOLS.get(currency.upper(), currency.upper() + " ")
    value = to_decimal(amount)
    if whole_units:
        value = value.quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        body = f"{abs(value):,.0f}"
    else:
        value = value.quantize(_CENT, rounding=ROUND_HALF_UP)
        body = f"{abs(value):,.2f}"
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{body}"


def format_flight_time(hours: Optional[float]) -> str:
    """2.5 -> '2h 30m' ; 3 -> '3h'"""
    total = to_decimal(hours)
    if total < 0:
        total = _ZERO
    whole = int(total)
    minutes = int(((total - whole) * 60).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    if minutes == 60:
        whole += 1
        minutes = 0
    if minutes == 0:
        return f"{whole}h"
    return f"{whole}h {minutes}m"
