"""
Decimal helpers for money, unit costs and percentage rates.

Storage precision:
- Money (prices, totals, COGS, commission amounts): 2 places.
- Unit costs and weighted average cost: 4 places, so repeated averaging
  does not drift by whole cents.
- Rates are percentages with 2 places, bounded to [0, 100].

All rounding is half-up, applied when a value is stored. A value too large
to quantize raises ValueError like any other bad number.
"""
from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

ZERO = Decimal("0")
HUNDRED = Decimal("100")

MONEY_QUANT = Decimal("0.01")
COST_QUANT = Decimal("0.0001")
RATE_QUANT = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """
    Convert JSON-ish input (int, float, str, Decimal) to Decimal.

    Floats go through str() so 0.1 stays 0.1 instead of its binary expansion.
    Raises ValueError for booleans, non-numeric strings, NaN and infinities.
    """
    if isinstance(value, bool):
        raise ValueError("boolean is not a number")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation:
            raise ValueError(f"{value!r} is not a number")
    else:
        raise ValueError(f"{type(value).__name__} is not a number")

    if not result.is_finite():
        raise ValueError("number must be finite")
    return result


def _quantize(value, quant: Decimal) -> Decimal:
    try:
        return to_decimal(value).quantize(quant, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValueError(f"{value!r} is out of range")


def quantize_money(value) -> Decimal:
    return _quantize(value, MONEY_QUANT)


def quantize_cost(value) -> Decimal:
    return _quantize(value, COST_QUANT)


def quantize_rate(value) -> Decimal:
    return _quantize(value, RATE_QUANT)


def decimal_str(value: Optional[Decimal]) -> Optional[str]:
    """JSON representation: exact string, never float."""
    if value is None:
        return None
    return str(value)
