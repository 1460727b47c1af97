"""Decimal money helpers - all amounts are quantized to the minor currency unit"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

MINOR_UNIT = Decimal("0.01")
ZERO = Decimal("0.00")


def money(x: Any) -> Decimal:
    """Always return a 2-decimal Decimal with HALF_UP rounding."""
    if x is None:
        x = 0
    if not isinstance(x, Decimal):
        x = Decimal(str(x))
    return x.quantize(MINOR_UNIT, rounding=ROUND_HALF_UP)


def parse_amount(raw: Any) -> Decimal | None:
    """
    Parse user-supplied amount into a Decimal, exactly as given.

    Returns None for anything that is not a finite number. Booleans are
    rejected even though Python treats them as ints. No rounding happens
    here; see is_minor_unit.
    """
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = raw if isinstance(raw, Decimal) else Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        return None
    if not value.is_finite():
        return None
    return value


def is_minor_unit(value: Decimal) -> bool:
    """True when value has no digits below the minor unit (100.50 yes, 100.005 no)"""
    return value == value.quantize(MINOR_UNIT)


def format_amount(amount: Decimal, symbol: str = "₹") -> str:
    """Display string with thousands grouping, e.g. 125000.5 -> ₹125,000.50"""
    return f"{symbol}{money(amount):,.2f}"
