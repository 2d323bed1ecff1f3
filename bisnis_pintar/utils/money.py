from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

_INT_PREFIX_RE = re.compile(r"^\s*([+-]?\d+)")
_DECIMAL_PREFIX_RE = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")

ZERO = Decimal(0)


def to_decimal(raw: Any) -> Decimal:
    """Coerce form input to a Decimal; anything unparsable becomes zero.

    Strings are read up to the first character that cannot continue a number,
    so "1500abc" is 1500 and "abc" is 0.
    """
    if raw is None or isinstance(raw, bool):
        return ZERO
    if isinstance(raw, Decimal):
        return raw if raw.is_finite() else ZERO
    if isinstance(raw, int):
        return Decimal(raw)
    if isinstance(raw, float):
        return Decimal(str(raw)) if raw == raw and abs(raw) != float("inf") else ZERO
    match = _DECIMAL_PREFIX_RE.match(str(raw))
    if not match:
        return ZERO
    try:
        value = Decimal(match.group(1))
    except InvalidOperation:
        return ZERO
    return value if value.is_finite() else ZERO


def to_int(raw: Any) -> int:
    """Coerce stock input to an int; "3.7" reads as 3, junk reads as 0."""
    if raw is None or isinstance(raw, bool):
        return 0
    if isinstance(raw, int):
        return raw
    if isinstance(raw, (float, Decimal)):
        try:
            return int(raw)
        except (ValueError, OverflowError, InvalidOperation):
            return 0
    match = _INT_PREFIX_RE.match(str(raw))
    return int(match.group(1)) if match else 0


def to_json_number(value: Decimal) -> int | float:
    """Whole amounts serialise as JSON integers, fractional ones as floats."""
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def to_exact_number(value: Decimal) -> int | Decimal:
    """Whole amounts as int, fractional ones kept as Decimal for exact JSON literals."""
    if value == value.to_integral_value():
        return int(value)
    return value


def format_rupiah(amount: Any) -> str:
    """Format an amount the way id-ID currency formatting shows IDR.

    >>> format_rupiah(50000)
    'Rp\\xa050.000'
    """
    value = to_decimal(amount).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    grouped = f"{abs(int(value)):,}".replace(",", ".")
    return f"{sign}Rp\u00a0{grouped}"


__all__ = ["format_rupiah", "to_decimal", "to_exact_number", "to_int", "to_json_number"]
