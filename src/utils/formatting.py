from __future__ import annotations

from decimal import ROUND_HALF_EVEN, Decimal

CENT = Decimal("0.01")


def format_decimal(value: Decimal) -> str:
    """Plain notation quantity, without trailing zeros or exponents."""
    normalized = value.normalize()
    if normalized == normalized.to_integral():
        return f"{normalized:.0f}"
    return format(normalized, "f")


def format_currency(value: Decimal) -> str:
    cents = value.quantize(CENT, rounding=ROUND_HALF_EVEN)
    # Avoid printing "-0.00" for tiny negative remainders.
    if cents == 0:
        cents = abs(cents)
    return f"{cents:.2f}"
