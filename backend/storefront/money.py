from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable, Optional

CENTS = Decimal("0.01")


def to_money(value: Any) -> Decimal:
    """Coerce a stored or computed amount to a 2-place Decimal."""
    if value is None:
        return Decimal("0.00")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def format_money(value: Optional[Any]) -> Optional[str]:
    """Serializes an amount as a fixed two-decimal string ("40.00")."""
    if value is None:
        return None
    return f"{to_money(value):.2f}"


def line_subtotal(price: Any, quantity: int) -> Decimal:
    return to_money(to_money(price) * int(quantity))


def compute_subtotal(lines: Iterable[tuple[Any, int]]) -> Decimal:
    """
    Sum of unit price x quantity over (price, quantity) pairs.

    Checkout sums fresh cart lines with it and the admin order edit re-sums the
    stored order lines with it, so both paths agree to the cent.
    """
    total = Decimal("0.00")
    for price, quantity in lines:
        total += line_subtotal(price, quantity)
    return to_money(total)
