# Overview: Pure pricing arithmetic for sale items and sale totals (integer cents, no DB access).

"""
Pricing Calculator

All amounts are integer cents. Nothing here touches the database, so both the
item-editing path and the confirmation path compute totals the same way and
tests can call these functions directly.

Formulas:
- item total  = quantity * unit_price - discount          (must be >= 0)
- subtotal    = sum(item totals)
- sale total  = subtotal - sale discount + tax            (must be >= 0)
"""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Protocol

from ..errors import InvalidAmount, ValidationError


DISCOUNT_FIXED = "FIXED"
DISCOUNT_PERCENTAGE = "PERCENTAGE"
DISCOUNT_TYPES = {DISCOUNT_FIXED, DISCOUNT_PERCENTAGE}

MAX_DISCOUNT_PERCENTAGE = Decimal("100")


class PricedLine(Protocol):
    quantity: int
    unit_price_cents: int
    discount_cents: int


def item_total(quantity: int, unit_price_cents: int, discount_cents: int = 0) -> int:
    """quantity * unit_price - discount; negative results are rejected."""
    total = quantity * unit_price_cents - (discount_cents or 0)
    if total < 0:
        raise InvalidAmount(
            "Item discount exceeds item value",
            details={
                "quantity": quantity,
                "unit_price_cents": unit_price_cents,
                "discount_cents": discount_cents,
                "total_cents": total,
            },
        )
    return total


def subtotal(items: Iterable[PricedLine]) -> int:
    return sum(
        item_total(item.quantity, item.unit_price_cents, item.discount_cents or 0)
        for item in items
    )


def sale_total(subtotal_cents: int, discount_cents: int = 0, tax_cents: int = 0) -> int:
    """subtotal - sale discount + tax; a negative grand total is rejected."""
    total = subtotal_cents - (discount_cents or 0) + (tax_cents or 0)
    if total < 0:
        raise InvalidAmount(
            "Sale discount exceeds sale value",
            details={
                "subtotal_cents": subtotal_cents,
                "discount_cents": discount_cents,
                "tax_cents": tax_cents,
                "total_cents": total,
            },
        )
    return total


def discount_amount(base_cents: int, discount_type: str, value) -> int:
    """
    Resolve a discount request into cents.

    FIXED: value is already cents.
    PERCENTAGE: value is a percent in [0, 100]; result rounds half-up to the cent.
    """
    if discount_type == DISCOUNT_FIXED:
        return int(value)

    if discount_type == DISCOUNT_PERCENTAGE:
        percent = Decimal(str(value))
        if percent < 0 or percent > MAX_DISCOUNT_PERCENTAGE:
            raise ValidationError(
                "Percentage discount must be between 0 and 100",
                details={"discount_value": str(value)},
            )
        amount = (Decimal(base_cents) * percent / Decimal(100)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        return int(amount)

    raise ValidationError(
        f"discount_type must be one of: {', '.join(sorted(DISCOUNT_TYPES))}",
        details={"discount_type": discount_type},
    )
