# Overview: Pure arithmetic for weighted average cost and sale profit.

"""
Costing rules (authoritative)

- Money is integer cents; average cost keeps 6 decimal places of a cent.
- Purchases move the average:
      new_qty = cur_qty + qty
      new_avg = (cur_avg * cur_qty + unit_cost * qty) / new_qty   (0 when new_qty == 0)
- Sales never move the average; they consume units at the current average.
- Derived money (profit) is rounded to the nearest cent, half-up.
"""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

COST_PLACES = Decimal("0.000001")
ZERO = Decimal("0")


def to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if value is None:
        return ZERO
    return Decimal(str(value))


def round_cents(value: Decimal) -> int:
    return int(to_decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def revalue(
    current_quantity: int,
    current_average,
    *,
    add_quantity: int = 0,
    add_unit_cost=0,
    remove_quantity: int = 0,
    remove_unit_cost=0,
) -> tuple[int, Decimal]:
    """
    Quantity and average cost after units enter and/or leave the stock at
    known unit costs. The average never goes below zero; an empty stock
    has an average of zero.
    """
    new_quantity = current_quantity + add_quantity - remove_quantity
    if new_quantity <= 0:
        return new_quantity, ZERO
    total = (
        to_decimal(current_average) * current_quantity
        + to_decimal(add_unit_cost) * add_quantity
        - to_decimal(remove_unit_cost) * remove_quantity
    )
    average = (total / new_quantity).quantize(COST_PLACES, rounding=ROUND_HALF_UP)
    return new_quantity, max(average, ZERO)


def weighted_average_cost(current_quantity: int, current_average, quantity: int,
                          unit_cost_cents) -> tuple[int, Decimal]:
    """Quantity and average cost after adding `quantity` units at `unit_cost_cents`."""
    return revalue(current_quantity, current_average, add_quantity=quantity, add_unit_cost=unit_cost_cents)


def line_profit(quantity: int, unit_price_cents: int, unit_cost_cents) -> Decimal:
    return (Decimal(unit_price_cents) - to_decimal(unit_cost_cents)) * quantity
