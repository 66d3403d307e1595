"""
Costing arithmetic tests.

Verifies:
- Weighted average cost after a run of purchases is the quantity-weighted mean
- Sales never move the average
- Removing units at their own cost restores the previous average
- Profit rounding is half-up to whole cents
"""

from decimal import Decimal

import pytest

from gestor.services.costing import line_profit, revalue, round_cents, weighted_average_cost


class TestWeightedAverageCost:
    def test_first_purchase_sets_average(self):
        qty, avg = weighted_average_cost(0, Decimal("0"), 10, 200)
        assert qty == 10
        assert avg == Decimal("200")

    @pytest.mark.parametrize(
        "purchases",
        [
            [(10, 200), (10, 400)],
            [(3, 100), (7, 250), (5, 90)],
            [(1, 1), (2, 2), (3, 3), (4, 4)],
            [(10, 0), (10, 1000)],
        ],
    )
    def test_average_is_quantity_weighted_mean(self, purchases):
        qty, avg = 0, Decimal("0")
        for q, price in purchases:
            qty, avg = weighted_average_cost(qty, avg, q, price)

        total_qty = sum(q for q, _ in purchases)
        expected = Decimal(sum(q * p for q, p in purchases)) / total_qty
        assert qty == total_qty
        assert abs(avg - expected) < Decimal("0.000001")

    def test_average_keeps_sub_cent_precision(self):
        qty, avg = weighted_average_cost(10, Decimal("100"), 5, 200)
        assert qty == 15
        assert avg == Decimal("133.333333")

    def test_empty_stock_has_zero_average(self):
        qty, avg = revalue(5, Decimal("120"), remove_quantity=5, remove_unit_cost=120)
        assert qty == 0
        assert avg == Decimal("0")


class TestRevalue:
    def test_reversing_a_purchase_restores_previous_average(self):
        qty, avg = weighted_average_cost(10, Decimal("200"), 10, 400)
        assert avg == Decimal("300")

        qty, avg = revalue(qty, avg, remove_quantity=10, remove_unit_cost=400)
        assert qty == 10
        assert avg == Decimal("200")

    def test_add_and_remove_in_one_step(self):
        # 10 @ 200 on hand from a purchase now corrected to 10 @ 250
        qty, avg = revalue(10, Decimal("200"), add_quantity=10, add_unit_cost=250,
                           remove_quantity=10, remove_unit_cost=200)
        assert qty == 10
        assert avg == Decimal("250")

    def test_average_never_negative(self):
        qty, avg = revalue(2, Decimal("10"), remove_quantity=1, remove_unit_cost=500)
        assert qty == 1
        assert avg == Decimal("0")


class TestProfit:
    def test_line_profit_uses_unit_cost(self):
        assert line_profit(4, 500, Decimal("200")) == Decimal("1200")

    def test_line_profit_can_be_negative(self):
        assert line_profit(2, 100, Decimal("150")) == Decimal("-100")

    @pytest.mark.parametrize(
        "value,expected",
        [
            (Decimal("10.5"), 11),
            (Decimal("10.49"), 10),
            (Decimal("-10.5"), -11),
            (Decimal("0"), 0),
        ],
    )
    def test_round_cents_half_up(self, value, expected):
        assert round_cents(value) == expected
