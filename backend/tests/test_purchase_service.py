"""
Purchase ledger tests.

Verifies:
- New products start at the purchase quantity and price
- Existing products get the weighted average cost
- Supplier balance grows by quantity * unit price
- Corrections and deletes undo their effects exactly
- A failure before the purchase record is written leaves nothing behind
"""

from decimal import Decimal

import pytest

from gestor.extensions import db
from gestor.models import Product, Purchase, Supplier
from gestor.services import party_service, purchase_service
from gestor.services.purchase_service import ExistingProduct, NewProduct, product_ref_from_payload
from gestor.validation import InsufficientStockError, NotFoundError, ValidationError
from tests.helpers import buy, sell, snapshot


def _crash(*args, **kwargs):
    raise RuntimeError("simulated crash")


class TestAddPurchase:
    def test_new_product_purchase(self, store, supplier):
        purchase = purchase_service.add_purchase(
            store,
            product=NewProduct(name="Widget"),
            supplier_id=supplier.id,
            quantity=10,
            unit_price_cents=200,
        )

        product = db.session.get(Product, purchase.product_id)
        assert product.name == "Widget"
        assert product.quantity == 10
        assert product.average_cost_cents == Decimal("200")
        assert purchase.total_cents == 2000
        assert db.session.get(Supplier, supplier.id).balance_cents == 2000

    def test_existing_product_gets_weighted_average(self, store, supplier, widget):
        buy(store, supplier.id, widget.id, 10, 400)

        product = db.session.get(Product, widget.id)
        assert product.quantity == 20
        assert product.average_cost_cents == Decimal("300")
        assert db.session.get(Supplier, supplier.id).balance_cents == 2000 + 4000

    def test_average_after_sales_uses_remaining_quantity(self, store, supplier, customer, widget):
        sell(store, customer.id, (widget.id, 5, 500))
        buy(store, supplier.id, widget.id, 5, 400)

        product = db.session.get(Product, widget.id)
        assert product.quantity == 10
        assert product.average_cost_cents == Decimal("300")

    @pytest.mark.parametrize("quantity", [0, -1, "abc", 1.5, None])
    def test_rejects_bad_quantity(self, store, supplier, widget, quantity):
        before = snapshot(store)
        with pytest.raises(ValidationError):
            buy(store, supplier.id, widget.id, quantity, 100)
        assert snapshot(store) == before

    def test_rejects_negative_price(self, store, supplier, widget):
        with pytest.raises(ValidationError):
            buy(store, supplier.id, widget.id, 1, -5)

    def test_zero_price_is_allowed(self, store, supplier, widget):
        buy(store, supplier.id, widget.id, 10, 0)
        assert db.session.get(Product, widget.id).average_cost_cents == Decimal("100")

    def test_missing_supplier(self, store, widget):
        before = snapshot(store)
        with pytest.raises(NotFoundError):
            buy(store, "f" * 32, widget.id, 1, 100)
        assert snapshot(store) == before

    def test_missing_product(self, store, supplier):
        with pytest.raises(NotFoundError):
            buy(store, supplier.id, "f" * 32, 1, 100)

    def test_new_product_needs_a_name(self, store, supplier):
        with pytest.raises(ValidationError):
            purchase_service.add_purchase(
                store, product=NewProduct(name="  "), supplier_id=supplier.id,
                quantity=1, unit_price_cents=1,
            )

    def test_failure_before_record_rolls_back_product(self, store, supplier, widget, monkeypatch):
        before = snapshot(store)

        monkeypatch.setattr(purchase_service, "_record_purchase", _crash)

        with pytest.raises(RuntimeError):
            buy(store, supplier.id, widget.id, 5, 999)

        assert snapshot(store) == before

    def test_failure_rolls_back_new_product_too(self, store, supplier, monkeypatch):
        before = snapshot(store)
        monkeypatch.setattr(purchase_service, "_record_purchase", _crash)

        with pytest.raises(RuntimeError):
            purchase_service.add_purchase(
                store, product=NewProduct(name="Ghost"), supplier_id=supplier.id,
                quantity=3, unit_price_cents=100,
            )

        assert snapshot(store) == before
        assert db.session.query(Product).filter_by(name="Ghost").count() == 0


class TestProductRefFromPayload:
    def test_existing(self):
        assert product_ref_from_payload({"product_id": "abc"}) == ExistingProduct(id="abc")

    def test_new(self):
        ref = product_ref_from_payload({"new_product": {"name": " Widget ", "category": "Tools"}})
        assert ref == NewProduct(name="Widget", category="Tools")

    def test_neither(self):
        with pytest.raises(ValidationError):
            product_ref_from_payload({})


class TestUpdatePurchase:
    def test_price_correction_moves_average_and_balance(self, store, supplier, widget):
        purchase = db.session.query(Purchase).filter_by(product_id=widget.id).one()

        purchase_service.update_purchase(store, purchase.id, unit_price_cents=250)

        product = db.session.get(Product, widget.id)
        assert product.quantity == 10
        assert product.average_cost_cents == Decimal("250")
        assert db.session.get(Supplier, supplier.id).balance_cents == 2500
        assert db.session.get(Purchase, purchase.id).updated_at is not None

    def test_quantity_correction(self, store, supplier, widget):
        purchase = db.session.query(Purchase).filter_by(product_id=widget.id).one()

        purchase_service.update_purchase(store, purchase.id, quantity=12)

        assert db.session.get(Product, widget.id).quantity == 12
        assert db.session.get(Supplier, supplier.id).balance_cents == 2400

    def test_move_to_other_supplier(self, store, supplier, widget):
        other = party_service.create_supplier(store, name="Other")
        purchase = db.session.query(Purchase).filter_by(product_id=widget.id).one()

        purchase_service.update_purchase(store, purchase.id, supplier_id=other.id)

        assert db.session.get(Supplier, supplier.id).balance_cents == 0
        assert db.session.get(Supplier, other.id).balance_cents == 2000

    def test_cannot_shrink_below_sold_units(self, store, supplier, customer, widget):
        sell(store, customer.id, (widget.id, 8, 500))
        purchase = db.session.query(Purchase).filter_by(product_id=widget.id).one()
        before = snapshot(store)

        with pytest.raises(InsufficientStockError):
            purchase_service.update_purchase(store, purchase.id, quantity=5)

        assert snapshot(store) == before


class TestDeletePurchase:
    def test_delete_reverses_stock_cost_and_balance(self, store, supplier, widget):
        second = buy(store, supplier.id, widget.id, 10, 400)

        purchase_service.delete_purchase(store, second.id)

        product = db.session.get(Product, widget.id)
        assert product.quantity == 10
        assert product.average_cost_cents == Decimal("200")
        assert db.session.get(Supplier, supplier.id).balance_cents == 2000
        assert db.session.get(Purchase, second.id) is None

    def test_delete_refused_when_units_sold(self, store, supplier, customer, widget):
        sell(store, customer.id, (widget.id, 1, 500))
        purchase = db.session.query(Purchase).filter_by(product_id=widget.id).one()

        with pytest.raises(InsufficientStockError) as excinfo:
            purchase_service.delete_purchase(store, purchase.id)
        assert excinfo.value.available == 9

    def test_delete_missing(self, store):
        with pytest.raises(NotFoundError):
            purchase_service.delete_purchase(store, "f" * 32)
