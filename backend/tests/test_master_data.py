"""
Supplier, customer and product master data tests.

Verifies:
- New parties and products start with zero balance / stock / cost
- Renames never touch balances
- Delete is refused while ledger history references the entity
"""

from decimal import Decimal

import pytest

from gestor.extensions import db
from gestor.models import Customer, Product, Supplier
from gestor.services import party_service, products_service
from gestor.validation import EntityInUseError, NotFoundError, ValidationError
from tests.helpers import sell


class TestParties:
    def test_create_supplier_starts_at_zero(self, store):
        supplier = party_service.create_supplier(store, name="  Acme  ")
        assert supplier.name == "Acme"
        assert supplier.balance_cents == 0

    def test_create_requires_name(self, store):
        with pytest.raises(ValidationError):
            party_service.create_customer(store, name="")

    def test_rename_keeps_balance(self, store, supplier, widget):
        party_service.rename_supplier(store, supplier.id, name="Renamed")
        fetched = db.session.get(Supplier, supplier.id)
        assert fetched.name == "Renamed"
        assert fetched.balance_cents == 2000

    def test_delete_unused_party(self, store):
        customer = party_service.create_customer(store, name="Temp")
        party_service.delete_customer(store, customer.id)
        assert db.session.get(Customer, customer.id) is None

    def test_delete_supplier_with_purchases_refused(self, store, supplier, widget):
        with pytest.raises(EntityInUseError) as excinfo:
            party_service.delete_supplier(store, supplier.id)
        assert excinfo.value.details["references"] == {"purchases": 1}
        assert excinfo.value.http_status == 409

    def test_delete_customer_with_sales_refused(self, store, customer, widget):
        sell(store, customer.id, (widget.id, 1, 500))
        with pytest.raises(EntityInUseError):
            party_service.delete_customer(store, customer.id)

    def test_delete_missing(self, store):
        with pytest.raises(NotFoundError):
            party_service.delete_supplier(store, "f" * 32)


class TestProducts:
    def test_create_product_starts_empty(self, store):
        product = products_service.create_product(store, name="Bolt", category="Hardware")
        assert product.quantity == 0
        assert product.average_cost_cents == Decimal("0")
        assert product.category == "Hardware"

    def test_update_only_name_and_category(self, store, widget):
        products_service.update_product(store, widget.id, {"name": "Widget XL", "category": None})
        fetched = db.session.get(Product, widget.id)
        assert fetched.name == "Widget XL"
        assert fetched.category is None
        assert fetched.quantity == 10

        with pytest.raises(ValidationError):
            products_service.update_product(store, widget.id, {"quantity": 99})

    def test_list_by_category(self, store, widget):
        products_service.create_product(store, name="Bolt", category="Hardware")
        assert [p.name for p in products_service.list_products(store, category="Tools")] == ["Widget"]
        assert len(products_service.list_products(store)) == 2

    def test_delete_unused_product(self, store):
        product = products_service.create_product(store, name="Bolt")
        products_service.delete_product(store, product.id)
        assert db.session.get(Product, product.id) is None

    def test_delete_purchased_product_refused(self, store, widget):
        with pytest.raises(EntityInUseError):
            products_service.delete_product(store, widget.id)
