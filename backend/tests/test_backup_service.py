"""
Backup export/import tests.

Verifies:
- Export covers every table and is JSON-serializable
- Import replaces the store wholesale, bypassing ledger rules
- Malformed payloads are rejected without touching existing data
"""

import json
from decimal import Decimal

import pytest

from gestor.extensions import db
from gestor.models import Product, Supplier
from gestor.services import backup_service, party_service, payment_service
from gestor.services.backup_service import FORMAT_VERSION
from gestor.services.entity_store import TABLE_ORDER
from gestor.validation import ValidationError
from tests.helpers import sell, snapshot


@pytest.fixture
def history(store, supplier, customer, widget):
    sell(store, customer.id, (widget.id, 3, 700))
    payment_service.add_customer_payment(store, customer_id=customer.id, amount_cents=1000, method="CASH")
    return store


class TestExport:
    def test_export_shape(self, history):
        state = backup_service.export_state(history)

        assert state["format_version"] == FORMAT_VERSION
        assert state["exported_at"].endswith("Z")
        assert set(state["collections"]) == {m.__tablename__ for m in TABLE_ORDER}
        assert len(state["collections"]["sale_items"]) == 1
        json.dumps(state)

    def test_decimal_exported_as_string(self, history):
        state = backup_service.export_state(history)
        product = state["collections"]["products"][0]
        assert Decimal(product["average_cost_cents"]) == Decimal("200")


class TestImport:
    def test_round_trip_restores_everything(self, history):
        before = snapshot(history)
        payload = json.loads(json.dumps(backup_service.export_state(history)))

        party_service.create_supplier(history, name="Added after export")
        counts = backup_service.import_state(history, payload)

        assert counts["sales"] == 1
        assert counts["suppliers"] == 1
        assert snapshot(history) == before

    def test_import_adopts_data_as_is(self, store):
        payload = {
            "format_version": FORMAT_VERSION,
            "collections": {
                "suppliers": [{
                    "id": "a" * 32,
                    "name": "Imported",
                    "balance_cents": 123,
                    "version_id": 1,
                    "created_at": "2024-01-01T00:00:00",
                }],
                "products": [{
                    "id": "b" * 32,
                    "name": "Imported product",
                    "category": None,
                    "quantity": 7,
                    "average_cost_cents": "12.5",
                    "version_id": 1,
                    "created_at": "2024-01-01T00:00:00",
                }],
            },
        }

        backup_service.import_state(store, payload)

        # No purchases back these numbers; import does not check
        assert db.session.get(Supplier, "a" * 32).balance_cents == 123
        product = db.session.get(Product, "b" * 32)
        assert product.quantity == 7
        assert product.average_cost_cents == Decimal("12.5")

    def test_import_notifies_every_collection(self, history):
        heard = []
        history.subscribe("products", heard.append)
        history.subscribe("cash_transactions", heard.append)

        backup_service.import_state(history, backup_service.export_state(history))

        assert "products" in heard
        assert "cash_transactions" in heard

    @pytest.mark.parametrize(
        "payload",
        [
            None,
            [],
            {"format_version": 99, "collections": {}},
            {"format_version": FORMAT_VERSION},
            {"format_version": FORMAT_VERSION, "collections": {"invoices": []}},
            {"format_version": FORMAT_VERSION, "collections": {"suppliers": {}}},
            {"format_version": FORMAT_VERSION, "collections": {"suppliers": [{"id": "x", "nickname": "y"}]}},
            {"format_version": FORMAT_VERSION, "collections": {"suppliers": [{"id": "x", "created_at": "soon"}]}},
            {"format_version": FORMAT_VERSION, "collections": {"suppliers": [{"id": "x", "created_at": 5}]}},
            {"format_version": FORMAT_VERSION, "collections": {"products": [{"id": "x", "average_cost_cents": [1]}]}},
        ],
    )
    def test_rejects_malformed_payload(self, history, payload):
        before = snapshot(history)
        with pytest.raises(ValidationError):
            backup_service.import_state(history, payload)
        assert snapshot(history) == before
