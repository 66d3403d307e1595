"""
Concurrency tests against a file-backed SQLite database.

Two threads, each with its own app context (and therefore its own
session), race to sell the whole stock of one product. Exactly one may
win; the loser sees the committed stock on retry and is rejected.
"""

import threading

import pytest

from gestor import create_app
from gestor.extensions import db
from gestor.models import Customer, Product
from gestor.services import party_service, purchase_service, sales_service
from gestor.services.purchase_service import NewProduct
from gestor.services.sales_service import SaleItemInput
from gestor.validation import ConflictError, InsufficientStockError


@pytest.fixture
def file_app(tmp_path):
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'race.sqlite3'}",
        'LEDGER_RETRY_ATTEMPTS': 5,
        'LEDGER_RETRY_BACKOFF': 0.01,
    })
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.drop_all()
        db.engine.dispose()


def test_two_sales_of_whole_stock_one_wins(file_app, monkeypatch):
    stock = 5
    with file_app.app_context():
        store = file_app.extensions["entity_store"]
        supplier = party_service.create_supplier(store, name="S")
        buyers = [party_service.create_customer(store, name=f"C{i}").id for i in range(2)]
        product_id = purchase_service.add_purchase(
            store, product=NewProduct(name="Scarce"), supplier_id=supplier.id,
            quantity=stock, unit_price_cents=100,
        ).product_id

    # Both threads read the same stock before either writes
    barrier = threading.Barrier(2, timeout=10)
    waited = threading.local()
    original_check = sales_service._check_stock

    def _check_then_wait(products, requested):
        original_check(products, requested)
        if not getattr(waited, "done", False):
            waited.done = True
            barrier.wait()

    monkeypatch.setattr(sales_service, "_check_stock", _check_then_wait)

    outcomes = []

    def _sell(customer_id):
        with file_app.app_context():
            store = file_app.extensions["entity_store"]
            try:
                sales_service.add_sale(
                    store,
                    customer_id=customer_id,
                    items=[SaleItemInput(product_id=product_id, quantity=stock, unit_price_cents=300)],
                )
                outcomes.append("ok")
            except (InsufficientStockError, ConflictError) as exc:
                outcomes.append(exc.kind)

    threads = [threading.Thread(target=_sell, args=(cid,)) for cid in buyers]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert sorted(outcomes) in (["insufficient_stock", "ok"], ["conflict", "ok"])

    with file_app.app_context():
        assert db.session.get(Product, product_id).quantity == 0
        balances = sorted(db.session.get(Customer, cid).balance_cents for cid in buyers)
        assert balances == [0, stock * 300]
