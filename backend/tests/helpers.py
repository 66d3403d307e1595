"""
Shared ledger helpers for gestor backend tests.
"""

from gestor.extensions import db
from gestor.services import backup_service, purchase_service, sales_service
from gestor.services.purchase_service import ExistingProduct
from gestor.services.sales_service import SaleItemInput


def buy(store, supplier_id, product_id, quantity, unit_price_cents, **kwargs):
    return purchase_service.add_purchase(
        store,
        product=ExistingProduct(id=product_id),
        supplier_id=supplier_id,
        quantity=quantity,
        unit_price_cents=unit_price_cents,
        **kwargs,
    )


def sale_items(*lines):
    """lines are (product_id, quantity, unit_price_cents) tuples."""
    return [SaleItemInput(product_id=p, quantity=q, unit_price_cents=u) for p, q, u in lines]


def sell(store, customer_id, *lines, **kwargs):
    return sales_service.add_sale(store, customer_id=customer_id, items=sale_items(*lines), **kwargs)


def snapshot(store) -> dict:
    """Every row of every table; equal snapshots mean nothing changed."""
    db.session.expire_all()
    return backup_service.export_state(store)["collections"]
