# Overview: Master data for products; stock and cost fields belong to the ledger.

from __future__ import annotations

from ..models import Product, Purchase, SaleItem
from ..validation import EntityInUseError, ValidationError, require_text
from .entity_store import EntityStore, Transaction

# quantity and average_cost_cents only move through purchases and sales
PRODUCT_MUTABLE_FIELDS = {"name", "category"}


def apply_product_patch(patch: dict) -> dict:
    cleaned = {}
    for key, value in patch.items():
        if key not in PRODUCT_MUTABLE_FIELDS:
            raise ValidationError(f"Field not allowed: {key}")
        if key == "name":
            cleaned[key] = require_text(value, "name")
        else:
            cleaned[key] = (str(value).strip() or None) if value is not None else None
    return cleaned


def list_products(store: EntityStore, *, category: str | None = None) -> list[Product]:
    products = store.collection("products").list()
    if category:
        products = [p for p in products if p.category == category]
    return products


def low_stock_products(store: EntityStore, threshold: int) -> list[Product]:
    return (
        store.session.query(Product)
        .filter(Product.quantity <= threshold)
        .order_by(Product.quantity.asc(), Product.name.asc())
        .all()
    )


def create_product(store: EntityStore, *, name, category=None) -> Product:
    """New products start empty; stock arrives only through purchases."""
    fields = apply_product_patch({"name": name, "category": category})
    products = store.collection("products")
    product_id = products.insert(quantity=0, average_cost_cents=0, **fields)
    return products.get(product_id)


def update_product(store: EntityStore, product_id: str, patch: dict) -> Product:
    fields = apply_product_patch(patch)
    if not fields:
        raise ValidationError("Nothing to update")
    return store.collection("products").update(product_id, **fields)


def delete_product(store: EntityStore, product_id: str) -> None:
    """
    Raises:
        NotFoundError: product missing
        EntityInUseError: purchases or sale items reference it
    """
    def _op(tx: Transaction) -> None:
        product = tx.get(Product, product_id)
        counts = {}
        for model in (Purchase, SaleItem):
            count = tx.query(model).filter(model.product_id == product_id).count()
            if count:
                counts[model.__tablename__] = count
        if counts:
            raise EntityInUseError(
                f"Product {product.name} is referenced by ledger records",
                details={"id": product_id, "references": counts},
            )
        tx.delete(product)

    store.transaction(_op)
