# Overview: Service-layer operations for purchases; stock-in, average cost and supplier balance.

"""
Purchase Service

A purchase is the only way stock enters the business. Each purchase
touches three things that must move together:

- the product (quantity up, weighted average cost recomputed)
- the purchase record itself
- the supplier balance (what we owe goes up by quantity * unit price)

All three are written inside one EntityStore transaction.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from ..models import Product, Purchase, Supplier
from ..time_utils import normalize_occurred_at, utcnow
from ..validation import (
    InsufficientStockError,
    ValidationError,
    require_id,
    require_non_negative_int,
    require_positive_int,
    require_text,
)
from .costing import revalue, weighted_average_cost
from .entity_store import EntityStore, Transaction


@dataclass(frozen=True)
class ExistingProduct:
    id: str


@dataclass(frozen=True)
class NewProduct:
    name: str
    category: str | None = None


ProductRef = Union[ExistingProduct, NewProduct]


def product_ref_from_payload(data: dict) -> ProductRef:
    """Build the tagged product reference from a request body."""
    if data.get("product_id"):
        return ExistingProduct(id=require_id(data.get("product_id"), "product_id"))
    new_product = data.get("new_product")
    if isinstance(new_product, dict):
        return NewProduct(
            name=require_text(new_product.get("name"), "new_product.name"),
            category=(new_product.get("category") or None),
        )
    raise ValidationError("Either product_id or new_product is required")


def _apply_purchase(product: Product, supplier: Supplier, quantity: int, unit_price_cents: int) -> None:
    product.quantity, product.average_cost_cents = weighted_average_cost(
        product.quantity, product.average_cost_cents, quantity, unit_price_cents
    )
    supplier.balance_cents += quantity * unit_price_cents


def _revalue_product(product: Product, *, add_quantity: int = 0, add_unit_cost: int = 0,
                     remove_quantity: int = 0, remove_unit_cost: int = 0) -> None:
    # Units already sold cannot be taken back out of stock
    if product.quantity + add_quantity - remove_quantity < 0:
        raise InsufficientStockError(
            product_id=product.id,
            product_name=product.name,
            requested=remove_quantity - add_quantity,
            available=product.quantity,
        )
    product.quantity, product.average_cost_cents = revalue(
        product.quantity,
        product.average_cost_cents,
        add_quantity=add_quantity,
        add_unit_cost=add_unit_cost,
        remove_quantity=remove_quantity,
        remove_unit_cost=remove_unit_cost,
    )


def _record_purchase(tx: Transaction, product: Product, supplier: Supplier, quantity: int,
                     unit_price_cents: int, occurred_at) -> Purchase:
    return tx.add(Purchase(
        product_id=product.id,
        supplier_id=supplier.id,
        quantity=quantity,
        unit_price_cents=unit_price_cents,
        total_cents=quantity * unit_price_cents,
        occurred_at=occurred_at,
    ))


def add_purchase(
    store: EntityStore,
    *,
    product: ProductRef,
    supplier_id: str,
    quantity,
    unit_price_cents,
    occurred_at=None,
) -> Purchase:
    """
    Register stock bought from a supplier.

    Args:
        product: ExistingProduct(id) or NewProduct(name, category)
        supplier_id: supplier the stock was bought from
        quantity: units bought (> 0)
        unit_price_cents: acquisition cost per unit (>= 0)

    Raises:
        ValidationError: bad quantity/price or product reference
        NotFoundError: supplier or existing product missing
    """
    supplier_id = require_id(supplier_id, "supplier_id")
    quantity = require_positive_int(quantity, "quantity")
    unit_price_cents = require_non_negative_int(unit_price_cents, "unit_price_cents")
    try:
        occurred_dt = normalize_occurred_at(occurred_at)
    except ValueError as exc:
        raise ValidationError(str(exc))
    if not isinstance(product, (ExistingProduct, NewProduct)):
        raise ValidationError("product must be ExistingProduct or NewProduct")
    if isinstance(product, NewProduct):
        require_text(product.name, "product name")

    def _op(tx: Transaction) -> Purchase:
        supplier = tx.get(Supplier, supplier_id)

        if isinstance(product, NewProduct):
            # New product starts at exactly this purchase's quantity and cost
            target = tx.add(Product(
                name=product.name.strip(),
                category=product.category,
                quantity=quantity,
                average_cost_cents=unit_price_cents,
            ))
            supplier.balance_cents += quantity * unit_price_cents
        else:
            target = tx.get(Product, product.id)
            _apply_purchase(target, supplier, quantity, unit_price_cents)

        return _record_purchase(tx, target, supplier, quantity, unit_price_cents, occurred_dt)

    return store.transaction(_op)


def update_purchase(
    store: EntityStore,
    purchase_id: str,
    *,
    product_id: str | None = None,
    supplier_id: str | None = None,
    quantity=None,
    unit_price_cents=None,
) -> Purchase:
    """
    Correct a recorded purchase.

    The old purchase is taken back out of stock, average cost and supplier
    balance, then the corrected one is applied, all in one transaction.
    """
    if quantity is not None:
        quantity = require_positive_int(quantity, "quantity")
    if unit_price_cents is not None:
        unit_price_cents = require_non_negative_int(unit_price_cents, "unit_price_cents")
    if product_id is not None:
        product_id = require_id(product_id, "product_id")
    if supplier_id is not None:
        supplier_id = require_id(supplier_id, "supplier_id")

    def _op(tx: Transaction) -> Purchase:
        purchase = tx.get(Purchase, purchase_id)
        old_product = tx.get(Product, purchase.product_id)
        old_supplier = tx.get(Supplier, purchase.supplier_id)

        new_product = old_product if product_id in (None, old_product.id) else tx.get(Product, product_id)
        new_supplier = old_supplier if supplier_id in (None, old_supplier.id) else tx.get(Supplier, supplier_id)
        new_quantity = quantity if quantity is not None else purchase.quantity
        new_price = unit_price_cents if unit_price_cents is not None else purchase.unit_price_cents

        if new_product is old_product:
            _revalue_product(
                old_product,
                add_quantity=new_quantity,
                add_unit_cost=new_price,
                remove_quantity=purchase.quantity,
                remove_unit_cost=purchase.unit_price_cents,
            )
        else:
            _revalue_product(
                old_product,
                remove_quantity=purchase.quantity,
                remove_unit_cost=purchase.unit_price_cents,
            )
            _revalue_product(new_product, add_quantity=new_quantity, add_unit_cost=new_price)

        old_supplier.balance_cents -= purchase.total_cents
        new_supplier.balance_cents += new_quantity * new_price

        purchase.product_id = new_product.id
        purchase.supplier_id = new_supplier.id
        purchase.quantity = new_quantity
        purchase.unit_price_cents = new_price
        purchase.total_cents = new_quantity * new_price
        purchase.updated_at = utcnow()
        return purchase

    return store.transaction(_op)


def delete_purchase(store: EntityStore, purchase_id: str) -> None:
    """
    Delete a purchase and undo its effects.

    Refused with InsufficientStockError when the units it brought in have
    already been sold.
    """
    def _op(tx: Transaction) -> None:
        purchase = tx.get(Purchase, purchase_id)
        product = tx.get(Product, purchase.product_id)
        supplier = tx.get(Supplier, purchase.supplier_id)
        _revalue_product(
            product,
            remove_quantity=purchase.quantity,
            remove_unit_cost=purchase.unit_price_cents,
        )
        supplier.balance_cents -= purchase.total_cents
        tx.delete(purchase)

    store.transaction(_op)


def list_purchases(store: EntityStore, *, supplier_id: str | None = None,
                   product_id: str | None = None) -> list[Purchase]:
    query = store.session.query(Purchase)
    if supplier_id:
        query = query.filter(Purchase.supplier_id == supplier_id)
    if product_id:
        query = query.filter(Purchase.product_id == product_id)
    return query.order_by(Purchase.occurred_at.desc(), Purchase.created_at.desc()).all()
