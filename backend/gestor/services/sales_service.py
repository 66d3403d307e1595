"""
Sales Service - stock-out, customer debt and profit in one transaction

WHY: A sale decrements stock for every item, adds the sale total to the
customer's balance and records the sale with its computed totals. Stock is
checked against the product rows read inside the same transaction, so a
concurrent sale that committed first is always seen (or detected as a
stale version and retried).
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from ..models import Customer, Product, Sale, SaleItem
from ..time_utils import normalize_occurred_at
from ..validation import (
    InsufficientStockError,
    ValidationError,
    require_id,
    require_non_negative_int,
    require_positive_int,
)
from .costing import line_profit, revalue, round_cents, to_decimal
from .entity_store import EntityStore, Transaction


@dataclass(frozen=True)
class SaleItemInput:
    product_id: str
    quantity: int
    unit_price_cents: int


def items_from_payload(raw_items) -> list[SaleItemInput]:
    if not isinstance(raw_items, list):
        raise ValidationError("items must be a list")
    items = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")
        items.append(SaleItemInput(
            product_id=raw.get("product_id"),
            quantity=raw.get("quantity"),
            unit_price_cents=raw.get("unit_price_cents"),
        ))
    return items


def _validate_items(items) -> list[SaleItemInput]:
    items = list(items or [])
    if not items:
        raise ValidationError("A sale needs at least one item")
    cleaned = []
    for index, item in enumerate(items):
        cleaned.append(SaleItemInput(
            product_id=require_id(item.product_id, f"items[{index}].product_id"),
            quantity=require_positive_int(item.quantity, f"items[{index}].quantity"),
            unit_price_cents=require_non_negative_int(item.unit_price_cents, f"items[{index}].unit_price_cents"),
        ))
    return cleaned


def _check_stock(products: dict[str, Product], requested: dict[str, int]) -> None:
    for product_id, quantity in requested.items():
        product = products[product_id]
        if quantity > product.quantity:
            raise InsufficientStockError(
                product_id=product.id,
                product_name=product.name,
                requested=quantity,
                available=product.quantity,
            )


def _record_sale(tx: Transaction, sale: Sale) -> Sale:
    return tx.add(sale)


def add_sale(store: EntityStore, *, customer_id: str, items, occurred_at=None) -> Sale:
    """
    Sell one or more products to a customer.

    Per-product quantities are summed before the stock check, so two lines
    for the same product cannot oversell it. Any failing item rejects the
    whole sale.

    Raises:
        ValidationError: empty items, bad quantity or price
        NotFoundError: customer or product missing
        InsufficientStockError: an item asks for more than is on hand
    """
    customer_id = require_id(customer_id, "customer_id")
    items = _validate_items(items)
    try:
        occurred_dt = normalize_occurred_at(occurred_at)
    except ValueError as exc:
        raise ValidationError(str(exc))

    requested = _requested_quantities(items)

    def _op(tx: Transaction) -> Sale:
        customer = tx.get(Customer, customer_id)
        # Lock in a stable order so concurrent sales cannot deadlock
        products = {pid: tx.get(Product, pid) for pid in sorted(requested)}
        _check_stock(products, requested)

        sale = Sale(customer_id=customer.id, occurred_at=occurred_dt)
        _apply_items(sale, products, items)
        customer.balance_cents += sale.total_amount_cents
        return _record_sale(tx, sale)

    return store.transaction(_op)


def _requested_quantities(items) -> dict[str, int]:
    requested: dict[str, int] = {}
    for item in items:
        requested[item.product_id] = requested.get(item.product_id, 0) + item.quantity
    return requested


def _apply_items(sale: Sale, products: dict[str, Product], items) -> None:
    """Take items out of stock, append their lines and set the sale totals."""
    total_amount = 0
    total_profit = Decimal("0")
    for position, item in enumerate(items, start=1):
        product = products[item.product_id]
        unit_cost = to_decimal(product.average_cost_cents)
        line_total = item.quantity * item.unit_price_cents

        product.quantity -= item.quantity
        total_amount += line_total
        total_profit += line_profit(item.quantity, item.unit_price_cents, unit_cost)

        sale.items.append(SaleItem(
            position=position,
            product_id=product.id,
            quantity=item.quantity,
            unit_price_cents=item.unit_price_cents,
            unit_cost_cents=unit_cost,
            line_total_cents=line_total,
        ))

    sale.total_amount_cents = total_amount
    sale.total_profit_cents = round_cents(total_profit)


def _restock(product: Product, item: SaleItem) -> None:
    product.quantity, product.average_cost_cents = revalue(
        product.quantity,
        product.average_cost_cents,
        add_quantity=item.quantity,
        add_unit_cost=item.unit_cost_cents,
    )


def update_sale(store: EntityStore, sale_id: str, *, customer_id: str | None = None, items=None) -> Sale:
    """
    Correct a recorded sale.

    With new items, the old items go back into stock at the cost they left
    with and the new ones are sold against the resulting stock and average
    cost, all in one transaction. Changing the customer moves the sale total
    from one balance to the other.

    Raises:
        ValidationError: empty items, bad quantity or price
        NotFoundError: sale, customer or product missing
        InsufficientStockError: the corrected sale asks for more than is on hand
    """
    if customer_id is not None:
        customer_id = require_id(customer_id, "customer_id")
    if items is not None:
        items = _validate_items(items)
        requested = _requested_quantities(items)

    def _op(tx: Transaction) -> Sale:
        sale = tx.get(Sale, sale_id)
        old_customer = tx.get(Customer, sale.customer_id)
        new_customer = old_customer if customer_id in (None, old_customer.id) else tx.get(Customer, customer_id)
        old_customer.balance_cents -= sale.total_amount_cents

        if items is not None:
            product_ids = {item.product_id for item in sale.items} | set(requested)
            products = {pid: tx.get(Product, pid) for pid in sorted(product_ids)}
            for item in sale.items:
                _restock(products[item.product_id], item)
            _check_stock(products, requested)

            # Old lines must be gone before positions are reused
            sale.items.clear()
            tx.flush()
            _apply_items(sale, products, items)

        sale.customer_id = new_customer.id
        new_customer.balance_cents += sale.total_amount_cents
        return sale

    return store.transaction(_op)


def delete_sale(store: EntityStore, sale_id: str) -> None:
    """
    Delete a sale and undo its effects.

    Items go back into stock at the cost they left with, and the customer
    balance drops by the sale total.
    """
    def _op(tx: Transaction) -> None:
        sale = tx.get(Sale, sale_id)
        customer = tx.get(Customer, sale.customer_id)
        for item in sale.items:
            _restock(tx.get(Product, item.product_id), item)
        customer.balance_cents -= sale.total_amount_cents
        tx.delete(sale)

    store.transaction(_op)


def get_sale(store: EntityStore, sale_id: str) -> Sale:
    return store.collection("sales").get(sale_id)


def list_sales(store: EntityStore, *, customer_id: str | None = None) -> list[Sale]:
    query = store.session.query(Sale)
    if customer_id:
        query = query.filter(Sale.customer_id == customer_id)
    return query.order_by(Sale.occurred_at.desc(), Sale.created_at.desc()).all()
