# Overview: Read-model projections; every figure is recomputed from the ledger rows on each call.

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import func

from ..models import (
    CashTransaction,
    Customer,
    CustomerPayment,
    Expense,
    PaymentAllocation,
    Product,
    Purchase,
    Sale,
    SaleItem,
    Supplier,
    SupplierPayment,
)
from ..models.cash import CASH_IN
from ..time_utils import day_key, day_range, to_utc_z
from ..validation import ValidationError
from .costing import line_profit, round_cents
from .entity_store import EntityStore

DEFAULT_LOW_STOCK_THRESHOLD = 5


def _parse_range(start: str | None, end: str | None) -> tuple[datetime | None, datetime | None]:
    try:
        return day_range(start, end)
    except ValueError:
        raise ValidationError("start/end must be ISO-8601 dates")


def _sale_item_rows(store: EntityStore, start, end, *, category=None, customer_id=None):
    start_dt, end_dt = _parse_range(start, end)
    query = (
        store.session.query(SaleItem, Sale, Product)
        .join(Sale, Sale.id == SaleItem.sale_id)
        .join(Product, Product.id == SaleItem.product_id)
    )
    if start_dt:
        query = query.filter(Sale.occurred_at >= start_dt)
    if end_dt:
        query = query.filter(Sale.occurred_at <= end_dt)
    if category:
        query = query.filter(Product.category == category)
    if customer_id:
        query = query.filter(Sale.customer_id == customer_id)
    return query.all()


# ---------------------------------------------------------------------------
# Cash
# ---------------------------------------------------------------------------

def cash_balance(store: EntityStore) -> int:
    """Sum of IN minus sum of OUT and WITHDRAW. Order of rows is irrelevant."""
    rows = (
        store.session.query(CashTransaction.type, func.coalesce(func.sum(CashTransaction.amount_cents), 0))
        .group_by(CashTransaction.type)
        .all()
    )
    balance = 0
    for cash_type, total in rows:
        balance += int(total) if cash_type == CASH_IN else -int(total)
    return balance


def cash_movements(store: EntityStore, *, limit: int | None = None) -> list[CashTransaction]:
    query = store.session.query(CashTransaction).order_by(
        CashTransaction.occurred_at.desc(), CashTransaction.created_at.desc()
    )
    if limit:
        query = query.limit(limit)
    return query.all()


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------

def dashboard(store: EntityStore, *, low_stock_threshold: int | None = None) -> dict:
    threshold = DEFAULT_LOW_STOCK_THRESHOLD if low_stock_threshold is None else low_stock_threshold
    session = store.session

    def _sum(column) -> int:
        return int(session.query(func.coalesce(func.sum(column), 0)).scalar() or 0)

    return {
        "total_revenue_cents": _sum(Sale.total_amount_cents),
        "total_profit_cents": _sum(Sale.total_profit_cents),
        "total_customer_debt_cents": _sum(Customer.balance_cents),
        "total_supplier_debt_cents": _sum(Supplier.balance_cents),
        "total_expenses_cents": _sum(Expense.amount_cents),
        "cash_balance_cents": cash_balance(store),
        "low_stock_threshold": threshold,
        "low_stock_count": session.query(Product).filter(Product.quantity <= threshold).count(),
        "customer_count": session.query(Customer).count(),
        "supplier_count": session.query(Supplier).count(),
        "product_count": session.query(Product).count(),
        "sales_count": session.query(Sale).count(),
    }


# ---------------------------------------------------------------------------
# Sales rollups
# ---------------------------------------------------------------------------

def daily_sales(store: EntityStore, *, start: str | None = None, end: str | None = None,
                customer_id: str | None = None) -> list[dict]:
    start_dt, end_dt = _parse_range(start, end)
    query = store.session.query(Sale)
    if start_dt:
        query = query.filter(Sale.occurred_at >= start_dt)
    if end_dt:
        query = query.filter(Sale.occurred_at <= end_dt)
    if customer_id:
        query = query.filter(Sale.customer_id == customer_id)

    buckets: dict[str, dict] = {}
    for sale in query.all():
        key = day_key(sale.occurred_at)
        bucket = buckets.setdefault(key, {"date": key, "total_cents": 0, "profit_cents": 0, "sales_count": 0})
        bucket["total_cents"] += sale.total_amount_cents
        bucket["profit_cents"] += sale.total_profit_cents
        bucket["sales_count"] += 1
    return [buckets[k] for k in sorted(buckets)]


def product_performance(store: EntityStore, *, start: str | None = None, end: str | None = None,
                        category: str | None = None, customer_id: str | None = None) -> list[dict]:
    """Quantity sold, revenue and profit per product; highest revenue first."""
    stats: dict[str, dict] = {}
    for item, _sale, product in _sale_item_rows(store, start, end, category=category, customer_id=customer_id):
        entry = stats.setdefault(product.id, {
            "product_id": product.id,
            "name": product.name,
            "category": product.category,
            "quantity_sold": 0,
            "revenue_cents": 0,
            "profit": Decimal("0"),
        })
        entry["quantity_sold"] += item.quantity
        entry["revenue_cents"] += item.line_total_cents
        entry["profit"] += line_profit(item.quantity, item.unit_price_cents, item.unit_cost_cents)

    rows = []
    for entry in stats.values():
        profit = entry.pop("profit")
        entry["profit_cents"] = round_cents(profit)
        rows.append(entry)
    rows.sort(key=lambda r: (-r["revenue_cents"], r["name"]))
    return rows


def customer_analysis(store: EntityStore, *, start: str | None = None, end: str | None = None,
                      customer_id: str | None = None) -> list[dict]:
    """Total spent, number of sales and last sale date per customer; biggest spender first."""
    start_dt, end_dt = _parse_range(start, end)
    query = store.session.query(Sale, Customer).join(Customer, Customer.id == Sale.customer_id)
    if start_dt:
        query = query.filter(Sale.occurred_at >= start_dt)
    if end_dt:
        query = query.filter(Sale.occurred_at <= end_dt)
    if customer_id:
        query = query.filter(Sale.customer_id == customer_id)

    stats: dict[str, dict] = {}
    for sale, customer in query.all():
        entry = stats.setdefault(customer.id, {
            "customer_id": customer.id,
            "name": customer.name,
            "total_spent_cents": 0,
            "purchase_count": 0,
            "last_purchase_at": None,
            "balance_cents": customer.balance_cents,
        })
        entry["total_spent_cents"] += sale.total_amount_cents
        entry["purchase_count"] += 1
        if entry["last_purchase_at"] is None or sale.occurred_at > entry["last_purchase_at"]:
            entry["last_purchase_at"] = sale.occurred_at

    rows = sorted(stats.values(), key=lambda r: (-r["total_spent_cents"], r["name"]))
    for row in rows:
        row["last_purchase_at"] = to_utc_z(row["last_purchase_at"])
    return rows


# ---------------------------------------------------------------------------
# Statements
# ---------------------------------------------------------------------------

def customer_statement(store: EntityStore, customer_id: str) -> dict:
    customer = store.collection("customers").get(customer_id)
    sales = (
        store.session.query(Sale)
        .filter(Sale.customer_id == customer_id)
        .order_by(Sale.occurred_at.asc(), Sale.created_at.asc())
        .all()
    )
    payments = (
        store.session.query(CustomerPayment)
        .filter(CustomerPayment.customer_id == customer_id)
        .order_by(CustomerPayment.occurred_at.asc(), CustomerPayment.created_at.asc())
        .all()
    )
    total_sales = sum(s.total_amount_cents for s in sales)
    total_paid = sum(p.amount_cents for p in payments)
    return {
        "customer": customer.to_dict(),
        "sales": [s.to_dict() for s in sales],
        "payments": [p.to_dict() for p in payments],
        "total_sales_cents": total_sales,
        "total_paid_cents": total_paid,
        "balance_cents": customer.balance_cents,
    }


def supplier_statement(store: EntityStore, supplier_id: str) -> dict:
    supplier = store.collection("suppliers").get(supplier_id)
    purchases = (
        store.session.query(Purchase)
        .filter(Purchase.supplier_id == supplier_id)
        .order_by(Purchase.occurred_at.asc(), Purchase.created_at.asc())
        .all()
    )
    allocations = (
        store.session.query(PaymentAllocation, CustomerPayment)
        .join(CustomerPayment, CustomerPayment.id == PaymentAllocation.payment_id)
        .filter(PaymentAllocation.supplier_id == supplier_id)
        .order_by(CustomerPayment.occurred_at.asc(), PaymentAllocation.position.asc())
        .all()
    )
    direct = (
        store.session.query(SupplierPayment)
        .filter(SupplierPayment.supplier_id == supplier_id)
        .order_by(SupplierPayment.occurred_at.asc(), SupplierPayment.created_at.asc())
        .all()
    )
    total_purchased = sum(p.total_cents for p in purchases)
    total_allocated = sum(a.amount_cents for a, _ in allocations)
    total_direct = sum(p.amount_cents for p in direct)
    return {
        "supplier": supplier.to_dict(),
        "purchases": [p.to_dict() for p in purchases],
        "allocations": [
            {
                "payment_id": payment.id,
                "customer_id": payment.customer_id,
                "amount_cents": alloc.amount_cents,
                "occurred_at": to_utc_z(payment.occurred_at),
            }
            for alloc, payment in allocations
        ],
        "direct_payments": [p.to_dict() for p in direct],
        "total_purchased_cents": total_purchased,
        "total_paid_cents": total_allocated + total_direct,
        "balance_cents": supplier.balance_cents,
    }


# ---------------------------------------------------------------------------
# Invariant audit
# ---------------------------------------------------------------------------

def _sums_by(session, key_column, value_column) -> dict[str, int]:
    rows = session.query(key_column, func.sum(value_column)).group_by(key_column).all()
    return {key: int(total or 0) for key, total in rows}


def balance_audit(store: EntityStore) -> dict:
    """
    Recompute every stored balance and stock quantity from ledger history.

    supplier.balance == purchases - allocations - direct payments
    customer.balance == sales - payments
    product.quantity == purchased - sold
    """
    session = store.session
    purchased = _sums_by(session, Purchase.supplier_id, Purchase.total_cents)
    allocated = _sums_by(session, PaymentAllocation.supplier_id, PaymentAllocation.amount_cents)
    paid_direct = _sums_by(session, SupplierPayment.supplier_id, SupplierPayment.amount_cents)
    sold_to = _sums_by(session, Sale.customer_id, Sale.total_amount_cents)
    paid_by = _sums_by(session, CustomerPayment.customer_id, CustomerPayment.amount_cents)
    units_in = _sums_by(session, Purchase.product_id, Purchase.quantity)
    units_out = _sums_by(session, SaleItem.product_id, SaleItem.quantity)

    mismatches = []

    def _check(entity: str, obj, field: str, stored: int, expected: int) -> None:
        if stored != expected:
            mismatches.append({
                "entity": entity,
                "id": obj.id,
                "name": obj.name,
                "field": field,
                "stored": stored,
                "expected": expected,
            })

    suppliers = session.query(Supplier).all()
    for s in suppliers:
        expected = purchased.get(s.id, 0) - allocated.get(s.id, 0) - paid_direct.get(s.id, 0)
        _check("suppliers", s, "balance_cents", s.balance_cents, expected)

    customers = session.query(Customer).all()
    for c in customers:
        _check("customers", c, "balance_cents", c.balance_cents, sold_to.get(c.id, 0) - paid_by.get(c.id, 0))

    products = session.query(Product).all()
    for p in products:
        _check("products", p, "quantity", p.quantity, units_in.get(p.id, 0) - units_out.get(p.id, 0))
        if p.quantity < 0:
            mismatches.append({
                "entity": "products",
                "id": p.id,
                "name": p.name,
                "field": "quantity",
                "stored": p.quantity,
                "expected": ">= 0",
            })

    return {
        "ok": not mismatches,
        "checked": {
            "suppliers": len(suppliers),
            "customers": len(customers),
            "products": len(products),
        },
        "mismatches": mismatches,
    }
