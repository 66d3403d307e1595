# Overview: Service-layer operations for the cash register, expenses and direct supplier payments.

"""
Cash Service

The register balance is never stored. Every operation here appends
CashTransaction rows (and, where money leaves for a reason, the record of
that reason) inside one transaction. The balance is always folded from
the rows by reporting_service.cash_balance.

Withdrawals and payments are not blocked by the current balance; the
register may go negative and the dashboard shows it.
"""

from __future__ import annotations

from ..models import CashTransaction, CustomerPayment, Expense, Supplier, SupplierPayment
from ..models.cash import (
    CASH_IN,
    CASH_OUT,
    CASH_WITHDRAW,
    EXPENSE_SOURCE_CASH,
    VALID_EXPENSE_SOURCES,
)
from ..time_utils import normalize_occurred_at
from ..validation import ValidationError, require_id, require_positive_int, require_text
from .entity_store import EntityStore, Transaction
from .payment_service import METHOD_CASH, VALID_METHODS


def _occurred(value):
    try:
        return normalize_occurred_at(value)
    except ValueError as exc:
        raise ValidationError(str(exc))


def _record_cash(tx: Transaction, cash_type: str, amount_cents: int, description: str,
                 occurred_at, **links) -> CashTransaction:
    return tx.add(CashTransaction(
        type=cash_type,
        amount_cents=amount_cents,
        description=description,
        occurred_at=occurred_at,
        **links,
    ))


def add_expense(
    store: EntityStore,
    *,
    description,
    amount_cents,
    source: str = EXPENSE_SOURCE_CASH,
    occurred_at=None,
    customer_payment_id: str | None = None,
    from_cash: bool | None = None,
) -> Expense:
    """
    Record an expense.

    Args:
        description: what the money was spent on
        amount_cents: amount spent (> 0)
        source: CASH or CUSTOMER_PAYMENT
        customer_payment_id: payment the expense was paid from (optional)
        from_cash: also take the amount out of the register;
            defaults to source == CASH

    Raises:
        ValidationError: bad description/amount/source
        NotFoundError: referenced customer payment missing
    """
    description = require_text(description, "description")
    amount_cents = require_positive_int(amount_cents, "amount_cents")
    if source not in VALID_EXPENSE_SOURCES:
        raise ValidationError(f"Invalid expense source: {source}. Must be one of {list(VALID_EXPENSE_SOURCES)}")
    if customer_payment_id is not None:
        customer_payment_id = require_id(customer_payment_id, "customer_payment_id")
    if from_cash is None:
        from_cash = source == EXPENSE_SOURCE_CASH
    occurred_dt = _occurred(occurred_at)

    def _op(tx: Transaction) -> Expense:
        if customer_payment_id is not None:
            tx.get(CustomerPayment, customer_payment_id, lock=False, label="Customer payment")

        expense = tx.add(Expense(
            description=description,
            amount_cents=amount_cents,
            source=source,
            customer_payment_id=customer_payment_id,
            occurred_at=occurred_dt,
        ))
        if from_cash:
            _record_cash(tx, CASH_OUT, amount_cents, description, occurred_dt, expense_id=expense.id)
        return expense

    return store.transaction(_op)


def add_cash_withdrawal(store: EntityStore, *, amount_cents, description, occurred_at=None) -> CashTransaction:
    """Owner takes money out of the register."""
    amount_cents = require_positive_int(amount_cents, "amount_cents")
    description = require_text(description, "description")
    occurred_dt = _occurred(occurred_at)

    return store.transaction(
        lambda tx: _record_cash(tx, CASH_WITHDRAW, amount_cents, description, occurred_dt)
    )


def add_cash_deposit(store: EntityStore, *, amount_cents, description, occurred_at=None) -> CashTransaction:
    """Money put into the register from outside the ledger (change fund, transfer in)."""
    amount_cents = require_positive_int(amount_cents, "amount_cents")
    description = require_text(description, "description")
    occurred_dt = _occurred(occurred_at)

    return store.transaction(
        lambda tx: _record_cash(tx, CASH_IN, amount_cents, description, occurred_dt)
    )


def pay_supplier_from_cash(
    store: EntityStore,
    *,
    supplier_id: str,
    amount_cents,
    method: str = METHOD_CASH,
    description: str | None = None,
    occurred_at=None,
) -> SupplierPayment:
    """
    Pay a supplier directly out of the register.

    Writes the cash OUT movement, the SupplierPayment that links to it and
    lowers the supplier balance, all together. The amount leaves the
    register whatever the method; method only records how it was paid.
    """
    supplier_id = require_id(supplier_id, "supplier_id")
    amount_cents = require_positive_int(amount_cents, "amount_cents")
    if method not in VALID_METHODS:
        raise ValidationError(f"Invalid payment method: {method}. Must be one of {VALID_METHODS}")
    occurred_dt = _occurred(occurred_at)

    def _op(tx: Transaction) -> SupplierPayment:
        supplier = tx.get(Supplier, supplier_id)
        supplier.balance_cents -= amount_cents

        cash = _record_cash(
            tx,
            CASH_OUT,
            amount_cents,
            (description or "").strip() or f"Payment to supplier - {supplier.name}",
            occurred_dt,
        )
        return tx.add(SupplierPayment(
            supplier_id=supplier.id,
            amount_cents=amount_cents,
            method=method,
            origin="DIRECT",
            cash_transaction_id=cash.id,
            occurred_at=occurred_dt,
        ))

    return store.transaction(_op)


def list_expenses(store: EntityStore) -> list[Expense]:
    return (
        store.session.query(Expense)
        .order_by(Expense.occurred_at.desc(), Expense.created_at.desc())
        .all()
    )
