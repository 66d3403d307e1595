# Overview: Service-layer operations for customer payments and their supplier allocations.

"""
Customer Payment Service

WHY: A customer paying down their balance is often money that goes
straight to a supplier. The payment records how much was redirected to
each supplier (allocations); whatever is not allocated lands in the cash
register.

ALLOCATION POLICY:
- Sum of allocations must not exceed the payment amount.
- The unallocated remainder is always credited to cash (CashTransaction IN).
- Zero allocations are accepted and ignored.

Everything (customer balance, supplier balances, payment record, cash
entry) is committed as one unit.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..models import CashTransaction, Customer, CustomerPayment, PaymentAllocation, Supplier
from ..models.cash import CASH_IN
from ..time_utils import normalize_occurred_at
from ..validation import (
    ValidationError,
    require_id,
    require_non_negative_int,
    require_positive_int,
)
from .entity_store import EntityStore, Transaction


# =============================================================================
# PAYMENT METHODS (CONSTANTS)
# =============================================================================

METHOD_CASH = "CASH"
METHOD_CHECK = "CHECK"
METHOD_PIX = "PIX"
METHOD_CARD = "CARD"
METHOD_TRANSFER = "TRANSFER"

VALID_METHODS = [
    METHOD_CASH,
    METHOD_CHECK,
    METHOD_PIX,
    METHOD_CARD,
    METHOD_TRANSFER,
]


@dataclass(frozen=True)
class AllocationInput:
    supplier_id: str
    amount_cents: int


def allocations_from_payload(raw_allocations) -> list[AllocationInput]:
    if raw_allocations is None:
        return []
    if not isinstance(raw_allocations, list):
        raise ValidationError("allocations must be a list")
    allocations = []
    for index, raw in enumerate(raw_allocations):
        if not isinstance(raw, dict):
            raise ValidationError(f"allocations[{index}] must be an object")
        allocations.append(AllocationInput(
            supplier_id=raw.get("supplier_id"),
            amount_cents=raw.get("amount_cents"),
        ))
    return allocations


def _validate_allocations(allocations, amount_cents: int) -> list[AllocationInput]:
    cleaned = []
    for index, alloc in enumerate(allocations or []):
        cleaned.append(AllocationInput(
            supplier_id=require_id(alloc.supplier_id, f"allocations[{index}].supplier_id"),
            amount_cents=require_non_negative_int(alloc.amount_cents, f"allocations[{index}].amount_cents"),
        ))

    allocated = sum(a.amount_cents for a in cleaned)
    if allocated > amount_cents:
        raise ValidationError(
            "Allocations exceed the payment amount",
            details={"amount_cents": amount_cents, "allocated_cents": allocated},
        )
    return cleaned


def _record_payment(tx: Transaction, payment: CustomerPayment) -> CustomerPayment:
    return tx.add(payment)


def add_customer_payment(
    store: EntityStore,
    *,
    customer_id: str,
    amount_cents,
    method: str,
    allocations=(),
    occurred_at=None,
) -> CustomerPayment:
    """
    Record money received from a customer.

    Args:
        customer_id: paying customer
        amount_cents: amount received (> 0)
        method: one of VALID_METHODS
        allocations: AllocationInput(supplier_id, amount_cents) items

    Returns:
        CustomerPayment record (allocations attached)

    Raises:
        ValidationError: bad amount/method or over-allocation
        NotFoundError: customer or an allocated supplier missing
    """
    customer_id = require_id(customer_id, "customer_id")
    amount_cents = require_positive_int(amount_cents, "amount_cents")
    if method not in VALID_METHODS:
        raise ValidationError(f"Invalid payment method: {method}. Must be one of {VALID_METHODS}")
    allocations = _validate_allocations(allocations, amount_cents)
    try:
        occurred_dt = normalize_occurred_at(occurred_at)
    except ValueError as exc:
        raise ValidationError(str(exc))

    def _op(tx: Transaction) -> CustomerPayment:
        customer = tx.get(Customer, customer_id)
        customer.balance_cents -= amount_cents

        payment = CustomerPayment(
            customer_id=customer.id,
            amount_cents=amount_cents,
            method=method,
            occurred_at=occurred_dt,
        )
        position = 0
        for alloc in allocations:
            if alloc.amount_cents == 0:
                continue
            supplier = tx.get(Supplier, alloc.supplier_id)
            supplier.balance_cents -= alloc.amount_cents
            position += 1
            payment.allocations.append(PaymentAllocation(
                position=position,
                supplier_id=supplier.id,
                amount_cents=alloc.amount_cents,
            ))
        _record_payment(tx, payment)

        remainder = amount_cents - sum(a.amount_cents for a in allocations)
        if remainder > 0:
            tx.add(CashTransaction(
                type=CASH_IN,
                amount_cents=remainder,
                description=f"Customer payment - {customer.name}",
                customer_payment_id=payment.id,
                occurred_at=occurred_dt,
            ))
        return payment

    return store.transaction(_op)


def list_customer_payments(store: EntityStore, *, customer_id: str | None = None) -> list[CustomerPayment]:
    query = store.session.query(CustomerPayment)
    if customer_id:
        query = query.filter(CustomerPayment.customer_id == customer_id)
    return query.order_by(CustomerPayment.occurred_at.desc(), CustomerPayment.created_at.desc()).all()
