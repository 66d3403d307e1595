# Overview: Master data for suppliers and customers.

"""
Party Service

Suppliers and customers are plain named accounts whose balances are
owned by the ledger. Creating one starts the balance at zero; renaming
never touches the balance. A party that appears in any ledger record
cannot be deleted (EntityInUseError), since its history would dangle.
"""

from __future__ import annotations

from ..models import (
    Customer,
    CustomerPayment,
    PaymentAllocation,
    Purchase,
    Sale,
    Supplier,
    SupplierPayment,
)
from ..validation import EntityInUseError, require_text
from .entity_store import EntityStore, Transaction

# (model, foreign key column name) pairs that keep a party in use
_SUPPLIER_REFERENCES = (
    (Purchase, "supplier_id"),
    (PaymentAllocation, "supplier_id"),
    (SupplierPayment, "supplier_id"),
)
_CUSTOMER_REFERENCES = (
    (Sale, "customer_id"),
    (CustomerPayment, "customer_id"),
)


def _reference_counts(tx: Transaction, references, entity_id: str) -> dict[str, int]:
    counts = {}
    for model, column in references:
        count = tx.query(model).filter(getattr(model, column) == entity_id).count()
        if count:
            counts[model.__tablename__] = count
    return counts


def _delete_party(store: EntityStore, model, references, entity_id: str) -> None:
    def _op(tx: Transaction) -> None:
        party = tx.get(model, entity_id)
        counts = _reference_counts(tx, references, entity_id)
        if counts:
            raise EntityInUseError(
                f"{model.__name__} {party.name} is referenced by ledger records",
                details={"id": entity_id, "references": counts},
            )
        tx.delete(party)

    store.transaction(_op)


# ---------------------------------------------------------------------------
# Suppliers
# ---------------------------------------------------------------------------

def list_suppliers(store: EntityStore) -> list[Supplier]:
    return store.collection("suppliers").list()


def create_supplier(store: EntityStore, *, name) -> Supplier:
    suppliers = store.collection("suppliers")
    supplier_id = suppliers.insert(name=require_text(name, "name"), balance_cents=0)
    return suppliers.get(supplier_id)


def rename_supplier(store: EntityStore, supplier_id: str, *, name) -> Supplier:
    return store.collection("suppliers").update(supplier_id, name=require_text(name, "name"))


def delete_supplier(store: EntityStore, supplier_id: str) -> None:
    """
    Raises:
        NotFoundError: supplier missing
        EntityInUseError: purchases, allocations or direct payments reference it
    """
    _delete_party(store, Supplier, _SUPPLIER_REFERENCES, supplier_id)


# ---------------------------------------------------------------------------
# Customers
# ---------------------------------------------------------------------------

def list_customers(store: EntityStore) -> list[Customer]:
    return store.collection("customers").list()


def create_customer(store: EntityStore, *, name) -> Customer:
    customers = store.collection("customers")
    customer_id = customers.insert(name=require_text(name, "name"), balance_cents=0)
    return customers.get(customer_id)


def rename_customer(store: EntityStore, customer_id: str, *, name) -> Customer:
    return store.collection("customers").update(customer_id, name=require_text(name, "name"))


def delete_customer(store: EntityStore, customer_id: str) -> None:
    """
    Raises:
        NotFoundError: customer missing
        EntityInUseError: sales or payments reference it
    """
    _delete_party(store, Customer, _CUSTOMER_REFERENCES, customer_id)
