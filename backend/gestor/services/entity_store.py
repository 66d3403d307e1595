# Overview: Durable, observable entity collections plus the transaction primitive used by the ledger.

"""
Entity Store contract (authoritative)

- Every collection offers list / get / insert / update / delete.
- insert assigns the opaque id and returns it.
- transaction(fn) runs fn(tx) as one isolated unit: one commit at the end,
  full rollback on any exception, automatic retry of the whole fn when a
  versioned row turned out stale or the database reported a lock.
- Subscribers are notified per changed collection, only after a commit.
- The store holds no ledger state; it only moves rows in and out of the DB.
"""

from __future__ import annotations

import logging
from itertools import chain

from flask import current_app
from sqlalchemy import event
from sqlalchemy.orm import Session

from ..models import (
    Supplier,
    Customer,
    Product,
    Purchase,
    Sale,
    SaleItem,
    CustomerPayment,
    PaymentAllocation,
    SupplierPayment,
    Expense,
    CashTransaction,
)
from ..validation import NotFoundError, ValidationError
from .concurrency import lock_for_update, run_with_retry


COLLECTIONS = {
    "suppliers": Supplier,
    "customers": Customer,
    "products": Product,
    "purchases": Purchase,
    "sales": Sale,
    "customer_payments": CustomerPayment,
    "expenses": Expense,
    "cash_transactions": CashTransaction,
    "supplier_payments": SupplierPayment,
}

# Parents before children
TABLE_ORDER = (
    Supplier,
    Customer,
    Product,
    Purchase,
    Sale,
    SaleItem,
    CustomerPayment,
    PaymentAllocation,
    Expense,
    CashTransaction,
    SupplierPayment,
)

_CHANGED_KEY = "gestor.changed_tables"
_READONLY_FIELDS = {"id", "version_id"}


@event.listens_for(Session, "after_flush")
def _record_changed_tables(session, flush_context):
    changed = session.info.setdefault(_CHANGED_KEY, set())
    for obj in chain(session.new, session.dirty, session.deleted):
        table = getattr(obj, "__tablename__", None)
        if table:
            changed.add(table)


@event.listens_for(Session, "after_rollback")
def _forget_changed_tables(session):
    session.info.pop(_CHANGED_KEY, None)


class Transaction:
    """Read/write handle passed to the function run by EntityStore.transaction."""

    def __init__(self, session):
        self.session = session

    def find(self, model, entity_id, *, lock: bool = False):
        query = self.session.query(model).filter_by(id=entity_id)
        if lock:
            # Locked reads must see the row as committed, not the identity-map copy
            query = lock_for_update(query).populate_existing()
        return query.first()

    def get(self, model, entity_id, *, lock: bool = True, label: str | None = None):
        obj = self.find(model, entity_id, lock=lock)
        if obj is None:
            label = label or model.__name__
            raise NotFoundError(
                f"{label} {entity_id} not found",
                details={"entity": model.__tablename__, "id": entity_id},
            )
        return obj

    def add(self, obj):
        self.session.add(obj)
        self.session.flush()
        return obj

    def delete(self, obj) -> None:
        self.session.delete(obj)

    def query(self, *entities):
        return self.session.query(*entities)

    def flush(self) -> None:
        self.session.flush()


class Collection:
    """One entity collection backed by a mapped table."""

    def __init__(self, store: "EntityStore", name: str, model):
        self.store = store
        self.name = name
        self.model = model
        self._columns = {c.key for c in model.__mapper__.columns}

    def _check_fields(self, fields: dict) -> None:
        for key in fields:
            if key not in self._columns or key in _READONLY_FIELDS:
                raise ValidationError(f"Field not allowed on {self.name}: {key}")

    def list(self) -> list:
        return (
            self.store.session.query(self.model)
            .order_by(self.model.created_at.asc(), self.model.id.asc())
            .all()
        )

    def get(self, entity_id: str):
        obj = self.store.session.query(self.model).filter_by(id=entity_id).first()
        if obj is None:
            raise NotFoundError(
                f"{self.model.__name__} {entity_id} not found",
                details={"entity": self.name, "id": entity_id},
            )
        return obj

    def insert(self, **fields) -> str:
        self._check_fields(fields)

        def _op(tx: Transaction):
            obj = tx.add(self.model(**fields))
            return obj.id

        return self.store.transaction(_op)

    def update(self, entity_id: str, **fields):
        self._check_fields(fields)

        def _op(tx: Transaction):
            obj = tx.get(self.model, entity_id)
            for key, value in fields.items():
                setattr(obj, key, value)
            return obj

        return self.store.transaction(_op)

    def delete(self, entity_id: str) -> None:
        def _op(tx: Transaction):
            tx.delete(tx.get(self.model, entity_id))

        self.store.transaction(_op)


class EntityStore:
    """
    The single mutable shared resource of the application.

    Constructed once per app (see create_app) and handed explicitly to
    every ledger operation.
    """

    def __init__(self, session, *, attempts: int = 3, backoff_base: float = 0.05, logger=None):
        self.session = session
        self.attempts = attempts
        self.backoff_base = backoff_base
        self.logger = logger or logging.getLogger(__name__)
        self._subscribers: dict[str, list] = {}

    def collection(self, name: str) -> Collection:
        model = COLLECTIONS.get(name)
        if model is None:
            raise ValidationError(f"Unknown collection: {name}")
        return Collection(self, name, model)

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def transaction(self, fn):
        """
        Run fn(tx) atomically and return its result.

        fn may be executed more than once; it must read everything it needs
        through tx on every call.
        """
        session = self.session

        def _attempt():
            session.info.pop(_CHANGED_KEY, None)
            try:
                result = fn(Transaction(session))
                session.commit()
            except Exception:
                session.rollback()
                raise
            return result

        result = run_with_retry(
            _attempt,
            session=session,
            attempts=self.attempts,
            backoff_base=self.backoff_base,
            on_retry=self._log_retry,
        )
        self._notify(session.info.pop(_CHANGED_KEY, set()))
        return result

    def _log_retry(self, attempt: int, exc: Exception) -> None:
        self.logger.warning(
            "Retrying store transaction after %s (attempt %d/%d)",
            type(exc).__name__, attempt, self.attempts,
        )

    def replace_all(self, rows_by_table: dict[str, list[dict]]) -> dict[str, int]:
        """
        Replace every ledger table wholesale. No ledger rules run here;
        callers are responsible for handing over consistent data.
        """

        def _op(tx: Transaction):
            for model in reversed(TABLE_ORDER):
                tx.query(model).delete(synchronize_session=False)
            tx.session.expire_all()

            counts = {}
            for model in TABLE_ORDER:
                rows = rows_by_table.get(model.__tablename__) or []
                if rows:
                    tx.session.execute(model.__table__.insert(), rows)
                counts[model.__tablename__] = len(rows)
            return counts

        counts = self.transaction(_op)
        self._notify(set(COLLECTIONS))
        return counts

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, collection: str, callback):
        """Call callback(collection) after every commit touching it. Returns an unsubscribe function."""
        if collection not in COLLECTIONS:
            raise ValidationError(f"Unknown collection: {collection}")
        callbacks = self._subscribers.setdefault(collection, [])
        callbacks.append(callback)

        def unsubscribe():
            if callback in callbacks:
                callbacks.remove(callback)

        return unsubscribe

    def _notify(self, tables) -> None:
        for name in sorted(t for t in tables if t in COLLECTIONS):
            for callback in list(self._subscribers.get(name, ())):
                try:
                    callback(name)
                except Exception:
                    self.logger.exception("Subscriber for %s failed", name)


def get_store() -> EntityStore:
    """The EntityStore of the current Flask app."""
    return current_app.extensions["entity_store"]
