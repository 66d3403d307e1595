"""
Entity store tests.

Verifies:
- Collection list/get/insert/update/delete
- transaction() commits once and rolls back everything on error
- Subscribers hear about committed changes only
- Conflicts are retried, and exhausted retries surface as typed errors
"""

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from gestor.extensions import db
from gestor.models import Customer, Supplier
from gestor.services.concurrency import run_with_retry
from gestor.validation import ConflictError, NotFoundError, StoreUnavailableError, ValidationError


class TestCollections:
    def test_insert_assigns_id_and_get_returns_entity(self, store):
        suppliers = store.collection("suppliers")
        supplier_id = suppliers.insert(name="Acme")

        assert isinstance(supplier_id, str) and len(supplier_id) == 32
        fetched = suppliers.get(supplier_id)
        assert fetched.name == "Acme"
        assert fetched.balance_cents == 0

    def test_list_is_in_insertion_order(self, store):
        customers = store.collection("customers")
        ids = [customers.insert(name=name) for name in ("Ana", "Bruno", "Carla")]
        assert [c.id for c in customers.list()] == ids

    def test_update_is_partial(self, store):
        customers = store.collection("customers")
        customer_id = customers.insert(name="Ana", balance_cents=150)

        customers.update(customer_id, name="Ana Maria")

        fetched = customers.get(customer_id)
        assert fetched.name == "Ana Maria"
        assert fetched.balance_cents == 150

    def test_update_rejects_unknown_and_readonly_fields(self, store):
        customers = store.collection("customers")
        customer_id = customers.insert(name="Ana")

        with pytest.raises(ValidationError):
            customers.update(customer_id, nickname="A")
        with pytest.raises(ValidationError):
            customers.update(customer_id, version_id=99)

    def test_delete_and_missing_get(self, store):
        suppliers = store.collection("suppliers")
        supplier_id = suppliers.insert(name="Gone")
        suppliers.delete(supplier_id)

        with pytest.raises(NotFoundError):
            suppliers.get(supplier_id)
        with pytest.raises(NotFoundError):
            suppliers.delete(supplier_id)

    def test_unknown_collection(self, store):
        with pytest.raises(ValidationError):
            store.collection("invoices")


class TestTransactions:
    def test_error_rolls_back_every_write(self, store):
        def _op(tx):
            tx.add(Supplier(name="A"))
            tx.add(Customer(name="B"))
            raise ValidationError("boom")

        with pytest.raises(ValidationError):
            store.transaction(_op)

        assert db.session.query(Supplier).count() == 0
        assert db.session.query(Customer).count() == 0

    def test_returns_function_result(self, store):
        result = store.transaction(lambda tx: tx.add(Supplier(name="A")).id)
        assert db.session.get(Supplier, result).name == "A"

    def test_stale_write_is_retried(self, store):
        calls = []

        def _op(tx):
            calls.append(1)
            if len(calls) < 2:
                raise StaleDataError("stale")
            return tx.add(Supplier(name="After retry")).id

        supplier_id = store.transaction(_op)

        assert len(calls) == 2
        assert store.collection("suppliers").get(supplier_id).name == "After retry"

    def test_retry_exhaustion_is_conflict(self, store):
        def _op(tx):
            raise StaleDataError("stale")

        with pytest.raises(ConflictError) as excinfo:
            store.transaction(_op)
        assert excinfo.value.kind == "conflict"
        assert excinfo.value.details["attempts"] == store.attempts

    def test_locked_read_sees_current_row(self, store, supplier):
        loaded = db.session.get(Supplier, supplier.id)
        assert loaded.balance_cents == 0
        # Written behind the ORM; the identity-map copy still says 0
        table = Supplier.__table__
        db.session.execute(table.update().where(table.c.id == supplier.id).values(balance_cents=700))

        balance = store.transaction(lambda tx: tx.get(Supplier, supplier.id).balance_cents)

        assert balance == 700

    def test_replace_all_keeps_loaded_entities_usable(self, store, supplier):
        store.replace_all({
            "suppliers": [{"id": supplier.id, "name": "Replaced", "balance_cents": 5, "version_id": 1}],
        })

        assert supplier.name == "Replaced"
        assert supplier.balance_cents == 5

    def test_ledger_errors_are_not_retried(self, store):
        calls = []

        def _op(tx):
            calls.append(1)
            raise NotFoundError("missing")

        with pytest.raises(NotFoundError):
            store.transaction(_op)
        assert len(calls) == 1


class TestSubscriptions:
    def test_subscriber_hears_committed_collection(self, store):
        heard = []
        store.subscribe("suppliers", heard.append)

        store.collection("suppliers").insert(name="Acme")

        assert heard == ["suppliers"]

    def test_unsubscribe_stops_notifications(self, store):
        heard = []
        unsubscribe = store.subscribe("customers", heard.append)
        unsubscribe()

        store.collection("customers").insert(name="Ana")

        assert heard == []

    def test_rolled_back_transaction_notifies_nothing(self, store):
        heard = []
        store.subscribe("suppliers", heard.append)

        def _op(tx):
            tx.add(Supplier(name="A"))
            raise ValidationError("boom")

        with pytest.raises(ValidationError):
            store.transaction(_op)
        assert heard == []

    def test_failing_subscriber_does_not_undo_commit(self, store):
        def _broken(name):
            raise RuntimeError("subscriber bug")

        store.subscribe("suppliers", _broken)
        supplier_id = store.collection("suppliers").insert(name="Kept")

        assert store.collection("suppliers").get(supplier_id).name == "Kept"

    def test_subscribe_unknown_collection(self, store):
        with pytest.raises(ValidationError):
            store.subscribe("invoices", lambda name: None)


class TestRunWithRetry:
    def test_succeeds_after_transient_failures(self, db_session):
        attempts = []

        def flaky():
            attempts.append(1)
            if len(attempts) < 3:
                raise StaleDataError("stale")
            return "ok"

        assert run_with_retry(flaky, session=db_session, attempts=3, backoff_base=0) == "ok"
        assert len(attempts) == 3

    def test_operational_error_exhaustion_is_store_unavailable(self, db_session):
        def locked():
            raise OperationalError("UPDATE products", {}, Exception("database is locked"))

        with pytest.raises(StoreUnavailableError) as excinfo:
            run_with_retry(locked, session=db_session, attempts=2, backoff_base=0)
        assert excinfo.value.http_status == 503

    def test_on_retry_called_between_attempts(self, db_session):
        seen = []

        def always_stale():
            raise StaleDataError("stale")

        with pytest.raises(ConflictError):
            run_with_retry(
                always_stale,
                session=db_session,
                attempts=3,
                backoff_base=0,
                on_retry=lambda attempt, exc: seen.append(attempt),
            )
        assert seen == [1, 2]
