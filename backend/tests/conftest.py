"""
Pytest fixtures for gestor backend tests.

Provides test database setup, the entity store, a test client and small
ledger factories.
"""

import pytest

from gestor import create_app
from gestor.extensions import db
from gestor.services import party_service, purchase_service
from gestor.services.purchase_service import NewProduct


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LEDGER_RETRY_BACKOFF': 0,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def store(app, db_session):
    """The app's EntityStore, with no leftover subscribers."""
    entity_store = app.extensions["entity_store"]
    entity_store._subscribers.clear()
    return entity_store


@pytest.fixture(scope='function')
def supplier(store):
    return party_service.create_supplier(store, name="Supplier S")


@pytest.fixture(scope='function')
def customer(store):
    return party_service.create_customer(store, name="Customer C")


@pytest.fixture(scope='function')
def widget(store, supplier):
    """Widget bought 10 @ 200 from supplier S."""
    purchase = purchase_service.add_purchase(
        store,
        product=NewProduct(name="Widget", category="Tools"),
        supplier_id=supplier.id,
        quantity=10,
        unit_price_cents=200,
    )
    return purchase.product
