"""
Pytest fixtures for stocktake backend tests.

Provides test database setup, tenant fixtures, and test client.
"""

import pytest
from stocktake import create_app
from stocktake.extensions import db
from stocktake.models import Organization, Store
from stocktake.services import notification_service, stock_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'DB_RETRY_BACKOFF': 0,
        'NOTIFY_WEBHOOK_URL': None,
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
def notifications(app):
    """Capture notifications sent during a test as (kind, message) tuples."""
    sent = []

    def sink(kind, message):
        sent.append((kind, message))

    channel = notification_service.get_channel()
    channel.add_sink(sink)
    yield sent
    channel.remove_sink(sink)


@pytest.fixture(scope='function')
def org_a(db_session):
    """Create Organization A (first tenant)."""
    org = Organization(name="Org A - Acme Corp", code="ACME", is_active=True)
    db_session.add(org)
    db_session.commit()
    return org


@pytest.fixture(scope='function')
def store_a(db_session, org_a):
    """Create Store A in Organization A."""
    store = Store(org_id=org_a.id, name="Store A1", code="A1")
    db_session.add(store)
    db_session.commit()
    return store


@pytest.fixture(scope='function')
def store_b(db_session, org_a):
    """Create a second store in Organization A."""
    store = Store(org_id=org_a.id, name="Store A2", code="A2")
    db_session.add(store)
    db_session.commit()
    return store


@pytest.fixture(scope='function')
def products(db_session, store_a):
    """
    Three products in Store A with live stock {A: 10, B: 5, C: 0}.

    Returns a dict keyed by "A", "B", "C".
    """
    return {
        "A": stock_service.create_product(store_a.id, "SKU-A", "Apple Juice", cost_cents=150, quantity_on_hand=10),
        "B": stock_service.create_product(store_a.id, "SKU-B", "Bread Loaf", cost_cents=200, quantity_on_hand=5),
        "C": stock_service.create_product(store_a.id, "SKU-C", "Cheddar Block", cost_cents=400, quantity_on_hand=0),
    }
