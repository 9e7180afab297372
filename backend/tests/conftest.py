"""
Pytest fixtures for StorePOS backend tests.

Provides test database setup, store/actor fixtures, stocked products and a
test client.
"""

import uuid
from datetime import timedelta

import pytest

from storepos import create_app
from storepos.extensions import db
from storepos.models import CashierAccount, InventoryBatch, Manager, Product, Store
from storepos.services.auth_service import hash_password
from storepos.services.identity_service import CASHIER, MANAGER, ActorRef
from storepos.time_utils import utcnow


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
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


def _make_store(db_session, name, code):
    store = Store(store_code=code, store_name=name, created_by=None)
    db_session.add(store)
    db_session.commit()
    return store


@pytest.fixture(scope='function')
def store(db_session):
    """Store A."""
    return _make_store(db_session, "Acme Mart", "ACME01")


@pytest.fixture(scope='function')
def other_store(db_session):
    """Store B, for tenant isolation checks."""
    return _make_store(db_session, "Beta Shop", "BETA02")


@pytest.fixture(scope='function')
def manager(db_session, store):
    """Active manager of Store A."""
    m = Manager(
        id=str(uuid.uuid4()),
        store_id=store.id,
        email="manager@acme.test",
        full_name="Mary Manager",
        phone_number="0711000000",
        is_active=True,
    )
    db_session.add(m)
    db_session.commit()
    store.created_by = m.id
    db_session.commit()
    return m


@pytest.fixture(scope='function')
def cashier(db_session, store):
    """Active cashier of Store A."""
    c = CashierAccount(
        store_id=store.id,
        full_name="Carl Cashier",
        phone_number="0722000000",
        password_hash=hash_password("Password123!"),
        is_active=True,
    )
    db_session.add(c)
    db_session.commit()
    return c


@pytest.fixture(scope='function')
def manager_actor(manager):
    return ActorRef(MANAGER, manager.id)


@pytest.fixture(scope='function')
def cashier_actor(cashier):
    return ActorRef(CASHIER, cashier.id)


@pytest.fixture(scope='function')
def make_product(db_session):
    """
    Factory: product with zero or more batches.

    batches: list of (quantity, selling_price_cents, cost_price_cents, age_days);
    larger age_days means an older restock.
    """
    def _make(store, *, sku, name, batches=(), category=None, is_active=True, threshold=10):
        product = Product(store_id=store.id, sku=sku, name=name, category=category, is_active=is_active)
        db_session.add(product)
        db_session.flush()
        now = utcnow()
        for qty, price, cost, age_days in batches:
            db_session.add(InventoryBatch(
                store_id=store.id,
                product_id=product.id,
                quantity_added=qty,
                quantity_remaining=qty,
                selling_price_cents=price,
                cost_price_cents=cost,
                low_stock_threshold=threshold,
                restock_date=now - timedelta(days=age_days),
            ))
        db_session.commit()
        return product

    return _make


@pytest.fixture(scope='function')
def product(store, make_product):
    """Product A: one batch of 50 at 10.00 (cost 6.00)."""
    return make_product(store, sku="ACM-0001", name="Product A", batches=[(50, 1000, 600, 1)])
