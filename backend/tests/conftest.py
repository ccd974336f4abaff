"""
Pytest fixtures for Kasir backend tests.

Provides the app with an in-memory database, per-test table wipe,
store/staff/product fixtures and an in-memory sales repository.
"""

from datetime import datetime

import pytest

from kasir import create_app
from kasir.extensions import db
from kasir.models.auth import ROLE_ADMIN, ROLE_CASHIER, ROLE_OWNER
from kasir.repositories import LocalSalesRepository, ProductRecord, TransactionRecord, get_repository
from kasir.services import cashier_service, session_service, store_service


PASSWORD = "rahasia123"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'DATA_BACKEND': 'sql',
        'DEFAULT_TIMEZONE': 'Asia/Jakarta',
        'SETTLEMENT_CARRY_FORWARD': False,
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


@pytest.fixture(scope='function')
def store(db_session):
    """Store in Jakarta (UTC+7, no DST)."""
    return store_service.create_store("Toko Uji", "TEST01", timezone="Asia/Jakarta")


@pytest.fixture(scope='function')
def other_store(db_session):
    return store_service.create_store("Toko Lain", "OTHER01", timezone="Asia/Jakarta")


@pytest.fixture(scope='function')
def owner(store):
    return cashier_service.create_cashier(store.id, "owner", PASSWORD, "Pemilik", ROLE_OWNER)


@pytest.fixture(scope='function')
def admin(store):
    return cashier_service.create_cashier(store.id, "admin", PASSWORD, "Admin Toko", ROLE_ADMIN)


@pytest.fixture(scope='function')
def cashier(store):
    return cashier_service.create_cashier(store.id, "kasir1", PASSWORD, "Sari", ROLE_CASHIER)


@pytest.fixture(scope='function')
def other_owner(other_store):
    return cashier_service.create_cashier(other_store.id, "owner", PASSWORD, "Pemilik Lain", ROLE_OWNER)


@pytest.fixture(scope='function')
def products(app, store):
    """Two catalog products in the SQL backend: nasi goreng and es teh."""
    repo = get_repository()
    nasi = repo.add_product(store.id, ProductRecord(
        store_id=store.id, name="Nasi Goreng", sku="MKN001",
        price_cents=15000, cost_price_cents=10000, stock=50, min_stock=10,
    ))
    teh = repo.add_product(store.id, ProductRecord(
        store_id=store.id, name="Es Teh Manis", sku="MNM001",
        price_cents=5000, cost_price_cents=2000, stock=5, min_stock=0,
    ))
    return nasi, teh


@pytest.fixture(scope='function')
def auth_headers(db_session):
    """Returns a helper that opens a session for a cashier and builds headers."""
    def _headers(account) -> dict:
        _, token = session_service.create_session(account)
        return {'Authorization': f'Bearer {token}'}
    return _headers


@pytest.fixture
def local_repo():
    """In-memory sales repository (no file)."""
    return LocalSalesRepository()


@pytest.fixture
def record_sale():
    """
    Returns a helper that writes a transaction straight into a repository,
    bypassing checkout (no items, no stock movement).
    """
    counter = {"n": 0}

    def _record(repo, store_id, total_cents: int, method: str, created_at: datetime, status: str = "completed"):
        counter["n"] += 1
        return repo.create_transaction(store_id, TransactionRecord(
            store_id=store_id,
            invoice_number=f"INV-T{counter['n']:04d}",
            subtotal_cents=total_cents,
            total_cents=total_cents,
            payment_method=method,
            payment_status=status,
            created_at=created_at,
        ), [])

    return _record
