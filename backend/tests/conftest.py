"""
Pytest fixtures for heladeria backend tests.

Provides test database setup, seeded catalog, open registers, and test client.
"""

import pytest
from heladeria import create_app
from heladeria.extensions import db
from heladeria.models import Product
from heladeria.services import catalog_service, register_service


USER_ID = "u1"
BRANCH_ID = "1"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'SYNC_ON_CLOSE': False,
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
def catalog(db_session):
    """Default shop catalog (12 products, 3 price lists)."""
    catalog_service.seed_catalog()
    return catalog_service


@pytest.fixture(scope='function')
def open_register(db_session, catalog):
    """Open register for USER_ID with 1000 in the drawer."""
    register, _adjustment = register_service.open_register(USER_ID, BRANCH_ID, 1000)
    return register


def stock_of(product_id: str) -> int:
    db.session.expire_all()
    return db.session.get(Product, product_id).stock


def session_headers(user_id: str = USER_ID, login_session_id: str = "ls-1") -> dict:
    """Identity headers the front end forwards on every call."""
    return {
        'X-User-Id': user_id,
        'X-Branch-Id': BRANCH_ID,
        'X-Login-Session-Id': login_session_id,
    }
