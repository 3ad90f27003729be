"""
Pytest fixtures for the stock ledger backend tests.

Provides an in-memory database, a test client and product factories.
"""

import json

import pytest
from stockledger import create_app
from stockledger.config import TestConfig
from stockledger.extensions import db
from stockledger.models import Product


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

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
def make_product(db_session):
    """Factory: make_product(stock=10, sell_price_cents=250, ...) -> Product."""
    counter = {"n": 0}

    def _make(**overrides) -> Product:
        counter["n"] += 1
        fields = {
            "name": f"Product {counter['n']}",
            "category": "Groceries",
            "cost_price_cents": 100,
            "sell_price_cents": 250,
            "stock": 10,
        }
        fields.update(overrides)
        product = Product(**fields)
        db_session.add(product)
        db_session.commit()
        return product

    return _make


@pytest.fixture(scope='function')
def product(make_product):
    """Product with 10 units in stock, selling at 2.50."""
    return make_product(name="Oat Milk 1L", stock=10, sell_price_cents=250)


@pytest.fixture
def actor():
    return {"user_id": "u-100", "user_name": "alice"}


@pytest.fixture
def actor_headers():
    """X-User-Info header expected by the returns API."""
    return {"X-User-Info": json.dumps({"id": "u-100", "username": "alice"})}


@pytest.fixture
def fresh(db_session):
    """fresh(Model, pk): reload a row, bypassing whatever the test session has cached."""
    def _fresh(model, pk):
        db_session.expire_all()
        return db_session.get(model, pk)

    return _fresh
