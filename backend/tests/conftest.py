"""
Pytest fixtures for marketcycle backend tests.

Provides test database setup, catalog/supplier/cycle fixtures, and test client.
"""

import pytest
from marketcycle import create_app
from marketcycle.extensions import db
from marketcycle.models import ReferenceProduct, Supplier
from marketcycle.services import cycle_service

ACTOR = "reviewer@test"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'REPORT_DEFAULT_MONTHS': 3,
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
def actor():
    return ACTOR


@pytest.fixture(scope='function')
def auth_headers():
    """Headers carrying the caller identity required by write routes."""
    return {"X-Actor": ACTOR}


@pytest.fixture(scope='function')
def tomato(db_session):
    """Reference product: Tomate Orgânico, R$ 7,50/kg."""
    product = ReferenceProduct(
        name="Tomate Orgânico",
        category="Hortaliças",
        unit="kg",
        reference_price_cents=750,
        is_active=True,
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def lettuce(db_session):
    """Reference product: Alface Hidropônica, R$ 1,50/unit."""
    product = ReferenceProduct(
        name="Alface Hidropônica",
        category="Folhosas",
        unit="unit",
        reference_price_cents=150,
        is_active=True,
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def supplier(db_session):
    supplier = Supplier(name="Fazenda Verde", is_active=True)
    db_session.add(supplier)
    db_session.commit()
    return supplier


@pytest.fixture(scope='function')
def cycle(supplier):
    """Current (unpublished) cycle of the supplier, as a dict."""
    return cycle_service.get_or_create_current_cycle(supplier.id, label="Semana 1")


@pytest.fixture(scope='function')
def make_offer(cycle, actor):
    """Factory: insert a draft offer in the current cycle and return it."""
    def _make(name="Tomate", unit="kg", price_cents=450, **fields):
        data = {"name": name, "unit": unit, "price_cents": price_cents, **fields}
        return cycle_service.upsert_product(cycle["id"], data, actor=actor)

    return _make
