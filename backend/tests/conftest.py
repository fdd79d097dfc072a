"""
Pytest fixtures for SalonPOS backend tests.

Provides test database setup, catalog/staff factories, and test client.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from salonpos import create_app
from salonpos.extensions import db
from salonpos.models import Category, Employee, Item, Role
from salonpos.time_utils import utcnow


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
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


def days_ago(days: float):
    """UTC-naive timestamp `days` in the past; keeps history inside the future guard."""
    return utcnow() - timedelta(days=days)


@pytest.fixture(scope='function')
def hairdresser_role(db_session):
    role = Role(name="Hairdresser")
    db_session.add(role)
    db_session.commit()
    return role


@pytest.fixture(scope='function')
def service_category(db_session, hairdresser_role):
    """Hair Services: 70% commission, 30% owner, no stock."""
    category = Category(
        name="Hair Services",
        commission_rate=Decimal("70.00"),
        salon_owner_rate=Decimal("30.00"),
        tracks_stock=False,
        roles=[hairdresser_role],
    )
    db_session.add(category)
    db_session.commit()
    return category


@pytest.fixture(scope='function')
def product_category(db_session, hairdresser_role):
    """Hair Products & Accessories: 95% commission, 5% owner, stock-tracked."""
    category = Category(
        name="Hair Products & Accessories",
        commission_rate=Decimal("95.00"),
        salon_owner_rate=Decimal("5.00"),
        tracks_stock=True,
        roles=[hairdresser_role],
    )
    db_session.add(category)
    db_session.commit()
    return category


@pytest.fixture(scope='function')
def make_item(db_session):
    """Factory: make_item(category, name=..., is_service=..., price=..., reorder_threshold=...)."""
    def _make(category, name="Shampoo", *, is_service=False, price="25.00", reorder_threshold=None):
        item = Item(
            category_id=category.id,
            name=name,
            price=Decimal(price),
            is_service=is_service,
            stock=0,
            average_cost=Decimal("0"),
            reorder_threshold=reorder_threshold,
        )
        db_session.add(item)
        db_session.commit()
        return item

    return _make


@pytest.fixture(scope='function')
def product(make_item, product_category):
    return make_item(product_category, "Argan Shampoo", price="25.00", reorder_threshold=10)


@pytest.fixture(scope='function')
def haircut(make_item, service_category):
    return make_item(service_category, "Haircut & Style", is_service=True, price="45.00")


@pytest.fixture(scope='function')
def employee(db_session, hairdresser_role):
    employee = Employee(name="Sarah Johnson", email="sarah@salon.local", roles=[hairdresser_role])
    db_session.add(employee)
    db_session.commit()
    return employee
