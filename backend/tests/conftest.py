"""
Pytest fixtures for NETPRO backend tests.

Provides the test application, a per-test empty database, domain records
(customers, stock items, users) and logged-in test clients.
"""

from decimal import Decimal

import pytest

from netpro import create_app
from netpro.config import TestingConfig
from netpro.extensions import db
from netpro.models import Company, Customer, Product, StockCategory, StockItem
from netpro.services import user_service


ADMIN_PASSWORD = "Password123"
USER_PASSWORD = "Password456"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestingConfig)

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
def admin_user(db_session):
    """Admin with every permission."""
    return user_service.create_user({
        "username": "admin",
        "email": "admin@netpro.local",
        "password": ADMIN_PASSWORD,
        "role": "admin",
    })


@pytest.fixture(scope='function')
def stock_clerk(db_session, admin_user):
    """Plain user that can only reach the stock screens."""
    return user_service.create_user({
        "username": "clerk",
        "email": "clerk@netpro.local",
        "password": USER_PASSWORD,
        "role": "user",
        "permissions": {"stock": True},
    }, created_by=admin_user.id)


@pytest.fixture(scope='function')
def company(db_session):
    company = Company(name="Acme Ltd", tin="100200300")
    db_session.add(company)
    db_session.commit()
    return company


@pytest.fixture(scope='function')
def customer(db_session):
    customer = Customer(
        name="Alice",
        billing_name="Alice B.",
        tin="111111111",
        phone="0788000001",
        service_number="SN-001",
    )
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def second_customer(db_session):
    customer = Customer(
        name="Bob",
        billing_name="Bob C.",
        tin="222222222",
        phone="0788000002",
        service_number="SN-002",
    )
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def product(db_session):
    product = Product(name="Fibre 20Mbps", price=Decimal("50000.00"))
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def stock_items(db_session):
    """Router (qty 20) and cable (qty 5) in the Hardware category."""
    category = StockCategory(name="Hardware")
    db_session.add(category)
    db_session.flush()
    router = StockItem(name="Router", quantity=20, category_id=category.id)
    cable = StockItem(name="Cable", quantity=5, category_id=category.id)
    db_session.add_all([router, cable])
    db_session.commit()
    return router, cable


def login(client, username: str, password: str):
    """Log in through the API; the test client keeps the auth cookie."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    assert response.status_code == 200, response.json
    return response


@pytest.fixture(scope='function')
def admin_client(client, admin_user):
    login(client, "admin", ADMIN_PASSWORD)
    return client


@pytest.fixture(scope='function')
def clerk_client(client, stock_clerk):
    login(client, "clerk", USER_PASSWORD)
    return client
