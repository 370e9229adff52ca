"""
Pytest fixtures for storefront backend tests.

Provides test database setup, user/product factories, session tokens and the
test client.
"""

from decimal import Decimal

import pytest
from storefront import create_app
from storefront.config import TestConfig
from storefront.extensions import db
from storefront.models import Product, CartItem, ROLE_USER, ROLE_ADMIN, ROLE_LOGISTICS
from storefront.services.auth_service import create_user
from storefront.services import session_service


DEFAULT_PASSWORD = "secret123"


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
def make_user(db_session):
    """Factory: make_user("alice", role="admin") -> User."""
    def _make(username: str, role: str = ROLE_USER, password: str = DEFAULT_PASSWORD, **extra):
        return create_user(
            username=username,
            email=extra.pop("email", f"{username}@store.test"),
            password=password,
            role=role,
            address=extra.pop("address", f"{username} street 1"),
            contact=extra.pop("contact", "91234567"),
        )
    return _make


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: make_product("Milk", price="3.50", stock=10) -> Product."""
    def _make(name: str, price="1.00", stock: int = 10, image: str | None = None):
        product = Product(name=name, price=Decimal(str(price)), stock=stock, image=image)
        db_session.add(product)
        db_session.commit()
        return product
    return _make


@pytest.fixture(scope='function')
def put_in_cart(db_session):
    """Write a cart line directly, bypassing the stock checks."""
    def _put(user, product, quantity: int):
        line = CartItem(user_id=user.id, product_id=product.id, quantity=quantity)
        db_session.add(line)
        db_session.commit()
        return line
    return _put


@pytest.fixture(scope='function')
def customer(make_user):
    return make_user("carol", role=ROLE_USER)


@pytest.fixture(scope='function')
def admin(make_user):
    return make_user("alice", role=ROLE_ADMIN)


@pytest.fixture(scope='function')
def logistics(make_user):
    return make_user("larry", role=ROLE_LOGISTICS)


def login_token(user) -> str:
    """Helper to mint a session token for a user without going through HTTP."""
    _session, token = session_service.create_session(user_id=user.id)
    return token


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def customer_headers(customer):
    return auth_headers(login_token(customer))


@pytest.fixture(scope='function')
def admin_headers(admin):
    return auth_headers(login_token(admin))


@pytest.fixture(scope='function')
def logistics_headers(logistics):
    return auth_headers(login_token(logistics))
