"""
Pytest fixtures for storefront backend tests.

Provides the app on in-memory SQLite, a fresh database per test, seeded
roles, and factories for users, products and carts.
"""

import pytest
from sqlalchemy import false

from storefront import create_app
from storefront.config import TestConfig
from storefront.extensions import db
from storefront.models import Cart, CartItem, Category, Product, User
from storefront.services.auth_service import hash_password
from storefront.services.role_service import ROLE_ADMIN, ROLE_SUPERADMIN, ROLE_USER, RoleService
from storefront.services.token_service import TokenService


PASSWORD = "Password123!"


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


@pytest.fixture(scope='session')
def password_hash():
    """bcrypt is deliberately slow; hash the shared test password once."""
    return hash_password(PASSWORD)


@pytest.fixture(scope='function')
def setup_roles(db_session):
    """Setup default roles (admin, user, superadmin)."""
    return RoleService(db_session).ensure_default_roles()


@pytest.fixture(scope='function')
def make_user(db_session, setup_roles, password_hash):
    """Factory: make_user("a@x.io", roles=("user",), id=None)."""
    roles = RoleService(db_session)

    def _make(email, *, roles_=(ROLE_USER,), name=None, id=None):
        user = User(id=id, name=name or email.split("@")[0], email=email, password_hash=password_hash)
        db_session.add(user)
        for slug in roles_:
            roles.grant_role(user, slug)
        db_session.commit()
        return user

    return _make


@pytest.fixture(scope='function')
def customer(make_user):
    return make_user("customer@shop.test")


@pytest.fixture(scope='function')
def seller(make_user):
    """User holding the elevated role (as after vendor approval)."""
    return make_user("seller@shop.test", roles_=(ROLE_USER, ROLE_ADMIN))


@pytest.fixture(scope='function')
def superadmin(make_user):
    return make_user("root@shop.test", roles_=(ROLE_SUPERADMIN, ROLE_USER))


@pytest.fixture(scope='function')
def category(db_session):
    c = Category(name="Laptop", slug="laptop", description="All types of laptops")
    db_session.add(c)
    db_session.commit()
    return c


@pytest.fixture(scope='function')
def make_product(db_session, seller, category):
    """Factory: make_product("Name", price_cents=1000, stock=5)."""
    def _make(name, *, price_cents=1000, stock=10, status="active", owner=None):
        product = Product(
            user_id=(owner or seller).id,
            category_id=category.id,
            name=name,
            price_cents=price_cents,
            stock=stock,
            status=status,
        )
        db_session.add(product)
        db_session.commit()
        return product

    return _make


@pytest.fixture(scope='function')
def fill_cart(db_session):
    """Factory: fill_cart(user, [(product, qty), ...]) -> Cart."""
    def _fill(user, lines):
        cart = db_session.query(Cart).filter_by(user_id=user.id).first()
        if cart is None:
            cart = Cart(user_id=user.id)
            db_session.add(cart)
            db_session.flush()
        for product, quantity in lines:
            db_session.add(CartItem(cart_id=cart.id, product_id=product.id, quantity=quantity))
        db_session.commit()
        return cart

    return _fill


@pytest.fixture(scope='function')
def token_for(app, db_session):
    """Factory: token_for(user) -> Authorization headers with a fresh access token."""
    tokens = TokenService.from_config(db_session, app.config)

    def _headers(user):
        token = tokens.issue_access_token(user.id, RoleService.role_slugs(user))
        return auth_headers(token)

    return _headers


class StaleReads:
    """
    Session wrapper whose lookups of one model miss rows committed by another
    request. Lets a test reach the commit of a check-then-insert race.
    """

    def __init__(self, session, model):
        self._session = session
        self._model = model

    def query(self, *entities):
        query = self._session.query(*entities)
        if len(entities) == 1 and entities[0] is self._model:
            query = query.filter(false())
        return query

    def __getattr__(self, name):
        return getattr(self._session, name)


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
