"""
Pytest fixtures for backend tests.

Provides an in-memory database, OWNER / PEGAWAI accounts, owner scopes,
auth headers and small catalog factories.
"""

from decimal import Decimal

import pytest
from app import create_app
from app.extensions import db
from app.models import User, Role, UserRole, Product, Menu, Recipe
from app.models.auth import ROLE_OWNER, ROLE_STAFF
from app.services.auth_service import hash_password, create_default_roles
from app.services.session_service import create_session
from app.services.tenant_service import scope_for_owner, resolve_owner_scope


TEST_PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def password_hash():
    """bcrypt is slow on purpose; hash the shared test password once."""
    return hash_password(TEST_PASSWORD)


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


@pytest.fixture(scope='function')
def setup_roles(db_session):
    """Setup default roles."""
    create_default_roles()
    db_session.commit()


@pytest.fixture(scope='function')
def make_user(db_session, setup_roles, password_hash):
    """Factory: make_user("name", ROLE_OWNER) -> User."""
    def _make(username: str, *roles: str, is_active: bool = True) -> User:
        user = User(
            username=username,
            email=f"{username}@example.com",
            name=username.title(),
            password_hash=password_hash,
            is_active=is_active,
        )
        db_session.add(user)
        db_session.flush()
        for role_name in roles:
            role = db_session.query(Role).filter_by(name=role_name).first()
            db_session.add(UserRole(user_id=user.id, role_id=role.id))
        db_session.commit()
        return user
    return _make


@pytest.fixture(scope='function')
def owner(make_user):
    """OWNER account for the main catalog."""
    return make_user("owner", ROLE_OWNER)


@pytest.fixture(scope='function')
def staff(make_user, owner):
    """PEGAWAI account working on the owner's catalog."""
    return make_user("kasir", ROLE_STAFF)


@pytest.fixture(scope='function')
def owner_scope(owner):
    return scope_for_owner(owner.id)


@pytest.fixture(scope='function')
def staff_scope(staff):
    return resolve_owner_scope(staff)


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: make_product(owner, name, quantity=..., low_stock=...) -> Product."""
    def _make(user: User, name: str, *, quantity: int = 0, low_stock=None,
              category: str = "Bahan", unit: str = "GRAM", price: int = 100) -> Product:
        product = Product(
            user_id=user.id,
            name=name,
            category=category,
            unit=unit,
            price=price,
            quantity=quantity,
            low_stock=low_stock,
        )
        db_session.add(product)
        db_session.commit()
        return product
    return _make


@pytest.fixture(scope='function')
def make_menu(db_session):
    """Factory: make_menu("NG01", "Nasi Goreng", [(product, "150"), ...]) -> Menu."""
    def _make(code: str, name: str, lines=()) -> Menu:
        menu = Menu(code=code, name=name)
        db_session.add(menu)
        db_session.flush()
        for product, qty in lines:
            db_session.add(Recipe(menu_id=menu.id, product_id=product.id, qty_per_portion=Decimal(str(qty))))
        db_session.commit()
        return menu
    return _make


@pytest.fixture(scope='function')
def owner_headers(owner):
    return auth_headers(session_token(owner))


@pytest.fixture(scope='function')
def staff_headers(staff):
    return auth_headers(session_token(staff))


def session_token(user: User) -> str:
    """Issue a bearer token without going through /login."""
    _, token = create_session(user_id=user.id)
    return token


def get_auth_token(client, username: str, password: str) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
