"""
Pytest fixtures for storefront tests.

Every test gets its own SQLite file database, a Settings object that
ignores any local .env, and a TestClient running the full app lifespan.
"""

import pytest
from fastapi.testclient import TestClient

from storefront.config import Settings
from storefront.database import Database
from storefront.main import create_app
from storefront.models.product import Product
from storefront.models.users import Role
from storefront.services import auth_service
from storefront.utils import hashing

PASSWORD = "Password123!"


@pytest.fixture(autouse=True)
def fast_hashing(monkeypatch):
    """Cheap bcrypt cost so registration-heavy tests stay quick."""
    monkeypatch.setattr(hashing, "BCRYPT_ROUNDS", 4)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        SECRET_KEY="test-secret",
        REFRESH_SECRET_KEY="test-refresh-secret",
        DATABASE_URL=f"sqlite:///{tmp_path / 'storefront-test.db'}",
        DB_TIMEOUT_SECONDS=5,
        TRACKING_ADVANCE_SECONDS=0,
    )


@pytest.fixture
def database(settings):
    database = Database.from_settings(settings)
    database.init_db()
    yield database
    database.dispose()


@pytest.fixture
def app(settings, database):
    return create_app(settings, database)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def db_session(database):
    with database.session() as session:
        yield session


@pytest.fixture
def make_principal(database):
    """Create a principal directly in the store and return its id."""
    def _make(email, role=Role.CLIENT.value, name="Test User", password=PASSWORD):
        with database.session() as db:
            return auth_service.create_principal(db, email, password, name, role).id
    return _make


@pytest.fixture
def make_product(database):
    """Create a product and return its id."""
    def _make(name="Turmeric Powder", price_cents=599, stock_count=10):
        with database.session() as db:
            product = Product(name=name, price_cents=price_cents, stock_count=stock_count)
            db.add(product)
            db.commit()
            return product.id
    return _make


@pytest.fixture
def login(client):
    """Log in through the API and return Authorization headers."""
    def _login(email, password=PASSWORD):
        resp = client.post("/auth/login", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.text
        return {"Authorization": f"Bearer {resp.json()['access_token']}"}
    return _login


@pytest.fixture
def client_headers(make_principal, login):
    make_principal("client@example.com")
    return login("client@example.com")


@pytest.fixture
def operator_headers(make_principal, login):
    make_principal("operator@example.com", role=Role.OPERATOR.value, name="Shop Operator")
    return login("operator@example.com")


@pytest.fixture
def superoperator_headers(make_principal, login):
    make_principal("root@example.com", role=Role.SUPEROPERATOR.value, name="Shop Owner")
    return login("root@example.com")
