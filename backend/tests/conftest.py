"""
Pytest fixtures for the catalog API test suite.

Provides:
- a fresh file-backed SQLite database per test, built with the same
  ``build_engine`` the app uses (so BEGIN IMMEDIATE and FK enforcement apply)
- a session and a session factory for thread-level tests
- a TestClient wired to the test database, with seeded manager/viewer users
- small factories for categories, suppliers and products
"""

import logging
from decimal import Decimal
from typing import Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from catalog_api.api.deps_auth import get_db
from catalog_api.core.database import build_engine
from catalog_api.core.logging_config import configure_logging
from catalog_api.core.seed import seed_users_if_empty
from catalog_api.main import app
from catalog_api.models.registry import Base
from catalog_api.services import categories, products, suppliers


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    configure_logging(level="DEBUG")
    yield
    logging.getLogger().handlers.clear()


@pytest.fixture
def engine(tmp_path):
    eng = build_engine(f"sqlite:///{tmp_path / 'catalog_test.db'}")
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


# ---------- factories ----------


@pytest.fixture
def make_category(db):
    counter = {"n": 0}

    def _make(name: Optional[str] = None, description: Optional[str] = None):
        counter["n"] += 1
        return categories.create_category(db, name or f"Category {counter['n']}", description)

    return _make


@pytest.fixture
def make_supplier(db):
    counter = {"n": 0}

    def _make(name: Optional[str] = None, email: Optional[str] = None, phone: Optional[str] = None):
        counter["n"] += 1
        return suppliers.create_supplier(db, name or f"Supplier {counter['n']}", email, phone)

    return _make


@pytest.fixture
def make_product(db, make_category):
    def _make(
        name: str = "Widget",
        price="10.00",
        stock: int = 10,
        category_id: Optional[int] = None,
        sku: Optional[str] = None,
        supplier_id: Optional[int] = None,
        description: Optional[str] = None,
    ):
        if category_id is None:
            category_id = make_category().id
        return products.create_product(
            db,
            name=name,
            price=Decimal(str(price)),
            stock=stock,
            category_id=category_id,
            sku=sku,
            supplier_id=supplier_id,
            description=description,
        )

    return _make


# ---------- HTTP ----------


@pytest.fixture
def client(db):
    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    seed_users_if_empty(db)
    # no context manager: the lifespan would touch the configured database
    test_client = TestClient(app)
    yield test_client
    app.dependency_overrides.clear()


def _login(client: TestClient, username: str, password: str) -> dict:
    resp = client.post("/api/auth/login", json={"username": username, "password": password})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


@pytest.fixture
def manager_headers(client):
    return _login(client, "manager", "manager123")


@pytest.fixture
def viewer_headers(client):
    return _login(client, "viewer", "viewer123")

