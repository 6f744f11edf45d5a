"""
Pytest configuration and fixtures for backend tests.
"""

import os
import tempfile
from decimal import Decimal

# Settings are read at import time: point them at throwaway resources first
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("UPLOADS_DIR", tempfile.mkdtemp(prefix="restobar-uploads-"))
os.environ.setdefault("PUBLIC_BASE_URL", "http://menu.test")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from restobar.db import get_session
from restobar.main import app
from restobar.models import Category, Product, Table, User, UserRole
from restobar.permissions import PermissionService
from restobar.security import get_password_hash


# SQLite in-memory database for testing
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    Uses SQLite in-memory for isolation.
    """
    SQLModel.metadata.create_all(engine)
    session = Session(engine)
    try:
        yield session
    finally:
        session.close()
        SQLModel.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def client(db_session):
    """
    Create a test client with database session override.
    """
    def override_get_session():
        yield db_session

    app.dependency_overrides[get_session] = override_get_session

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def _make_user(db_session, username: str, password: str, role: UserRole) -> User:
    user = User(
        username=username,
        hashed_password=get_password_hash(password),
        full_name=username.title(),
        role=role,
        permissions=PermissionService.default_permissions(role),
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


def login(client, username: str, password: str) -> dict:
    response = client.post("/token", data={"username": username, "password": password})
    assert response.status_code == 200, f"Login failed: {response.json()}"
    # Drop the session cookie so each request authenticates with its own header
    client.cookies.clear()
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def seed_admin_user(db_session):
    return _make_user(db_session, "admin", "admin123", UserRole.admin)


@pytest.fixture
def seed_cashier_user(db_session):
    return _make_user(db_session, "cashier", "cashier123", UserRole.cashier)


@pytest.fixture
def auth_headers(client, seed_admin_user):
    """Get authentication headers for an administrator."""
    return login(client, "admin", "admin123")


@pytest.fixture
def cashier_headers(client, seed_cashier_user):
    """Get authentication headers for a cashier."""
    return login(client, "cashier", "cashier123")


@pytest.fixture
def seed_table(db_session):
    table = Table(number=1, capacity=4, qr_code="http://menu.test/table/1")
    db_session.add(table)
    db_session.commit()
    db_session.refresh(table)
    return table


@pytest.fixture
def seed_category(db_session):
    category = Category(name="Main Course", description="Grills and stews")
    db_session.add(category)
    db_session.commit()
    db_session.refresh(category)
    return category


@pytest.fixture
def seed_products(db_session, seed_category):
    """A dish at 5.00 and a drink at 3.50."""
    products = [
        Product(name="Garba", price=Decimal("5.00"), category_id=seed_category.id),
        Product(name="Bissap", price=Decimal("3.50"), category_id=seed_category.id),
    ]
    for product in products:
        db_session.add(product)
    db_session.commit()
    for product in products:
        db_session.refresh(product)
    return products


@pytest.fixture
def place_order(client, seed_table, seed_products):
    """Place an order through the public endpoint: 2 x Garba and 1 x Bissap by default."""
    garba, bissap = seed_products

    def _place(table_id: int | None = None, items: list[dict] | None = None, **extra):
        if items is None:
            items = [
                {"product_id": garba.id, "quantity": 2, "price": "5.00"},
                {"product_id": bissap.id, "quantity": 1, "price": "3.50"},
            ]
        payload = {
            "table_id": table_id if table_id is not None else seed_table.id,
            "customer_name": "Awa",
            "order_items": items,
            **extra,
        }
        response = client.post("/orders", json=payload)
        assert response.status_code == 201, response.text
        return response.json()

    return _place
