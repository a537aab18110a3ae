"""
Shared fixtures: in-memory SQLite database, TestClient wired to it,
users with bearer tokens and a product factory.
"""

import os

# Settings are read at import time; these must be in place before any app import.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["DEBUG"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"

from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from config.database import Base, get_db, enable_sqlite_savepoints  # noqa: E402
from common.security import create_access_token  # noqa: E402
from main import app  # noqa: E402
from modules.user.models import User, UserRole  # noqa: E402
from modules.catalog.models import Product  # noqa: E402
from modules.order.models import Order, OrderItem, OrderStatus  # noqa: E402
from modules.order.service import order_service  # noqa: E402

engine = enable_sqlite_savepoints(
    create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

SHIPPING = {
    "name": "Jane Doe",
    "email": "jane@example.com",
    "address": "1 Cocoa Lane",
    "city": "Bruges",
    "zip": "8000",
}


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    def _get_test_db():
        yield db

    app.dependency_overrides[get_db] = _get_test_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


# ==========================================
# Users
# ==========================================

def _make_user(db, name, email, role=UserRole.USER.value):
    user = User(name=name, email=email, role=role)
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def user(db):
    return _make_user(db, "Jane Doe", "jane@example.com")


@pytest.fixture
def other_user(db):
    return _make_user(db, "John Roe", "john@example.com")


@pytest.fixture
def admin(db):
    return _make_user(db, "Admin", "admin@example.com", UserRole.ADMIN.value)


def bearer(user):
    return {"Authorization": f"Bearer {create_access_token({'sub': str(user.id)})}"}


@pytest.fixture
def user_headers(user):
    return bearer(user)


@pytest.fixture
def admin_headers(admin):
    return bearer(admin)


# ==========================================
# Catalog / Orders
# ==========================================

@pytest.fixture
def make_product(db):
    def _make(name="Dark Bar", price="10.00", stock=5, category="bars"):
        product = Product(
            name=name,
            category=category,
            description=f"{name} description",
            price=Decimal(price),
            stock=stock,
            key_features=["70% cocoa", "100g"],
        )
        db.add(product)
        db.commit()
        return product
    return _make


@pytest.fixture
def place_order(db):
    """Checkout through the service with explicit lines: [(product, qty), ...]."""
    def _place(user, lines, payment_method="credit_card"):
        items = [{"product_id": p.id, "quantity": q} for p, q in lines]
        return order_service.create_order(db, user, items, dict(SHIPPING), payment_method)
    return _place


@pytest.fixture
def unpaid_order(db, user, make_product):
    """A pending order without a payment transaction, with stock already taken."""
    product = make_product(name="Praline Box", price="12.50", stock=10)
    product.stock -= 2
    order = Order(
        user_id=user.id,
        order_number="ORD-20240101000000-UNPAID01",
        total_amount=Decimal("25.00"),
        status=OrderStatus.PENDING.value,
        shipping_name=SHIPPING["name"],
        shipping_email=SHIPPING["email"],
        shipping_address=SHIPPING["address"],
        shipping_city=SHIPPING["city"],
        shipping_zip=SHIPPING["zip"],
    )
    db.add(order)
    db.flush()
    db.add(OrderItem(order_id=order.id, product_id=product.id, quantity=2, price=Decimal("12.50")))
    order_service.record_status(db, order, OrderStatus.PENDING, "Order created")
    db.commit()
    return order
