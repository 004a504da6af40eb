"""
Pytest fixtures shared by every test package.

Settings are read from the environment at import time, so the variables
are set before any app module is imported.
"""
import os

os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("RAZORPAY_KEY_ID", "rzp_test_key")
os.environ.setdefault("RAZORPAY_KEY_SECRET", "rzp_test_secret")

import uuid

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from app.models.cart import CartItem
from app.models.gold_rate import GoldPriceLog  # noqa: F401
from app.models.order import Order, OrderItem, Payment  # noqa: F401
from app.models.product import Product, ProductKarat
from app.models.user import User
from app.models.wishlist import WishlistItem  # noqa: F401
from app.repositories.gold_rate_repo import GoldRateRepository
from app.services.pricing_service import PricingService


@pytest.fixture
def engine():
    """In-memory SQLite shared across threads (TestClient runs handlers in a pool)."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def pricing():
    return PricingService(GoldRateRepository())


@pytest.fixture
def customer(session):
    user = User(
        id=uuid.uuid4(),
        email="priya@example.com",
        full_name="Priya Sharma",
        phone="9876543210",
        role="user",
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def admin(session):
    user = User(
        id=uuid.uuid4(),
        email="admin@example.com",
        full_name="Store Admin",
        role="admin",
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def make_product(session):
    """
    Factory: make_product("Ring", karats={"22kt": (net_weight, stock)}).
    """
    counter = {"n": 0}

    def _make(
        name: str = "Lakshmi Ring",
        karats: dict[str, tuple[float | None, int]] | None = None,
        making_charge_percentage: float = 10,
        is_active: bool = True,
        images=("https://cdn.example.com/ring.jpg",),
    ) -> Product:
        counter["n"] += 1
        karats = karats if karats is not None else {"22kt": (10.0, 5)}
        product = Product(
            name=name,
            slug=f"{name.lower().replace(' ', '-')}-{counter['n']}",
            images=list(images),
            available_karats=list(karats),
            making_charge_percentage=making_charge_percentage,
            is_active=is_active,
        )
        session.add(product)
        session.commit()
        session.refresh(product)
        for karat, (net_weight, stock) in karats.items():
            session.add(
                ProductKarat(
                    product_id=product.id,
                    karat=karat,
                    net_weight=net_weight,
                    stock_quantity=stock,
                )
            )
        session.commit()
        return product

    return _make


@pytest.fixture
def add_cart_row(session):
    def _add(user: User, product: Product, quantity: int = 1) -> CartItem:
        row = CartItem(user_id=user.id, product_id=product.id, quantity=quantity)
        session.add(row)
        session.commit()
        session.refresh(row)
        return row

    return _add
