import os

os.environ.setdefault("AUTO_CREATE_TABLES", "false")
os.environ.setdefault("STORE_CURRENCY", "INR")

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

from storefront import app
from storefront.core.dependencies import get_db
from storefront.db.base import Base
from storefront.enums import DiscountType, UserRole
from storefront.models import Coupon, Order, Product, User
from storefront.utils.time import utcnow


CUSTOMER_ID = "user-customer-1"
ADMIN_ID = "user-admin-1"

CUSTOMER_HEADERS = {"X-User-Id": CUSTOMER_ID}
ADMIN_HEADERS = {"X-User-Id": ADMIN_ID}


@pytest.fixture
def db_file(tmp_path):
    return tmp_path / "storefront-test.db"


@pytest.fixture
def session_factory(db_file):
    """Synchronous sessions on the test database, for seeding and for checking what was saved."""
    engine = create_engine(f"sqlite:///{db_file}")
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, expire_on_commit=False)
    engine.dispose()


def override_db(db_file, session_class=AsyncSession):
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_file}", poolclass=NullPool)
    factory = async_sessionmaker(bind=engine, class_=session_class, expire_on_commit=False)

    async def _get_db():
        async with factory() as db:
            yield db

    return _get_db


@pytest.fixture
def client(db_file, session_factory, users):
    app.dependency_overrides[get_db] = override_db(db_file)
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def users(session_factory):
    with session_factory() as db:
        db.add_all([
            User(id=CUSTOMER_ID, email="asha@example.com", full_name="Asha Verma", city="Pune", country="IN"),
            User(id=ADMIN_ID, email="admin@example.com", full_name="Store Admin", role=UserRole.ADMIN),
        ])
        db.commit()


@pytest.fixture
def products(session_factory):
    with session_factory() as db:
        kettle = Product(title="Kettle", price=600.0, stock=10)
        mug = Product(title="Mug", price=40.0, stock=3)
        retired = Product(title="Old Lamp", price=90.0, stock=5, is_active=False)
        db.add_all([kettle, mug, retired])
        db.commit()
        return {"kettle": kettle.id, "mug": mug.id, "retired": retired.id}


@pytest.fixture
def make_coupon(session_factory):
    def _make_coupon(code, **fields):
        values = {
            "discount_type": DiscountType.PERCENT,
            "discount_value": 10,
            "min_order_value": 0,
            "valid_until": utcnow() + timedelta(days=30),
            "is_active": True,
        }
        values.update(fields)
        with session_factory() as db:
            coupon = Coupon(code=code, **values)
            db.add(coupon)
            db.commit()
            return coupon.id

    return _make_coupon


@pytest.fixture
def make_order(session_factory):
    def _make_order(status="pending", coupon_code=None, user_id=CUSTOMER_ID, total=100.0):
        with session_factory() as db:
            order = Order(
                user_id=user_id,
                status=status,
                user_name="Asha Verma",
                email="asha@example.com",
                address="12 MG Road",
                city="Pune",
                zip_code="411001",
                subtotal=total,
                discount=0,
                shipping_cost=0,
                total_amount=total,
                coupon_code=coupon_code,
            )
            db.add(order)
            db.commit()
            return order.id

    return _make_order
