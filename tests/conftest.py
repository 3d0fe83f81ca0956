"""Pytest fixtures for storefront tests."""

import os
import tempfile
from decimal import Decimal

# Settings are read at import time, so the environment must be in place first
_DB_DIR = tempfile.mkdtemp(prefix="storefront-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_DIR}/storefront.db"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["OTEL_ENABLED"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["NOTIFIER_MODE"] = "external"
os.environ["SHIPPING_POLICY"] = "flat"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_123"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test"
os.environ["EMAIL_HOST"] = ""

import httpx
import pytest

from main import app
from services.auth_service.models import User
from services.auth_service.service import AuthService
from services.product_service.models import Product, ProductSize
from shared.config.database import database


@pytest.fixture(autouse=True)
async def fresh_schema():
    """Recreate every table for each test."""
    await database.drop_all()
    await database.create_all()
    yield
    await database.dispose()


@pytest.fixture
async def db():
    async with database.session() as session:
        yield session


@pytest.fixture
async def client():
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


async def create_product(name="Basic Tee", price="25.00", stock=10, sizes=None) -> Product:
    async with database.session() as session:
        product = Product(
            name=name,
            price=Decimal(price),
            stock=0 if sizes else stock,
            has_sizes=bool(sizes),
            sizes=[ProductSize(size=s, stock=q) for s, q in (sizes or {}).items()],
        )
        session.add(product)
        await session.commit()
        return product


async def create_user(email="jane@example.com", role="user", first_name="Jane", last_name="Doe") -> User:
    async with database.session() as session:
        user = User(
            email=email,
            hashed_password="not-a-real-hash",
            first_name=first_name,
            last_name=last_name,
            role=role,
        )
        session.add(user)
        await session.commit()
        return user


async def product_stock(product_id: str, size=None) -> int:
    """Read stock through a fresh session so no stale identity map is involved."""
    async with database.session() as session:
        product = await session.get(Product, product_id)
        if size is None:
            return product.stock
        return product.size_entry(size).stock


def bearer(user: User) -> dict:
    return {"Authorization": f"Bearer {AuthService.issue_token(user)}"}


def checkout_payload(items, customer=None, shipping=None, payment=None) -> dict:
    return {
        "customer": customer if customer is not None else {
            "email": "guest@example.com", "firstName": "Gus", "lastName": "Guest",
        },
        "shipping": shipping if shipping is not None else {
            "address": "1 Main St", "city": "Springfield", "state": "IL",
            "zipCode": "62701", "country": "US", "method": "standard",
        },
        "payment": payment if payment is not None else {"paymentIntentId": "pi_test_1"},
        "items": items,
    }


@pytest.fixture
async def product():
    return await create_product()


@pytest.fixture
async def sized_product():
    return await create_product(name="Hoodie", price="40.00", sizes={"S": 3, "M": 1})


@pytest.fixture
async def user():
    return await create_user()


@pytest.fixture
async def admin():
    return await create_user(email="admin@example.com", role="admin", first_name="Ada", last_name="Min")


async def place_order(client, product, quantity=1, headers=None, payment_intent_id="pi_test_1") -> dict:
    resp = await client.post(
        "/api/orders/create-order",
        json=checkout_payload(
            [{"productId": product.id, "quantity": quantity}],
            payment={"paymentIntentId": payment_intent_id},
        ),
        headers=headers or {},
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["order"]
