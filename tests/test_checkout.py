"""Tests for POST /api/orders/create-order."""

from decimal import Decimal

from sqlalchemy import func, select

from services.notification_service.models import NotificationOutbox
from services.order_service.models import Address, Order, OrderItem
from services.payment_service.models import Payment
from shared.config.database import database

from .conftest import bearer, checkout_payload, create_product, product_stock

URL = "/api/orders/create-order"


async def count(model) -> int:
    async with database.session() as session:
        return await session.scalar(select(func.count()).select_from(model))


class TestGuestCheckout:
    async def test_creates_order(self, client, product):
        resp = await client.post(URL, json=checkout_payload([{"productId": product.id, "quantity": 2}]))

        assert resp.status_code == 201
        body = resp.json()
        assert body["success"] is True
        order = body["order"]
        assert body["orderId"] == order["id"]
        assert order["userId"] is None
        assert order["status"] == "pending"
        assert order["paymentStatus"] == "awaiting"
        assert Decimal(order["subtotal"]) == Decimal("50.00")
        assert Decimal(order["tax"]) == Decimal("5.75")
        assert Decimal(order["shipping"]) == Decimal("5.00")
        assert Decimal(order["total"]) == Decimal("60.75")
        assert order["guestEmail"] == "guest@example.com"
        assert order["shippingAddress"]["street"] == "1 Main St"
        assert order["shippingAddress"]["fullName"] == "Gus Guest"
        assert len(order["orderItems"]) == 1
        assert order["orderItems"][0]["productName"] == "Basic Tee"

        assert await product_stock(product.id) == 8
        assert await count(Address) == 0

    async def test_payment_stub_recorded(self, client, product):
        resp = await client.post(URL, json=checkout_payload(
            [{"productId": product.id, "quantity": 1}],
            payment={"paymentIntentId": "pi_abc", "paymentMethodId": "pm_card"},
        ))
        assert resp.status_code == 201

        async with database.session() as session:
            payment = (await session.execute(select(Payment))).scalars().one()
        assert payment.status == "pending"
        assert payment.payment_intent_id == "pi_abc"
        assert payment.payment_method_id == "pm_card"
        assert payment.amount == Decimal("32.88")
        assert resp.json()["order"]["payment"]["paymentIntentId"] == "pi_abc"

    async def test_catalogue_price_wins(self, client, product):
        resp = await client.post(URL, json=checkout_payload(
            [{"productId": product.id, "quantity": 1, "price": "0.01"}]
        ))
        assert resp.status_code == 201
        assert Decimal(resp.json()["order"]["orderItems"][0]["price"]) == Decimal("25.00")

    async def test_express_shipping(self, client, product):
        shipping = {
            "address": "1 Main St", "city": "Springfield", "state": "IL",
            "zipCode": "62701", "method": "express",
        }
        resp = await client.post(URL, json=checkout_payload(
            [{"productId": product.id, "quantity": 1}], shipping=shipping,
        ))
        assert resp.status_code == 201
        assert Decimal(resp.json()["order"]["shipping"]) == Decimal("15.00")

    async def test_confirmation_queued(self, client, product):
        await client.post(URL, json=checkout_payload([{"productId": product.id, "quantity": 1}]))
        async with database.session() as session:
            row = (await session.execute(select(NotificationOutbox))).scalars().one()
        assert row.kind == "order_confirmation"
        assert row.recipient == "guest@example.com"
        assert row.status == "pending"

    async def test_no_email_still_succeeds(self, client, product):
        resp = await client.post(URL, json=checkout_payload(
            [{"productId": product.id, "quantity": 1}], customer={},
        ))
        assert resp.status_code == 201
        assert await count(NotificationOutbox) == 0

    async def test_invalid_token_is_guest(self, client, product):
        resp = await client.post(
            URL,
            json=checkout_payload([{"productId": product.id, "quantity": 1}]),
            headers={"Authorization": "Bearer not-a-jwt"},
        )
        assert resp.status_code == 201
        assert resp.json()["order"]["userId"] is None


class TestAuthenticatedCheckout:
    async def test_links_user_and_address(self, client, product, user):
        resp = await client.post(
            URL,
            json=checkout_payload([{"productId": product.id, "quantity": 1}], customer={}),
            headers=bearer(user),
        )
        assert resp.status_code == 201
        order = resp.json()["order"]
        assert order["userId"] == user.id
        assert order["guestEmail"] == "jane@example.com"
        assert order["shippingAddress"]["city"] == "Springfield"

        async with database.session() as session:
            address = (await session.execute(select(Address))).scalars().one()
            saved = await session.get(Order, order["id"])
        assert address.user_id == user.id
        assert saved.shipping_address_id == address.id
        assert saved.guest_shipping_street is None


class TestSizedProducts:
    async def test_decrements_each_size(self, client, sized_product):
        resp = await client.post(URL, json=checkout_payload([
            {"productId": sized_product.id, "quantity": 2, "size": "S"},
            {"productId": sized_product.id, "quantity": 1, "size": "M"},
        ]))
        assert resp.status_code == 201
        assert len(resp.json()["order"]["orderItems"]) == 2
        assert await product_stock(sized_product.id, "S") == 1
        assert await product_stock(sized_product.id, "M") == 0

    async def test_missing_size_rejected(self, client, sized_product):
        resp = await client.post(URL, json=checkout_payload([{"productId": sized_product.id, "quantity": 1}]))
        assert resp.status_code == 400
        assert resp.json()["success"] is False

    async def test_size_on_unsized_product_ignored(self, client, product):
        resp = await client.post(URL, json=checkout_payload(
            [{"productId": product.id, "quantity": 1, "size": "M"}]
        ))
        assert resp.status_code == 201
        assert resp.json()["order"]["orderItems"][0]["size"] is None
        assert await product_stock(product.id) == 9


class TestRejectedCheckout:
    async def test_insufficient_stock(self, client, product, sized_product):
        resp = await client.post(URL, json=checkout_payload([
            {"productId": product.id, "quantity": 1},
            {"productId": sized_product.id, "quantity": 2, "size": "M"},
        ]))
        assert resp.status_code == 400
        body = resp.json()
        assert body["success"] is False
        assert "Hoodie in size M" in body["message"]
        assert "Available: 1" in body["message"]

        assert await count(Order) == 0
        assert await count(OrderItem) == 0
        assert await product_stock(product.id) == 10

    async def test_missing_shipping(self, client, product):
        payload = checkout_payload([{"productId": product.id, "quantity": 1}])
        payload.pop("shipping")
        resp = await client.post(URL, json=payload)
        assert resp.status_code == 400
        assert resp.json()["message"] == "Missing required information"

    async def test_empty_items(self, client):
        resp = await client.post(URL, json=checkout_payload([]))
        assert resp.status_code == 400
        assert resp.json()["message"] == "Missing required information"

    async def test_missing_payment_reference(self, client, product):
        resp = await client.post(URL, json=checkout_payload(
            [{"productId": product.id, "quantity": 1}], payment={},
        ))
        assert resp.status_code == 400
        assert await count(Order) == 0

    async def test_unknown_product(self, client):
        resp = await client.post(URL, json=checkout_payload([{"productId": "nope", "quantity": 1}]))
        assert resp.status_code == 400
        assert "not found" in resp.json()["message"]

    async def test_non_positive_quantity(self, client, product):
        resp = await client.post(URL, json=checkout_payload([{"productId": product.id, "quantity": 0}]))
        assert resp.status_code == 400
        assert await product_stock(product.id) == 10

    async def test_other_products_untouched(self, client):
        a = await create_product(name="Mug", price="8.00", stock=5)
        b = await create_product(name="Cap", price="12.00", stock=0)
        resp = await client.post(URL, json=checkout_payload([
            {"productId": a.id, "quantity": 2},
            {"productId": b.id, "quantity": 1},
        ]))
        assert resp.status_code == 400
        assert await product_stock(a.id) == 5

    async def test_unknown_shipping_method(self, client, product):
        shipping = {
            "address": "1 Main St", "city": "Springfield", "state": "IL",
            "zipCode": "62701", "method": "Express-Overnight-Priority-Air",
        }
        resp = await client.post(URL, json=checkout_payload(
            [{"productId": product.id, "quantity": 1}], shipping=shipping,
        ))
        assert resp.status_code == 400
        assert await product_stock(product.id) == 10

    async def test_overlong_fields(self, client, product):
        shipping = {
            "address": "1 Main St", "city": "Springfield", "state": "IL",
            "zipCode": "6" * 21,
        }
        resp = await client.post(URL, json=checkout_payload(
            [{"productId": product.id, "quantity": 1}], shipping=shipping,
        ))
        assert resp.status_code == 400

        resp = await client.post(URL, json=checkout_payload(
            [{"productId": product.id, "quantity": 1, "size": "X" * 21}],
        ))
        assert resp.status_code == 400

        resp = await client.post(URL, json=checkout_payload(
            [{"productId": product.id, "quantity": 1}],
            customer={"email": "guest@example.com", "firstName": "G" * 101},
        ))
        assert resp.status_code == 400
        assert await product_stock(product.id) == 10
