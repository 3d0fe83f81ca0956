"""Tests for order reads and admin order management."""

from sqlalchemy import select

from services.notification_service.models import NotificationOutbox
from shared.config.database import database

from .conftest import bearer, create_user, place_order, product_stock


class TestReadOrders:
    async def test_guest_order_readable_by_id(self, client, product):
        order = await place_order(client, product)
        resp = await client.get(f"/api/orders/{order['id']}")
        assert resp.status_code == 200
        assert resp.json()["id"] == order["id"]
        assert len(resp.json()["orderItems"]) == 1

    async def test_owner_reads_own_order(self, client, product, user):
        order = await place_order(client, product, headers=bearer(user))
        resp = await client.get(f"/api/orders/{order['id']}", headers=bearer(user))
        assert resp.status_code == 200

    async def test_other_user_forbidden(self, client, product, user):
        order = await place_order(client, product, headers=bearer(user))
        stranger = await create_user(email="mallory@example.com")

        resp = await client.get(f"/api/orders/{order['id']}", headers=bearer(stranger))
        assert resp.status_code == 403
        assert resp.json()["success"] is False

        resp = await client.get(f"/api/orders/{order['id']}")
        assert resp.status_code == 403

    async def test_admin_reads_any_order(self, client, product, user, admin):
        order = await place_order(client, product, headers=bearer(user))
        resp = await client.get(f"/api/orders/{order['id']}", headers=bearer(admin))
        assert resp.status_code == 200

    async def test_missing_order(self, client):
        resp = await client.get("/api/orders/no-such-order")
        assert resp.status_code == 404
        assert resp.json()["message"] == "Order not found"

    async def test_public_summary_hides_details(self, client, product, user):
        order = await place_order(client, product, headers=bearer(user))
        resp = await client.get(f"/api/orders/public/{order['id']}")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "pending"
        assert body["total"] == order["total"]
        assert "shippingAddress" not in body
        assert "guestEmail" not in body

    async def test_list_my_orders(self, client, product, user):
        await place_order(client, product, headers=bearer(user))
        await place_order(client, product, headers=bearer(user))
        await place_order(client, product)

        resp = await client.get("/api/orders", headers=bearer(user))
        assert resp.status_code == 200
        assert len(resp.json()) == 2
        assert all(o["userId"] == user.id for o in resp.json())

    async def test_list_requires_login(self, client):
        resp = await client.get("/api/orders")
        assert resp.status_code == 401


class TestAdminOrders:
    async def test_requires_admin(self, client, user):
        resp = await client.get("/api/admin/orders", headers=bearer(user))
        assert resp.status_code == 403
        assert resp.json()["message"] == "Admin access required"

    async def test_lists_everything(self, client, product, user, admin):
        await place_order(client, product, headers=bearer(user))
        await place_order(client, product)
        resp = await client.get("/api/admin/orders", headers=bearer(admin))
        assert resp.status_code == 200
        assert len(resp.json()) == 2

    async def test_status_transition(self, client, product, admin):
        order = await place_order(client, product)
        resp = await client.patch(
            f"/api/admin/orders/{order['id']}/status",
            json={"status": "confirmed"},
            headers=bearer(admin),
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "confirmed"

    async def test_invalid_transition(self, client, product, admin):
        order = await place_order(client, product)
        resp = await client.patch(
            f"/api/admin/orders/{order['id']}/status",
            json={"status": "delivered"},
            headers=bearer(admin),
        )
        assert resp.status_code == 400
        assert "Invalid status transition" in resp.json()["message"]

    async def test_unknown_status(self, client, product, admin):
        order = await place_order(client, product)
        resp = await client.patch(
            f"/api/admin/orders/{order['id']}/status",
            json={"status": "teleported"},
            headers=bearer(admin),
        )
        assert resp.status_code == 400

    async def test_status_cannot_mark_shipped(self, client, product, admin):
        order = await place_order(client, product)
        await mark_processing(client, order, admin)
        resp = await client.patch(
            f"/api/admin/orders/{order['id']}/status",
            json={"status": "shipped"},
            headers=bearer(admin),
        )
        assert resp.status_code == 400
        assert "ship endpoint" in resp.json()["message"]

        resp = await client.get(f"/api/orders/{order['id']}", headers=bearer(admin))
        assert resp.json()["status"] == "processing"
        assert resp.json()["shippedAt"] is None

    async def test_cancel_releases_stock(self, client, product, admin):
        order = await place_order(client, product, quantity=3)
        assert await product_stock(product.id) == 7

        resp = await client.patch(
            f"/api/admin/orders/{order['id']}/status",
            json={"status": "cancelled"},
            headers=bearer(admin),
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "cancelled"
        assert await product_stock(product.id) == 10

        # Cancelling twice must not release twice
        await client.patch(
            f"/api/admin/orders/{order['id']}/status",
            json={"status": "cancelled"},
            headers=bearer(admin),
        )
        assert await product_stock(product.id) == 10


async def mark_processing(client, order, admin):
    resp = await client.patch(
        f"/api/admin/orders/{order['id']}/status",
        json={"status": "processing"},
        headers=bearer(admin),
    )
    assert resp.status_code == 200


class TestShipOrder:
    async def test_tracking_required(self, client, product, admin):
        order = await place_order(client, product)
        resp = await client.patch(
            f"/api/admin/orders/{order['id']}/ship",
            json={"trackingNumber": "  "},
            headers=bearer(admin),
        )
        assert resp.status_code == 400
        assert resp.json()["message"] == "Tracking number is required"

    async def test_ship_sets_fields_and_queues_email(self, client, product, admin):
        order = await place_order(client, product)
        await mark_processing(client, order, admin)
        resp = await client.patch(
            f"/api/admin/orders/{order['id']}/ship",
            json={"trackingNumber": "1Z999"},
            headers=bearer(admin),
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "shipped"
        assert body["trackingNumber"] == "1Z999"
        assert body["shippedAt"] is not None

        async with database.session() as session:
            kinds = (await session.execute(select(NotificationOutbox.kind))).scalars().all()
        assert sorted(kinds) == ["order_confirmation", "order_shipped"]

    async def test_ship_without_email(self, client, product, admin):
        order = await place_order(client, product)
        await mark_processing(client, order, admin)
        await client.patch(
            f"/api/admin/orders/{order['id']}/ship",
            json={"trackingNumber": "1Z999", "sendEmail": False},
            headers=bearer(admin),
        )
        async with database.session() as session:
            kinds = (await session.execute(select(NotificationOutbox.kind))).scalars().all()
        assert kinds == ["order_confirmation"]

    async def test_cannot_ship_cancelled(self, client, product, admin):
        order = await place_order(client, product)
        await client.patch(
            f"/api/admin/orders/{order['id']}/status",
            json={"status": "cancelled"},
            headers=bearer(admin),
        )
        resp = await client.patch(
            f"/api/admin/orders/{order['id']}/ship",
            json={"trackingNumber": "1Z999"},
            headers=bearer(admin),
        )
        assert resp.status_code == 400
