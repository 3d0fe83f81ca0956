"""Tests for the email outbox and its dispatcher."""

from sqlalchemy import select, update

from services.notification_service.dispatcher import NotificationDispatcher
from services.notification_service.mailer import SMTPMailer
from services.notification_service.models import NotificationOutbox
from services.notification_service.templates import render_order_confirmation, render_order_shipped
from shared.config.database import database
from shared.errors import NotificationError

from .conftest import place_order


class RecordingMailer:
    def __init__(self):
        self.sent = []

    async def send(self, recipient, subject, html):
        self.sent.append((recipient, subject, html))


class FailingMailer:
    async def send(self, recipient, subject, html):
        raise NotificationError("SMTP server said no")


class CrashingMailer:
    async def send(self, recipient, subject, html):
        recipient.encode("ascii")


async def outbox_rows():
    async with database.session() as session:
        result = await session.execute(select(NotificationOutbox).order_by(NotificationOutbox.id))
        return result.scalars().all()


class TestDispatcher:
    async def test_sends_confirmation(self, client, product):
        order = await place_order(client, product, quantity=2)
        mailer = RecordingMailer()

        sent = await NotificationDispatcher(database, mailer).drain_once()

        assert sent == 1
        recipient, subject, html = mailer.sent[0]
        assert recipient == "guest@example.com"
        assert "Order Confirmation" in subject
        assert order["id"] in html
        assert "Basic Tee" in html
        assert "$60.75" in html

        row = (await outbox_rows())[0]
        assert row.status == "sent"
        assert row.sent_at is not None
        assert row.attempts == 1

    async def test_each_row_sent_once(self, client, product):
        await place_order(client, product)
        mailer = RecordingMailer()
        dispatcher = NotificationDispatcher(database, mailer)

        await dispatcher.drain_once()
        await dispatcher.drain_once()
        await NotificationDispatcher(database, mailer).drain_once()

        assert len(mailer.sent) == 1

    async def test_claimed_rows_are_skipped(self, client, product):
        await place_order(client, product)
        async with database.session() as session:
            await session.execute(update(NotificationOutbox).values(status="sending"))
            await session.commit()

        mailer = RecordingMailer()
        assert await NotificationDispatcher(database, mailer).drain_once() == 0
        assert mailer.sent == []

    async def test_failure_recorded_and_order_kept(self, client, product):
        order = await place_order(client, product)

        sent = await NotificationDispatcher(database, FailingMailer()).drain_once()

        assert sent == 0
        row = (await outbox_rows())[0]
        assert row.status == "failed"
        assert row.last_error == "SMTP server said no"

        resp = await client.get(f"/api/orders/{order['id']}")
        assert resp.status_code == 200

    async def test_unexpected_error_recorded(self, client, product):
        await place_order(client, product)
        async with database.session() as session:
            await session.execute(update(NotificationOutbox).values(recipient="jos\u00e9@example.com"))
            await session.commit()

        sent = await NotificationDispatcher(database, CrashingMailer()).drain_once()

        assert sent == 0
        row = (await outbox_rows())[0]
        assert row.status == "failed"
        assert row.last_error.startswith("UnicodeEncodeError")

    async def test_failed_rows_not_retried(self, client, product):
        await place_order(client, product)
        await NotificationDispatcher(database, FailingMailer()).drain_once()

        mailer = RecordingMailer()
        await NotificationDispatcher(database, mailer).drain_once()
        assert mailer.sent == []

    async def test_no_smtp_host_marks_failed(self, client, product):
        await place_order(client, product)
        await NotificationDispatcher(database, SMTPMailer(host="")).drain_once()

        row = (await outbox_rows())[0]
        assert row.status == "failed"
        assert "EMAIL_HOST" in row.last_error


class TestTemplates:
    def test_confirmation_escapes_html(self):
        html = render_order_confirmation({
            "orderId": "abc",
            "firstName": "<script>alert(1)</script>",
            "items": [{"productName": "Tee & Co", "quantity": 1, "price": "10.00", "size": "M"}],
            "subtotal": "10.00", "tax": "1.15", "shipping": "0.00", "total": "11.15",
            "shippingAddress": {"fullName": "A B", "street": "1 Main", "city": "X", "state": "Y", "zipCode": "1"},
        })
        assert "<script>" not in html
        assert "&lt;script&gt;" in html
        assert "Tee &amp; Co (M)" in html
        assert "Free" in html

    def test_confirmation_without_items(self):
        html = render_order_confirmation({"orderId": "abc", "items": []})
        assert "No items in order" in html

    def test_shipped_includes_tracking(self):
        html = render_order_shipped({
            "orderId": "0123456789",
            "customerName": "Jane",
            "trackingNumber": "1Z999",
            "total": "20.00",
        })
        assert "1Z999" in html
        assert "#01234567" in html
