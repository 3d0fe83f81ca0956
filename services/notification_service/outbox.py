from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.settings import SHOP_NAME
from .models import NotificationOutbox

logger = structlog.get_logger(__name__)

ORDER_CONFIRMATION = "order_confirmation"
ORDER_SHIPPED = "order_shipped"


def _money(value) -> str:
    return f"{value:.2f}"


def _address_payload(order) -> dict:
    full_name = f"{order.guest_first_name or ''} {order.guest_last_name or ''}".strip()
    # Guest orders carry no address row
    addr = order.shipping_address if order.shipping_address_id else None
    if addr is not None:
        return {
            "fullName": full_name, "street": addr.street, "city": addr.city,
            "state": addr.state, "zipCode": addr.zip_code, "country": addr.country,
        }
    return {
        "fullName": full_name,
        "street": order.guest_shipping_street or "",
        "city": order.guest_shipping_city or "",
        "state": order.guest_shipping_state or "",
        "zipCode": order.guest_shipping_zip_code or "",
        "country": order.guest_shipping_country or "",
    }


def _enqueue(db: AsyncSession, kind: str, recipient: Optional[str], subject: str, payload: dict):
    if not recipient:
        logger.warning("notification_skipped_no_recipient", kind=kind, order_id=payload.get("orderId"))
        return None
    row = NotificationOutbox(kind=kind, recipient=recipient, subject=subject, payload=payload, status="pending")
    db.add(row)
    return row


def enqueue_order_confirmation(db: AsyncSession, order) -> Optional[NotificationOutbox]:
    """Queue the confirmation email inside the caller's order transaction."""
    payload = {
        "orderId": order.id,
        "firstName": order.guest_first_name,
        "items": [
            {
                "productName": item.product_name,
                "quantity": item.quantity,
                "price": _money(item.price),
                "size": item.size,
            }
            for item in order.items
        ],
        "subtotal": _money(order.subtotal),
        "tax": _money(order.tax),
        "shipping": _money(order.shipping),
        "total": _money(order.total),
        "shippingAddress": _address_payload(order),
    }
    return _enqueue(
        db, ORDER_CONFIRMATION, order.guest_email,
        f"Order Confirmation - {SHOP_NAME}", payload,
    )


def enqueue_shipping_notice(db: AsyncSession, order) -> Optional[NotificationOutbox]:
    payload = {
        "orderId": order.id,
        "customerName": f"{order.guest_first_name or ''} {order.guest_last_name or ''}".strip(),
        "trackingNumber": order.tracking_number,
        "total": _money(order.total),
        "shippingAddress": _address_payload(order),
    }
    return _enqueue(
        db, ORDER_SHIPPED, order.guest_email,
        f"Your order #{order.id[:8]} has shipped", payload,
    )
