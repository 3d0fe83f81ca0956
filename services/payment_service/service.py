import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from services.order_service.pricing import PricedLine, PricingPolicy
from services.order_service.repository import OrderRepository
from services.order_service.service import OrderService
from services.order_service.status import (
    PAYMENT_FAILED, PAYMENT_PAID, PAYMENT_PROCESSING, PENDING, PROCESSING,
)
from services.product_service.stock import StockLedger
from shared.config.settings import PAYMENT_CURRENCY
from shared.errors import ValidationError
from shared.observability import ecomm_payment_webhooks_total
from .gateway import StripeGateway
from .schemas import CreateIntentRequest, CreateIntentResponse

logger = structlog.get_logger(__name__)

INTENT_SUCCEEDED = "payment_intent.succeeded"
INTENT_PROCESSING = "payment_intent.processing"
INTENT_FAILED = "payment_intent.payment_failed"


class PaymentService:

    @staticmethod
    async def create_intent(
        db: AsyncSession,
        data: CreateIntentRequest,
        gateway: StripeGateway,
        pricing: PricingPolicy,
    ) -> CreateIntentResponse:
        """Price the cart from the catalogue and open a PaymentIntent for the full total."""
        products = await StockLedger(db).load_products(item.product_id for item in data.items)
        lines = []
        for item in data.items:
            product = products.get(item.product_id)
            if product is None:
                raise ValidationError(f"Product with ID {item.product_id} not found")
            lines.append(PricedLine(price=product.price, quantity=item.quantity))

        quote = pricing.quote(lines, data.shipping_method)
        intent = await gateway.create_payment_intent(
            quote.amount_cents,
            PAYMENT_CURRENCY,
            metadata={
                "subtotal": quote.subtotal,
                "tax": quote.tax,
                "shipping": quote.shipping,
            },
        )
        return CreateIntentResponse(
            client_secret=intent["client_secret"],
            payment_intent_id=intent["id"],
            amount=quote.amount_cents,
            currency=PAYMENT_CURRENCY,
        )

    @staticmethod
    async def handle_webhook(db: AsyncSession, event: dict) -> None:
        event_type = event.get("type") or "unknown"
        intent = (event.get("data") or {}).get("object") or {}
        intent_id = intent.get("id")
        ecomm_payment_webhooks_total.labels(event=event_type).inc()

        if event_type not in (INTENT_SUCCEEDED, INTENT_PROCESSING, INTENT_FAILED):
            logger.info("webhook_event_ignored", event_type=event_type)
            return

        order = await OrderRepository.get_by_payment_intent(db, intent_id) if intent_id else None
        if order is None:
            logger.warning("webhook_unknown_payment_intent", event_type=event_type, payment_intent_id=intent_id)
            return

        payment = order.payment
        if event_type == INTENT_SUCCEEDED:
            order.payment_status = PAYMENT_PAID
            if order.status == PENDING:
                order.status = PROCESSING
            if payment is not None:
                payment.status = "completed"
        elif event_type == INTENT_PROCESSING:
            order.payment_status = PAYMENT_PROCESSING
        else:
            order.payment_status = PAYMENT_FAILED
            if order.status == PENDING:
                await OrderService.cancel(db, order)
            if payment is not None:
                payment.status = "failed"

        await db.commit()
        logger.info(
            "payment_reconciled",
            event_type=event_type,
            order_id=order.id,
            payment_status=order.payment_status,
            status=order.status,
        )
