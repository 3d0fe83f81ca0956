import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from services.auth_service.models import User
from services.notification_service.outbox import enqueue_order_confirmation, enqueue_shipping_notice
from services.payment_service.models import Payment
from services.product_service.stock import StockLedger, StockRequest, merge_requests
from shared.config.settings import PAYMENT_CURRENCY
from shared.errors import (
    AuthorizationError, InsufficientStockError, NotFoundError, PersistenceError, ValidationError,
)
from shared.observability import ecomm_checkout_duration_seconds, ecomm_checkout_total
from shared.security import CurrentUser
from .checkout import CheckoutContext, CheckoutPipeline
from .models import Address, Order, OrderItem
from .pricing import PricedLine, PricingPolicy
from .repository import OrderRepository
from .schemas import OrderCreate
from .status import CANCELLED, SHIPPED, ensure_transition

logger = structlog.get_logger(__name__)


class CheckoutService:
    """Turns a checkout request into a persisted order."""

    def __init__(self, db: AsyncSession, pricing: PricingPolicy, dispatcher):
        self.db = db
        self.pricing = pricing
        self.dispatcher = dispatcher
        self.pipeline = (
            CheckoutPipeline()
            .add_step("validate_request", self.validate_request)
            .add_step("resolve_identity", self.resolve_identity)
            .add_step("price_order", self.price_order)
            .add_step("check_stock", self.check_stock)
            .add_step("persist_order", self.persist_order)
            .add_step("notify", self.notify)
        )

    async def checkout(self, data: OrderCreate, user: Optional[CurrentUser] = None) -> Order:
        ctx = CheckoutContext(request=data, user=user)
        with ecomm_checkout_duration_seconds.time():
            try:
                await self.pipeline.execute(ctx)
            except Exception:
                ecomm_checkout_total.labels(status="failed").inc()
                raise
        ecomm_checkout_total.labels(status="success").inc()
        logger.info(
            "checkout_completed",
            order_id=ctx.order.id,
            user_id=ctx.order.user_id,
            total=str(ctx.order.total),
        )
        return ctx.order

    # --- Steps ---

    async def validate_request(self, ctx: CheckoutContext):
        data = ctx.request
        payment = data.payment
        if (
            data.shipping is None
            or not data.items
            or payment is None
            or not (payment.payment_intent_id or payment.payment_method_id)
        ):
            raise ValidationError("Missing required information")

    async def resolve_identity(self, ctx: CheckoutContext):
        if ctx.user is None:
            return
        account = await self.db.get(User, ctx.user.id)
        if account is None or not account.is_active:
            logger.info("checkout_user_unknown_treated_as_guest", user_id=ctx.user.id)
            ctx.user = None
            return
        ctx.account = account

    async def price_order(self, ctx: CheckoutContext):
        items = ctx.request.items
        ctx.products = await StockLedger(self.db).load_products(item.product_id for item in items)

        lines = []
        for item in items:
            product = ctx.products.get(item.product_id)
            if product is None:
                raise ValidationError(f"Product with ID {item.product_id} not found")
            if item.price is not None and Decimal(item.price) != product.price:
                logger.info(
                    "client_price_mismatch",
                    product_id=product.id,
                    client_price=str(item.price),
                    catalogue_price=str(product.price),
                )
            # Size labels only mean something for sized products
            size = item.size if product.has_sizes else None
            ctx.stock_requests.append(StockRequest(product.id, item.quantity, size))
            lines.append(PricedLine(price=product.price, quantity=item.quantity))

        ctx.quote = self.pricing.quote(lines, ctx.request.shipping.method)

    async def check_stock(self, ctx: CheckoutContext):
        await StockLedger(self.db).check(ctx.stock_requests)

    async def persist_order(self, ctx: CheckoutContext):
        try:
            await StockLedger(self.db).reserve(merge_requests(ctx.stock_requests))
            order = self._build_order(ctx)
            OrderRepository.add_order(self.db, order)
            await self.db.flush()
            enqueue_order_confirmation(self.db, order)
            await self.db.commit()
        except InsufficientStockError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("order_persist_failed", error=str(e))
            raise PersistenceError("Failed to save order") from e

        ctx.order = await OrderRepository.get_order(self.db, order.id)

    async def notify(self, ctx: CheckoutContext):
        # The outbox row was committed with the order; a failure here only delays the email
        try:
            self.dispatcher.wake()
        except Exception:
            logger.exception("notification_wake_failed", order_id=ctx.order.id)

    # --- Helpers ---

    def _build_order(self, ctx: CheckoutContext) -> Order:
        data = ctx.request
        shipping = data.shipping
        customer = data.customer
        quote = ctx.quote

        order = Order(
            id=str(uuid.uuid4()),
            shipping_method=shipping.method,
            subtotal=quote.subtotal,
            tax=quote.tax,
            shipping=quote.shipping,
            total=quote.total,
            status="pending",
            payment_status="awaiting",
            payment_intent_id=data.payment.payment_intent_id,
        )

        account = ctx.account
        order.guest_email = (account.email if account else None) or (customer.email if customer else None)
        order.guest_first_name = (account.first_name if account else None) or (customer.first_name if customer else None)
        order.guest_last_name = (account.last_name if account else None) or (customer.last_name if customer else None)

        if account is not None:
            order.user_id = account.id
            order.shipping_address = Address(
                user_id=account.id,
                street=shipping.address,
                city=shipping.city,
                state=shipping.state,
                zip_code=shipping.zip_code,
                country=shipping.country,
            )
        else:
            order.guest_shipping_street = shipping.address
            order.guest_shipping_city = shipping.city
            order.guest_shipping_state = shipping.state
            order.guest_shipping_zip_code = shipping.zip_code
            order.guest_shipping_country = shipping.country

        for item in data.items:
            product = ctx.products[item.product_id]
            order.items.append(OrderItem(
                product_id=product.id,
                product_name=product.name,
                quantity=item.quantity,
                price=product.price,
                size=item.size if product.has_sizes else None,
            ))

        order.payment = Payment(
            amount=quote.total,
            currency=PAYMENT_CURRENCY.upper(),
            status="pending",
            payment_method="stripe",
            payment_method_id=data.payment.payment_method_id,
            payment_intent_id=data.payment.payment_intent_id,
        )
        return order


class OrderService:

    @staticmethod
    async def get_order(db: AsyncSession, order_id: str, user: Optional[CurrentUser] = None) -> Order:
        order = await OrderRepository.get_order(db, order_id)
        if order is None:
            raise NotFoundError("Order", order_id)
        # Guest orders are readable by id; user orders only by their owner or an admin
        if order.user_id is not None:
            if user is None or (user.id != order.user_id and not user.is_admin):
                raise AuthorizationError("Not authorized to view this order")
        return order

    @staticmethod
    async def get_public_order(db: AsyncSession, order_id: str) -> Order:
        order = await OrderRepository.get_order(db, order_id)
        if order is None:
            raise NotFoundError("Order", order_id)
        return order

    @staticmethod
    async def list_user_orders(db: AsyncSession, user: CurrentUser):
        return await OrderRepository.list_orders(db, user_id=user.id)

    @staticmethod
    async def list_all_orders(db: AsyncSession, skip: int = 0, limit: int = 100):
        return await OrderRepository.list_orders(db, skip=skip, limit=limit)

    @staticmethod
    async def cancel(db: AsyncSession, order: Order):
        """Mark an order cancelled and put its stock back. Caller commits."""
        if order.status == CANCELLED:
            return
        ensure_transition(order.status, CANCELLED)
        await StockLedger(db).release(
            merge_requests(StockRequest(i.product_id, i.quantity, i.size) for i in order.items)
        )
        order.status = CANCELLED
        logger.info("order_cancelled", order_id=order.id)

    @staticmethod
    async def update_status(db: AsyncSession, order_id: str, new_status: str) -> Order:
        order = await OrderRepository.get_order(db, order_id, for_update=True)
        if order is None:
            raise NotFoundError("Order", order_id)

        old_status = order.status
        ensure_transition(old_status, new_status)
        if new_status == SHIPPED and old_status != SHIPPED:
            raise ValidationError("Use the ship endpoint to mark an order shipped")
        if new_status == CANCELLED:
            await OrderService.cancel(db, order)
        else:
            order.status = new_status
        await db.commit()
        logger.info("order_status_updated", order_id=order_id, old_status=old_status, new_status=new_status)
        return await OrderRepository.get_order(db, order_id)

    @staticmethod
    async def ship(
        db: AsyncSession,
        order_id: str,
        tracking_number: Optional[str],
        send_email: bool = True,
        dispatcher=None,
    ) -> Order:
        if not tracking_number or not tracking_number.strip():
            raise ValidationError("Tracking number is required")

        order = await OrderRepository.get_order(db, order_id, for_update=True)
        if order is None:
            raise NotFoundError("Order", order_id)
        ensure_transition(order.status, SHIPPED)

        order.status = SHIPPED
        order.tracking_number = tracking_number.strip()
        order.shipped_at = datetime.now(timezone.utc)
        if send_email:
            enqueue_shipping_notice(db, order)
        await db.commit()
        logger.info("order_shipped", order_id=order_id, tracking_number=order.tracking_number)

        if send_email and dispatcher is not None:
            dispatcher.wake()
        return await OrderRepository.get_order(db, order_id)
