from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from services.order_service.pricing import PricingPolicy, get_pricing_policy
from shared.config.database import get_db
from shared.config.settings import CHECKOUT_RATE_LIMIT
from shared.security import limiter
from .gateway import StripeGateway, get_payment_gateway
from .schemas import CreateIntentRequest, CreateIntentResponse, WebhookAck
from .service import PaymentService

router = APIRouter(prefix="/api/payment", tags=["Payments"])


@router.post("/create-intent", response_model=CreateIntentResponse)
@limiter.limit(CHECKOUT_RATE_LIMIT)
async def create_intent(
    request: Request,
    payload: CreateIntentRequest,
    db: AsyncSession = Depends(get_db),
    gateway: StripeGateway = Depends(get_payment_gateway),
    pricing: PricingPolicy = Depends(get_pricing_policy),
):
    return await PaymentService.create_intent(db, payload, gateway, pricing)


@router.post("/webhook", response_model=WebhookAck)
async def stripe_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
    gateway: StripeGateway = Depends(get_payment_gateway),
):
    # Signature covers the exact bytes, so read the raw body
    body = await request.body()
    event = gateway.construct_event(body, request.headers.get("Stripe-Signature"))
    await PaymentService.handle_webhook(db, event)
    return WebhookAck()
