from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from services.notification_service.dispatcher import NotificationDispatcher, get_notification_dispatcher
from shared.config.database import get_db
from shared.config.settings import CHECKOUT_RATE_LIMIT
from shared.security import CurrentUser, get_current_user, get_optional_user, limiter, require_admin
from .pricing import PricingPolicy, get_pricing_policy
from .schemas import (
    CreateOrderResponse, OrderCreate, OrderResponse, OrderStatusUpdate, OrderSummary, ShipmentUpdate,
)
from .service import CheckoutService, OrderService

router = APIRouter(prefix="/api/orders", tags=["Orders"])
admin_router = APIRouter(
    prefix="/api/admin/orders",
    tags=["Admin"],
    dependencies=[Depends(require_admin)],
)


def get_checkout_service(
    db: AsyncSession = Depends(get_db),
    pricing: PricingPolicy = Depends(get_pricing_policy),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
) -> CheckoutService:
    return CheckoutService(db, pricing, dispatcher)


@router.post("/create-order", response_model=CreateOrderResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(CHECKOUT_RATE_LIMIT)
async def create_order(
    request: Request,                           # slowapi reads the client key from this
    payload: OrderCreate,
    user: Optional[CurrentUser] = Depends(get_optional_user),
    checkout: CheckoutService = Depends(get_checkout_service),
):
    order = await checkout.checkout(payload, user)
    return CreateOrderResponse(order_id=order.id, order=OrderResponse.from_order(order))


@router.get("", response_model=list[OrderResponse])
async def list_my_orders(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    orders = await OrderService.list_user_orders(db, user)
    return [OrderResponse.from_order(o) for o in orders]


@router.get("/public/{order_id}", response_model=OrderSummary)
async def get_public_order(order_id: str, db: AsyncSession = Depends(get_db)):
    return await OrderService.get_public_order(db, order_id)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: str,
    user: Optional[CurrentUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    order = await OrderService.get_order(db, order_id, user)
    return OrderResponse.from_order(order)


# --- Admin ---

@admin_router.get("", response_model=list[OrderResponse])
async def list_all_orders(
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    orders = await OrderService.list_all_orders(db, skip, limit)
    return [OrderResponse.from_order(o) for o in orders]


@admin_router.patch("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(order_id: str, payload: OrderStatusUpdate, db: AsyncSession = Depends(get_db)):
    order = await OrderService.update_status(db, order_id, payload.status)
    return OrderResponse.from_order(order)


@admin_router.patch("/{order_id}/ship", response_model=OrderResponse)
async def ship_order(
    order_id: str,
    payload: ShipmentUpdate,
    db: AsyncSession = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    order = await OrderService.ship(db, order_id, payload.tracking_number, payload.send_email, dispatcher)
    return OrderResponse.from_order(order)
