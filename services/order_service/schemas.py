from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import Field

from shared.schemas import CamelModel


# --- Checkout request ---

ShippingMethod = Literal["standard", "express"]


class CustomerInfo(CamelModel):
    email: Optional[str] = Field(default=None, max_length=255)
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)


class ShippingInfo(CamelModel):
    address: str = Field(min_length=1, max_length=255)
    city: str = Field(min_length=1, max_length=100)
    state: str = Field(min_length=1, max_length=100)
    zip_code: str = Field(min_length=1, max_length=20)
    country: str = Field(default="US", min_length=2, max_length=2)
    method: ShippingMethod = "standard"


class PaymentInfo(CamelModel):
    payment_intent_id: Optional[str] = None
    payment_method_id: Optional[str] = None


class OrderItemCreate(CamelModel):
    product_id: str
    quantity: int = Field(gt=0)
    # Informational; the catalogue price is what gets charged
    price: Optional[Decimal] = None
    size: Optional[str] = Field(default=None, max_length=20)


class OrderCreate(CamelModel):
    customer: Optional[CustomerInfo] = None
    shipping: Optional[ShippingInfo] = None
    payment: Optional[PaymentInfo] = None
    items: Optional[List[OrderItemCreate]] = None


# --- Admin updates ---

class OrderStatusUpdate(CamelModel):
    status: str


class ShipmentUpdate(CamelModel):
    tracking_number: Optional[str] = None
    send_email: bool = True


# --- Responses ---

class OrderItemResponse(CamelModel):
    id: int
    product_id: str
    product_name: str
    quantity: int
    price: Decimal
    size: Optional[str] = None


class ShippingAddressResponse(CamelModel):
    full_name: str = ""
    street: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    country: str = ""


class PaymentSummary(CamelModel):
    id: str
    amount: Decimal
    currency: str
    status: str
    payment_intent_id: Optional[str] = None


class OrderResponse(CamelModel):
    id: str
    user_id: Optional[int] = None
    status: str
    payment_status: str
    shipping_method: str
    subtotal: Decimal
    tax: Decimal
    shipping: Decimal
    total: Decimal
    guest_email: Optional[str] = None
    guest_first_name: Optional[str] = None
    guest_last_name: Optional[str] = None
    shipping_address: ShippingAddressResponse
    items: List[OrderItemResponse] = Field(default_factory=list, serialization_alias="orderItems")
    payment: Optional[PaymentSummary] = None
    tracking_number: Optional[str] = None
    shipped_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_order(cls, order) -> "OrderResponse":
        full_name = f"{order.guest_first_name or ''} {order.guest_last_name or ''}".strip()
        if order.shipping_address is not None:
            addr = order.shipping_address
            address = ShippingAddressResponse(
                full_name=full_name, street=addr.street, city=addr.city,
                state=addr.state, zip_code=addr.zip_code, country=addr.country,
            )
        else:
            address = ShippingAddressResponse(
                full_name=full_name,
                street=order.guest_shipping_street or "",
                city=order.guest_shipping_city or "",
                state=order.guest_shipping_state or "",
                zip_code=order.guest_shipping_zip_code or "",
                country=order.guest_shipping_country or "",
            )
        return cls(
            id=order.id,
            user_id=order.user_id,
            status=order.status,
            payment_status=order.payment_status,
            shipping_method=order.shipping_method,
            subtotal=order.subtotal,
            tax=order.tax,
            shipping=order.shipping,
            total=order.total,
            guest_email=order.guest_email,
            guest_first_name=order.guest_first_name,
            guest_last_name=order.guest_last_name,
            shipping_address=address,
            items=[OrderItemResponse.model_validate(item) for item in order.items],
            payment=PaymentSummary.model_validate(order.payment) if order.payment else None,
            tracking_number=order.tracking_number,
            shipped_at=order.shipped_at,
            created_at=order.created_at,
        )


class OrderSummary(CamelModel):
    """What an anonymous caller may see about an order."""
    id: str
    created_at: Optional[datetime] = None
    status: str
    payment_status: str
    subtotal: Decimal
    tax: Decimal
    shipping: Decimal
    total: Decimal


class CreateOrderResponse(CamelModel):
    success: bool = True
    order_id: str
    order: OrderResponse
