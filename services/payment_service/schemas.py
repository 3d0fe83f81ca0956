from typing import List, Optional

from pydantic import Field

from services.order_service.schemas import ShippingMethod
from shared.schemas import CamelModel


class IntentItem(CamelModel):
    product_id: str
    quantity: int = Field(gt=0)
    size: Optional[str] = Field(default=None, max_length=20)


class CreateIntentRequest(CamelModel):
    items: List[IntentItem] = Field(min_length=1)
    shipping_method: ShippingMethod = "standard"


class CreateIntentResponse(CamelModel):
    client_secret: str
    payment_intent_id: str
    amount: int # cents
    currency: str


class WebhookAck(CamelModel):
    received: bool = True
