"""
Order totals.

Tax is a fixed 11.5% of the subtotal. Shipping comes from a named policy
chosen by the SHIPPING_POLICY setting, so every caller (checkout, payment
intents) prices an order the same way.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

from shared.config.settings import SHIPPING_POLICY
from shared.errors import ValidationError

TAX_RATE = Decimal("0.115")
CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PricedLine:
    price: Decimal
    quantity: int


@dataclass(frozen=True)
class PriceQuote:
    subtotal: Decimal
    tax: Decimal
    shipping: Decimal
    total: Decimal

    @property
    def amount_cents(self) -> int:
        return int((self.total * 100).to_integral_value(rounding=ROUND_HALF_UP))


class ShippingPolicy:
    name = "base"

    def cost(self, method: Optional[str], subtotal: Decimal) -> Decimal:
        raise NotImplementedError


class FlatRateShipping(ShippingPolicy):
    """$5 standard, $15 express. Unknown methods ship standard."""
    name = "flat"

    def __init__(self, standard: Decimal = Decimal("5.00"), express: Decimal = Decimal("15.00")):
        self.standard = standard
        self.express = express

    def cost(self, method, subtotal):
        return self.express if method == "express" else self.standard


class ThresholdShipping(ShippingPolicy):
    """Free from the threshold up, flat fee below it."""
    name = "threshold"

    def __init__(self, threshold: Decimal = Decimal("100.00"), fee: Decimal = Decimal("10.00")):
        self.threshold = threshold
        self.fee = fee

    def cost(self, method, subtotal):
        return Decimal("0.00") if subtotal >= self.threshold else self.fee


SHIPPING_POLICIES = {
    FlatRateShipping.name: FlatRateShipping,
    ThresholdShipping.name: ThresholdShipping,
}


class PricingPolicy:
    def __init__(self, shipping: ShippingPolicy, tax_rate: Decimal = TAX_RATE):
        self.shipping = shipping
        self.tax_rate = tax_rate

    def quote(self, lines: Iterable[PricedLine], shipping_method: Optional[str] = "standard") -> PriceQuote:
        lines = list(lines)
        if not lines:
            raise ValidationError("Cannot price an order without items")

        subtotal = to_money(sum((Decimal(line.price) * line.quantity for line in lines), Decimal("0")))
        tax = to_money(subtotal * self.tax_rate)
        shipping = to_money(self.shipping.cost(shipping_method, subtotal))
        return PriceQuote(
            subtotal=subtotal,
            tax=tax,
            shipping=shipping,
            total=to_money(subtotal + tax + shipping),
        )


def build_pricing_policy(name: str = SHIPPING_POLICY) -> PricingPolicy:
    try:
        shipping_cls = SHIPPING_POLICIES[name]
    except KeyError:
        raise ValueError(f"Unknown SHIPPING_POLICY {name!r}; expected one of {sorted(SHIPPING_POLICIES)}")
    return PricingPolicy(shipping_cls())


_pricing_policy = build_pricing_policy()


def get_pricing_policy() -> PricingPolicy:
    return _pricing_policy
