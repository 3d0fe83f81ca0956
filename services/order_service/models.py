import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, Numeric, String,
)
from sqlalchemy.orm import relationship

from shared.config.database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Address(Base):
    """A shipping address saved to a user's account."""
    __tablename__ = "addresses"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    street = Column(String(255), nullable=False)
    city = Column(String(100), nullable=False)
    state = Column(String(100), nullable=False)
    zip_code = Column(String(20), nullable=False)
    country = Column(String(2), nullable=False, default="US")
    is_default = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=_now)


class Order(Base):
    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint("subtotal >= 0 AND tax >= 0 AND shipping >= 0 AND total >= 0",
                        name="ck_orders_money_nonneg"),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    # Nulled (not deleted) when the user goes away
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    # Contact snapshot, filled for guests and users alike
    guest_email = Column(String(255), nullable=True)
    guest_first_name = Column(String(100), nullable=True)
    guest_last_name = Column(String(100), nullable=True)

    # Guest orders only; user orders link shipping_address instead
    guest_shipping_street = Column(String(255), nullable=True)
    guest_shipping_city = Column(String(100), nullable=True)
    guest_shipping_state = Column(String(100), nullable=True)
    guest_shipping_zip_code = Column(String(20), nullable=True)
    guest_shipping_country = Column(String(2), nullable=True)

    shipping_address_id = Column(String(36), ForeignKey("addresses.id", ondelete="SET NULL"), nullable=True)
    shipping_method = Column(String(20), nullable=False, default="standard")

    subtotal = Column(Numeric(10, 2), nullable=False)
    tax = Column(Numeric(10, 2), nullable=False)
    shipping = Column(Numeric(10, 2), nullable=False)
    total = Column(Numeric(10, 2), nullable=False)

    status = Column(String(20), nullable=False, default="pending")
    payment_status = Column(String(20), nullable=False, default="awaiting")
    payment_intent_id = Column(String(255), nullable=True, index=True)

    tracking_number = Column(String(100), nullable=True)
    shipped_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_now, index=True)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)

    items = relationship(
        "OrderItem", back_populates="order", lazy="selectin", cascade="all, delete-orphan"
    )
    shipping_address = relationship("Address", lazy="selectin")
    payment = relationship("Payment", uselist=False, lazy="selectin", cascade="all, delete-orphan")


class OrderItem(Base):
    __tablename__ = "order_items"
    __table_args__ = (CheckConstraint("quantity > 0", name="ck_order_items_quantity_pos"),)

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(String(36), ForeignKey("products.id"), nullable=False)
    product_name = Column(String(255), nullable=False)
    quantity = Column(Integer, nullable=False)
    # Unit price at purchase time
    price = Column(Numeric(10, 2), nullable=False)
    size = Column(String(20), nullable=True)

    order = relationship("Order", back_populates="items")
