import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, Numeric, String,
    Text, UniqueConstraint,
)
from sqlalchemy.orm import relationship

from shared.config.database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Product(Base):
    __tablename__ = "products"
    __table_args__ = (CheckConstraint("stock >= 0", name="ck_products_stock_nonneg"),)

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    # Only meaningful when has_sizes is False
    stock = Column(Integer, nullable=False, default=0)
    has_sizes = Column(Boolean, nullable=False, default=False)
    image_url = Column(String(512), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_now)

    sizes = relationship(
        "ProductSize",
        back_populates="product",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="ProductSize.size",
    )

    @property
    def available_stock(self) -> int:
        if self.has_sizes:
            return sum(s.stock for s in self.sizes)
        return self.stock

    def size_entry(self, size: str):
        for entry in self.sizes:
            if entry.size == size:
                return entry
        return None


class ProductSize(Base):
    __tablename__ = "product_sizes"
    __table_args__ = (
        UniqueConstraint("product_id", "size", name="uq_product_sizes_product_size"),
        CheckConstraint("stock >= 0", name="ck_product_sizes_stock_nonneg"),
    )

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(String(36), ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    size = Column(String(20), nullable=False)
    stock = Column(Integer, nullable=False, default=0)

    product = relationship("Product", back_populates="sizes")
