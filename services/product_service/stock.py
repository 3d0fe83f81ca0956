"""
Inventory checks and movements for order lines.

`check` is a fast read-only pre-flight that produces precise error messages.
`reserve` is the authoritative guard: one conditional UPDATE per line that
only succeeds while enough stock remains, so two checkouts racing for the
last unit cannot both pass. It is meant to run inside the caller's order
transaction; a shortfall raises and the caller rolls everything back.
"""
from collections import OrderedDict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from shared.errors import InsufficientStockError, ValidationError
from shared.observability import ecomm_stock_rejections_total
from .models import Product, ProductSize

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class StockRequest:
    product_id: str
    quantity: int
    size: Optional[str] = None


def merge_requests(requests: Iterable[StockRequest]) -> List[StockRequest]:
    """Collapse repeated (product, size) lines into one request each."""
    merged: "OrderedDict[tuple, int]" = OrderedDict()
    for req in requests:
        key = (req.product_id, req.size)
        merged[key] = merged.get(key, 0) + req.quantity
    return [StockRequest(pid, qty, size) for (pid, size), qty in merged.items()]


def lock_order(requests: Iterable[StockRequest]) -> List[StockRequest]:
    """Sort lines by (product, size). Every stock writer touches rows in this order."""
    return sorted(requests, key=lambda r: (r.product_id, r.size or ""))


class StockLedger:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def load_products(self, product_ids: Iterable[str]) -> Dict[str, Product]:
        ids = list(dict.fromkeys(product_ids))
        if not ids:
            return {}
        result = await self.db.execute(select(Product).where(Product.id.in_(ids)))
        return {p.id: p for p in result.scalars().all()}

    async def check(self, requests: Iterable[StockRequest]) -> Dict[str, Product]:
        """Validate availability without writing. Returns products keyed by id."""
        merged = merge_requests(requests)
        products = await self.load_products(r.product_id for r in merged)

        for req in merged:
            product = products.get(req.product_id)
            if product is None:
                raise ValidationError(f"Product with ID {req.product_id} not found")

            if product.has_sizes:
                if not req.size:
                    raise ValidationError(f"A size must be selected for {product.name}")
                entry = product.size_entry(req.size)
                available = entry.stock if entry is not None else 0
            else:
                available = product.stock

            if available < req.quantity:
                ecomm_stock_rejections_total.inc()
                raise InsufficientStockError(
                    product_id=product.id,
                    product_name=product.name,
                    requested=req.quantity,
                    available=available,
                    size=req.size if product.has_sizes else None,
                )
        return products

    async def reserve(self, requests: Iterable[StockRequest]) -> None:
        """Atomically decrement stock for every line, or raise on the first shortfall."""
        for req in lock_order(requests):
            if req.size is not None:
                stmt = (
                    update(ProductSize)
                    .where(
                        ProductSize.product_id == req.product_id,
                        ProductSize.size == req.size,
                        ProductSize.stock >= req.quantity,
                    )
                    .values(stock=ProductSize.stock - req.quantity)
                )
            else:
                stmt = (
                    update(Product)
                    .where(
                        Product.id == req.product_id,
                        Product.has_sizes.is_(False),
                        Product.stock >= req.quantity,
                    )
                    .values(stock=Product.stock - req.quantity)
                )
            result = await self.db.execute(stmt.execution_options(synchronize_session=False))
            if result.rowcount != 1:
                ecomm_stock_rejections_total.inc()
                await self._raise_shortfall(req)
            logger.debug("stock_reserved", product_id=req.product_id, size=req.size, quantity=req.quantity)

    async def release(self, requests: Iterable[StockRequest]) -> None:
        """Return stock for cancelled lines (relative increment)."""
        for req in lock_order(requests):
            if req.size is not None:
                stmt = (
                    update(ProductSize)
                    .where(ProductSize.product_id == req.product_id, ProductSize.size == req.size)
                    .values(stock=ProductSize.stock + req.quantity)
                )
            else:
                stmt = (
                    update(Product)
                    .where(Product.id == req.product_id)
                    .values(stock=Product.stock + req.quantity)
                )
            await self.db.execute(stmt.execution_options(synchronize_session=False))
            logger.info("stock_released", product_id=req.product_id, size=req.size, quantity=req.quantity)

    async def _raise_shortfall(self, req: StockRequest):
        if req.size is not None:
            available = await self.db.scalar(
                select(ProductSize.stock).where(
                    ProductSize.product_id == req.product_id, ProductSize.size == req.size
                )
            )
        else:
            available = await self.db.scalar(select(Product.stock).where(Product.id == req.product_id))
        name = await self.db.scalar(select(Product.name).where(Product.id == req.product_id))
        raise InsufficientStockError(
            product_id=req.product_id,
            product_name=name or req.product_id,
            requested=req.quantity,
            available=available or 0,
            size=req.size,
        )
