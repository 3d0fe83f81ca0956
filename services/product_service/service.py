from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from shared.errors import NotFoundError, ValidationError
from .models import Product, ProductSize
from .repository import ProductRepository
from .schemas import ProductCreate, SizeStock
from .stock import StockLedger, StockRequest

logger = structlog.get_logger(__name__)


def _unique_sizes(sizes: list[SizeStock]) -> list[ProductSize]:
    labels = [s.size for s in sizes]
    if len(labels) != len(set(labels)):
        raise ValidationError("Duplicate size labels")
    return [ProductSize(size=s.size, stock=s.stock) for s in sizes]


class ProductService:

    @staticmethod
    async def create_product(db: AsyncSession, data: ProductCreate):
        if data.has_sizes and not data.sizes:
            raise ValidationError("Sized products need at least one size")
        product = Product(
            name=data.name,
            description=data.description,
            price=data.price,
            # Sized products derive availability from their sizes
            stock=0 if data.has_sizes else data.stock,
            has_sizes=data.has_sizes,
            image_url=data.image_url,
            sizes=_unique_sizes(data.sizes) if data.has_sizes else [],
        )
        product = await ProductRepository.create_product(db, product)
        logger.info("product_created", product_id=product.id, has_sizes=product.has_sizes)
        return product

    @staticmethod
    async def list_products(db: AsyncSession, query: Optional[str] = None):
        products = await ProductRepository.get_all_products(db)
        if query:
            query_words = set(query.lower().split())
            products = [p for p in products if query_words & set(p.name.lower().split())]
        return products

    @staticmethod
    async def get_product_by_id(db: AsyncSession, product_id: str) -> Product:
        product = await ProductRepository.get_product_by_id(db, product_id)
        if not product:
            raise NotFoundError("Product", product_id)
        return product

    @staticmethod
    async def replace_sizes(db: AsyncSession, product_id: str, sizes: list[SizeStock]) -> Product:
        product = await ProductService.get_product_by_id(db, product_id)
        return await ProductRepository.replace_sizes(db, product, _unique_sizes(sizes))

    @staticmethod
    async def restock(db: AsyncSession, product_id: str, quantity: int, size: Optional[str] = None) -> Product:
        product = await ProductService.get_product_by_id(db, product_id)
        if product.has_sizes:
            if not size or product.size_entry(size) is None:
                raise ValidationError(f"Unknown size {size!r} for {product.name}")
        else:
            size = None
        await StockLedger(db).release([StockRequest(product_id, quantity, size)])
        await db.commit()
        return await ProductRepository.get_product_by_id(db, product_id)
