from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from .models import Product, ProductSize

class ProductRepository:

    @staticmethod
    async def create_product(db: AsyncSession, product: Product):
        db.add(product)
        await db.commit()
        return await ProductRepository.get_product_by_id(db, product.id)

    @staticmethod
    async def get_all_products(db: AsyncSession):
        result = await db.execute(select(Product).order_by(Product.created_at.desc()))
        return result.scalars().all()

    @staticmethod
    async def get_product_by_id(db: AsyncSession, product_id: str) -> Optional[Product]:
        result = await db.execute(
            select(Product)
            .where(Product.id == product_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    @staticmethod
    async def replace_sizes(db: AsyncSession, product: Product, sizes: list[ProductSize]):
        # Flush the removals first so re-used size labels don't hit the unique key
        product.sizes.clear()
        await db.flush()
        product.sizes.extend(sizes)
        product.has_sizes = bool(sizes)
        await db.commit()
        return await ProductRepository.get_product_by_id(db, product.id)
