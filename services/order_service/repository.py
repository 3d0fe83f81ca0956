from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from .models import Order

class OrderRepository:
    """Queries over the order aggregate. Callers own commit/rollback."""

    @staticmethod
    def add_order(db: AsyncSession, order: Order) -> Order:
        # Items, address and payment ride along through the relationship cascades
        db.add(order)
        return order

    @staticmethod
    async def get_order(db: AsyncSession, order_id: str, for_update: bool = False) -> Optional[Order]:
        stmt = select(Order).where(Order.id == order_id).execution_options(populate_existing=True)
        if for_update:
            stmt = stmt.with_for_update()
        result = await db.execute(stmt)
        return result.scalars().first()

    @staticmethod
    async def get_by_payment_intent(db: AsyncSession, payment_intent_id: str) -> Optional[Order]:
        result = await db.execute(
            select(Order)
            .where(Order.payment_intent_id == payment_intent_id)
            .with_for_update()
        )
        return result.scalars().first()

    @staticmethod
    async def list_orders(db: AsyncSession, user_id: Optional[int] = None, skip: int = 0, limit: int = 100):
        stmt = select(Order).order_by(Order.created_at.desc()).offset(skip).limit(limit)
        if user_id is not None:
            stmt = stmt.where(Order.user_id == user_id)
        result = await db.execute(stmt)
        return result.scalars().all()
