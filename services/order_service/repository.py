from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from .models import Order

class OrderRepository:
    @staticmethod
    async def save_order(db: AsyncSession, order: Order) -> Order:
        # Items cascade with the order in the same flush
        db.add(order)
        await db.flush()
        return order

    @staticmethod
    async def order_exists(db: AsyncSession, order_id: str) -> bool:
        result = await db.execute(select(Order.order_id).where(Order.order_id == order_id))
        return result.first() is not None

    @staticmethod
    async def get_all_orders(db: AsyncSession) -> Sequence[Order]:
        result = await db.execute(select(Order).order_by(Order.placed_at, Order.order_id))
        return result.scalars().all()
