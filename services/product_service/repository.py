from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from .models import Product

class ProductRepository:
    """Product persistence. Methods flush; the calling service owns the transaction."""

    @staticmethod
    async def get_all_products(db: AsyncSession) -> Sequence[Product]:
        result = await db.execute(select(Product).order_by(Product.id))
        return result.scalars().all()

    @staticmethod
    async def get_product_by_id(db: AsyncSession, product_id: int) -> Optional[Product]:
        result = await db.execute(select(Product).where(Product.id == product_id))
        return result.scalars().first()

    @staticmethod
    async def get_product_for_update(db: AsyncSession, product_id: int) -> Optional[Product]:
        # Row lock on PostgreSQL; SQLite already holds the database write lock (BEGIN IMMEDIATE)
        result = await db.execute(
            select(Product).where(Product.id == product_id).with_for_update()
        )
        return result.scalars().first()

    @staticmethod
    async def get_products_by_ids(db: AsyncSession, product_ids: Sequence[int]) -> Sequence[Product]:
        if not product_ids:
            return []
        result = await db.execute(select(Product).where(Product.id.in_(product_ids)))
        return result.scalars().all()

    @staticmethod
    async def save_product(db: AsyncSession, product: Product) -> Product:
        db.add(product)
        await db.flush()
        return product

    @staticmethod
    async def delete_product(db: AsyncSession, product: Product) -> None:
        await db.delete(product)
        await db.flush()
