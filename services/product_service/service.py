from typing import List, Optional, Sequence, Tuple

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from shared.vector_store import SemanticIndexGateway, remove_product, sync_product
from .exceptions import ImageNotFound, ProductInUse, ProductNotFound
from .models import Product
from .repository import ProductRepository
from .schemas import ProductCreate, ProductUpdate

logger = structlog.get_logger(__name__)

SEARCH_TOP_K = 5
SEARCH_SIMILARITY_THRESHOLD = 0.7


class ProductService:

    @staticmethod
    async def list_products(db: AsyncSession) -> Sequence[Product]:
        return await ProductRepository.get_all_products(db)

    @staticmethod
    async def get_product_by_id(db: AsyncSession, product_id: int) -> Product:
        product = await ProductRepository.get_product_by_id(db, product_id)
        if not product:
            raise ProductNotFound(product_id)
        return product

    @staticmethod
    async def create_product(
        db: AsyncSession, gateway: SemanticIndexGateway, data: ProductCreate
    ) -> Tuple[Product, List[str]]:
        async with db.begin():
            product = Product(**data.model_dump())
            await ProductRepository.save_product(db, product)

        logger.info("product_created", product_id=product.id, stock=product.stock_quantity)
        warnings = await sync_product(gateway, product)
        return product, warnings

    @staticmethod
    async def update_product(
        db: AsyncSession, gateway: SemanticIndexGateway, product_id: int, data: ProductUpdate
    ) -> Tuple[Product, List[str]]:
        async with db.begin():
            product = await ProductRepository.get_product_for_update(db, product_id)
            if not product:
                raise ProductNotFound(product_id)
            for field, value in data.model_dump().items():
                setattr(product, field, value)
            await ProductRepository.save_product(db, product)

        logger.info("product_updated", product_id=product.id, stock=product.stock_quantity)
        warnings = await sync_product(gateway, product)
        return product, warnings

    @staticmethod
    async def delete_product(db: AsyncSession, gateway: SemanticIndexGateway, product_id: int) -> List[str]:
        try:
            async with db.begin():
                product = await ProductRepository.get_product_for_update(db, product_id)
                if not product:
                    raise ProductNotFound(product_id)
                await ProductRepository.delete_product(db, product)
        except IntegrityError as e:
            raise ProductInUse(product_id) from e

        logger.info("product_deleted", product_id=product_id)
        return await remove_product(gateway, product_id)

    @staticmethod
    async def set_image(
        db: AsyncSession, product_id: int, filename: Optional[str], content_type: Optional[str], data: bytes
    ) -> Product:
        # Image bytes are not part of the indexed text, so no re-sync
        async with db.begin():
            product = await ProductRepository.get_product_for_update(db, product_id)
            if not product:
                raise ProductNotFound(product_id)
            product.image_name = filename
            product.image_type = content_type
            product.image_data = data
            await ProductRepository.save_product(db, product)
        return product

    @staticmethod
    async def get_image(db: AsyncSession, product_id: int) -> Tuple[bytes, str]:
        product = await ProductService.get_product_by_id(db, product_id)
        if not product.image_data:
            raise ImageNotFound(product_id)
        return product.image_data, product.image_type or "application/octet-stream"

    @staticmethod
    async def semantic_search(db: AsyncSession, gateway: SemanticIndexGateway, query: str) -> List[Product]:
        """Rank products by similarity of their indexed documents to `query`."""
        documents = await gateway.search(
            query,
            top_k=SEARCH_TOP_K,
            similarity_threshold=SEARCH_SIMILARITY_THRESHOLD,
            metadata={"entity": "product"},
        )

        ranked_ids: List[int] = []
        for doc in documents:
            raw_id = doc.metadata.get("productId")
            if raw_id is None or not raw_id.isdigit():
                continue
            product_id = int(raw_id)
            if product_id not in ranked_ids:
                ranked_ids.append(product_id)

        products = {p.id: p for p in await ProductRepository.get_products_by_ids(db, ranked_ids)}
        # Stale documents may point at deleted products
        return [products[pid] for pid in ranked_ids if pid in products]
