"""
Order placement.

Stock checks, deductions and the order insert run in one relational
transaction: a missing product or short stock on any line rolls back every
deduction made earlier in the same call. Semantic-index maintenance runs
after the commit and is best effort; its failures come back as warnings and
never undo a placed order.
"""
import time
import uuid
from datetime import date
from typing import Dict, List, Sequence, Tuple

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from services.product_service.models import Product
from services.product_service.repository import ProductRepository
from shared.observability import (
    ecomm_order_placement_duration_seconds,
    ecomm_order_placement_total,
    ecomm_stock_units_sold_total,
)
from shared.vector_store import SemanticIndexGateway, sync_order, sync_product
from .exceptions import ConcurrentStockUpdate, InsufficientStock, PersistenceFailure, ProductNotFound
from .models import Order, OrderItem, OrderStatus
from .repository import OrderRepository
from .schemas import OrderItemResponse, OrderRequest, OrderResponse, PlaceOrderResponse

logger = structlog.get_logger(__name__)

ORDER_ID_PREFIX = "ORD"
ORDER_ID_LENGTH = 10
MAX_ORDER_ID_ATTEMPTS = 5


def generate_order_id() -> str:
    return ORDER_ID_PREFIX + uuid.uuid4().hex[:ORDER_ID_LENGTH].upper()


def to_response(order: Order) -> OrderResponse:
    return OrderResponse(
        order_id=order.order_id,
        customer_name=order.customer_name,
        email=order.email,
        status=order.status,
        order_date=order.order_date,
        items=[
            OrderItemResponse(
                product_name=item.product.name,
                quantity=item.quantity,
                total_price=item.total_price,
            )
            for item in order.items
        ],
    )


class OrderService:

    @staticmethod
    async def _unused_order_id(db: AsyncSession) -> str:
        for _ in range(MAX_ORDER_ID_ATTEMPTS):
            order_id = generate_order_id()
            if not await OrderRepository.order_exists(db, order_id):
                return order_id
            logger.warning("order_id_collision", order_id=order_id)
        raise PersistenceFailure()

    @staticmethod
    async def _reserve_stock(
        db: AsyncSession, data: OrderRequest
    ) -> Tuple[List[OrderItem], Dict[int, Product]]:
        items: List[OrderItem] = []
        touched: Dict[int, Product] = {}

        for line in data.items:
            # 1. Lock the product row for the rest of the transaction
            product = await ProductRepository.get_product_for_update(db, line.product_id)
            if not product:
                raise ProductNotFound(line.product_id)

            # 2. Check Stock
            if product.stock_quantity < line.quantity:
                raise InsufficientStock(product.id, product.name, product.stock_quantity, line.quantity)

            # 3. Deduct and flush now; the version column catches lost updates
            product.stock_quantity -= line.quantity
            await ProductRepository.save_product(db, product)
            touched[product.id] = product

            # 4. Snapshot the price as of this moment
            unit_price = product.price
            items.append(OrderItem(
                product=product,
                quantity=line.quantity,
                unit_price=unit_price,
                total_price=unit_price * line.quantity,
            ))

        return items, touched

    @staticmethod
    async def place_order(
        db: AsyncSession, gateway: SemanticIndexGateway, data: OrderRequest
    ) -> PlaceOrderResponse:
        started = time.perf_counter()
        try:
            return await OrderService._place(db, gateway, data)
        finally:
            ecomm_order_placement_duration_seconds.observe(time.perf_counter() - started)

    @staticmethod
    async def _place(
        db: AsyncSession, gateway: SemanticIndexGateway, data: OrderRequest
    ) -> PlaceOrderResponse:
        log = logger.bind(customer=data.customer_name, lines=len(data.items))

        try:
            async with db.begin():
                order_id = await OrderService._unused_order_id(db)
                items, touched = await OrderService._reserve_stock(db, data)
                order = Order(
                    order_id=order_id,
                    customer_name=data.customer_name,
                    email=data.email,
                    order_date=date.today(),
                    status=OrderStatus.PLACED.value,
                    items=items,
                )
                await OrderRepository.save_order(db, order)
        except (ProductNotFound, InsufficientStock) as e:
            ecomm_order_placement_total.labels(status="rejected").inc()
            log.info("order_rejected", reason=str(e))
            raise
        except PersistenceFailure:
            ecomm_order_placement_total.labels(status="failed").inc()
            log.error("order_id_exhausted", attempts=MAX_ORDER_ID_ATTEMPTS)
            raise
        except StaleDataError as e:
            ecomm_order_placement_total.labels(status="conflict").inc()
            log.warning("order_stock_conflict", error=str(e))
            raise ConcurrentStockUpdate() from e
        except SQLAlchemyError as e:
            ecomm_order_placement_total.labels(status="failed").inc()
            log.error("order_persistence_failed", error=str(e))
            raise PersistenceFailure() from e

        ecomm_order_placement_total.labels(status="placed").inc()
        ecomm_stock_units_sold_total.inc(sum(item.quantity for item in order.items))
        log.info("order_placed", order_id=order.order_id, total=str(order.total_amount))

        # Post-commit index maintenance: products first, then the order summary
        warnings: List[str] = []
        for product in touched.values():
            warnings.extend(await sync_product(gateway, product))
        warnings.extend(await sync_order(gateway, order))

        return PlaceOrderResponse(**to_response(order).model_dump(), index_warnings=warnings)

    @staticmethod
    async def list_orders(db: AsyncSession) -> List[OrderResponse]:
        orders: Sequence[Order] = await OrderRepository.get_all_orders(db)
        return [to_response(order) for order in orders]
