"""Order placement against a real SQLite database and a fake semantic index."""

import asyncio
import re
from decimal import Decimal
from types import SimpleNamespace

import pytest
from prometheus_client import REGISTRY

from services.order_service import service as order_service_module
from services.order_service.exceptions import InsufficientStock, PersistenceFailure, ProductNotFound
from services.order_service.models import Order
from services.order_service.schemas import OrderItemRequest, OrderRequest
from services.order_service.service import OrderService, generate_order_id
from services.product_service.schemas import ProductUpdate
from services.product_service.service import ProductService
from shared.vector_store import remove_product, sync_product
from tests.fakes import FakeIndexGateway

PRODUCT_FIELDS = (
    "id", "name", "description", "brand", "category", "price",
    "stock_quantity", "product_available", "release_date", "version",
)


def _request(*lines, customer="Asha Rao", email="asha@example.com") -> OrderRequest:
    return OrderRequest(
        customer_name=customer,
        email=email,
        items=[OrderItemRequest(product_id=pid, quantity=qty) for pid, qty in lines],
    )


async def _order_count(session_factory) -> int:
    async with session_factory() as db:
        return len(await OrderService.list_orders(db))


class TestPlaceOrderHappyPath:

    async def test_single_line_order(self, session_factory, gateway, make_product, stock_of):
        await make_product(id=7, name="Kettle", price=Decimal("100.00"), stock_quantity=10)

        async with session_factory() as db:
            result = await OrderService.place_order(db, gateway, _request((7, 3)))

        assert result.status == "PLACED"
        assert result.customer_name == "Asha Rao"
        assert len(result.items) == 1
        assert result.items[0].product_name == "Kettle"
        assert result.items[0].quantity == 3
        assert result.items[0].total_price == Decimal("300.00")
        assert result.index_warnings == []
        assert await stock_of(7) == 7

    async def test_each_product_decremented_by_its_quantity(self, session_factory, gateway, make_product, stock_of):
        lamp = await make_product(name="Lamp", stock_quantity=5)
        mug = await make_product(name="Mug", price=Decimal("12.50"), stock_quantity=20)

        async with session_factory() as db:
            result = await OrderService.place_order(db, gateway, _request((lamp.id, 2), (mug.id, 4)))

        assert [i.product_name for i in result.items] == ["Lamp", "Mug"]
        assert result.items[1].total_price == Decimal("50.00")
        assert await stock_of(lamp.id) == 3
        assert await stock_of(mug.id) == 16

    async def test_same_product_twice_is_cumulative(self, session_factory, gateway, make_product, stock_of):
        lamp = await make_product(stock_quantity=5)

        async with session_factory() as db:
            await OrderService.place_order(db, gateway, _request((lamp.id, 2), (lamp.id, 3)))

        assert await stock_of(lamp.id) == 0

    async def test_order_id_format(self, session_factory, gateway, make_product):
        lamp = await make_product()

        async with session_factory() as db:
            result = await OrderService.place_order(db, gateway, _request((lamp.id, 1)))

        assert re.fullmatch(r"ORD[0-9A-F]{10}", result.order_id)

    def test_generated_ids_differ(self):
        assert len({generate_order_id() for _ in range(1000)}) == 1000


class TestPlaceOrderRejections:

    async def test_insufficient_stock_leaves_stock_unchanged(self, session_factory, gateway, make_product, stock_of):
        await make_product(id=7, name="Kettle", stock_quantity=2)

        async with session_factory() as db:
            with pytest.raises(InsufficientStock) as exc:
                await OrderService.place_order(db, gateway, _request((7, 5)))

        assert "Kettle" in str(exc.value)
        assert await stock_of(7) == 2
        assert await _order_count(session_factory) == 0

    async def test_later_line_failure_rolls_back_earlier_deductions(self, session_factory, gateway, make_product, stock_of):
        lamp = await make_product(name="Lamp", stock_quantity=5)
        mug = await make_product(name="Mug", stock_quantity=1)

        async with session_factory() as db:
            with pytest.raises(InsufficientStock):
                await OrderService.place_order(db, gateway, _request((lamp.id, 2), (mug.id, 3)))

        assert await stock_of(lamp.id) == 5
        assert await stock_of(mug.id) == 1
        assert await _order_count(session_factory) == 0

    async def test_unknown_product_rejects_whole_order(self, session_factory, gateway, make_product, stock_of):
        lamp = await make_product(stock_quantity=5)

        async with session_factory() as db:
            with pytest.raises(ProductNotFound) as exc:
                await OrderService.place_order(db, gateway, _request((lamp.id, 2), (999, 1)))

        assert exc.value.product_id == 999
        assert await stock_of(lamp.id) == 5
        assert await _order_count(session_factory) == 0

    async def test_rejected_order_never_touches_index(self, session_factory, gateway, make_product):
        lamp = await make_product(stock_quantity=1)

        async with session_factory() as db:
            with pytest.raises(InsufficientStock):
                await OrderService.place_order(db, gateway, _request((lamp.id, 2)))

        assert gateway.calls == []


class TestConcurrentPlacement:

    async def test_burst_never_oversells(self, session_factory, gateway, make_product, stock_of):
        lamp = await make_product(stock_quantity=10)

        async def attempt():
            async with session_factory() as db:
                try:
                    await OrderService.place_order(db, gateway, _request((lamp.id, 3)))
                    return "placed"
                except InsufficientStock:
                    return "rejected"

        results = await asyncio.gather(*(attempt() for _ in range(10)))

        assert results.count("placed") == 3
        assert results.count("rejected") == 7
        assert await stock_of(lamp.id) == 1
        assert await _order_count(session_factory) == 3


class TestIndexMaintenance:

    async def test_product_document_replaced_before_order_document(self, session_factory, gateway, make_product):
        lamp = await make_product(stock_quantity=10)

        async with session_factory() as db:
            result = await OrderService.place_order(db, gateway, _request((lamp.id, 4)))

        product_tag = {"entity": "product", "productId": str(lamp.id)}
        order_tag = {"entity": "order", "orderId": result.order_id}
        assert gateway.calls == [
            ("delete", product_tag),
            ("add", product_tag),
            ("delete", order_tag),
            ("add", order_tag),
        ]

        [product_doc] = gateway.documents_for(entity="product", productId=str(lamp.id))
        assert "Stock: 6" in product_doc.content
        [order_doc] = gateway.documents_for(entity="order", orderId=result.order_id)
        assert "Customer: Asha Rao" in order_doc.content
        assert "- Desk Lamp x 4 = ₹400.00" in order_doc.content

    async def test_repeated_orders_keep_one_document_per_product(self, session_factory, gateway, make_product):
        lamp = await make_product(stock_quantity=10)

        for _ in range(3):
            async with session_factory() as db:
                await OrderService.place_order(db, gateway, _request((lamp.id, 1)))

        [doc] = gateway.documents_for(entity="product", productId=str(lamp.id))
        assert "Stock: 7" in doc.content

    async def test_index_outage_does_not_fail_the_order(self, session_factory, gateway, make_product, stock_of):
        lamp = await make_product(stock_quantity=10)
        gateway.fail_on = {"add"}

        async with session_factory() as db:
            result = await OrderService.place_order(db, gateway, _request((lamp.id, 2)))

        assert result.status == "PLACED"
        assert len(result.index_warnings) == 2
        assert all("index add failed" in w for w in result.index_warnings)
        assert await stock_of(lamp.id) == 8
        assert await _order_count(session_factory) == 1

    async def test_failed_delete_skips_add(self, session_factory, gateway, make_product):
        lamp = await make_product(stock_quantity=10)
        gateway.fail_on = {"delete"}

        async with session_factory() as db:
            result = await OrderService.place_order(db, gateway, _request((lamp.id, 1)))

        assert [c[0] for c in gateway.calls] == ["delete", "delete"]
        assert len(result.index_warnings) == 2


class TestListOrders:

    async def test_lists_all_orders_with_snapshots(self, session_factory, gateway, make_product):
        lamp = await make_product(price=Decimal("100.00"), stock_quantity=10)

        async with session_factory() as db:
            first = await OrderService.place_order(db, gateway, _request((lamp.id, 1)))
        async with session_factory() as db:
            second = await OrderService.place_order(db, gateway, _request((lamp.id, 2), customer="Ben"))

        async with session_factory() as db:
            orders = await OrderService.list_orders(db)

        by_id = {o.order_id: o for o in orders}
        assert set(by_id) == {first.order_id, second.order_id}
        assert by_id[second.order_id].customer_name == "Ben"
        assert by_id[second.order_id].items[0].total_price == Decimal("200.00")

    async def test_price_change_does_not_rewrite_history(self, session_factory, gateway, make_product):
        lamp = await make_product(price=Decimal("100.00"), stock_quantity=10)

        async with session_factory() as db:
            placed = await OrderService.place_order(db, gateway, _request((lamp.id, 3)))

        update = ProductUpdate(
            name=lamp.name,
            price=Decimal("150.00"),
            stock_quantity=7,
        )
        async with session_factory() as db:
            await ProductService.update_product(db, gateway, lamp.id, update)

        async with session_factory() as db:
            [order] = await OrderService.list_orders(db)

        assert order.order_id == placed.order_id
        assert order.items[0].total_price == Decimal("300.00")

        async with session_factory() as db:
            stored = await db.get(Order, placed.order_id)
            assert stored.items[0].unit_price == Decimal("100.00")
            assert stored.total_amount == Decimal("300.00")

    async def test_read_is_idempotent_and_side_effect_free(self, session_factory, gateway, make_product):
        lamp = await make_product(stock_quantity=10)
        async with session_factory() as db:
            await OrderService.place_order(db, gateway, _request((lamp.id, 1)))
        calls_before = list(gateway.calls)

        async with session_factory() as db:
            first = await OrderService.list_orders(db)
        async with session_factory() as db:
            second = await OrderService.list_orders(db)

        assert first == second
        assert gateway.calls == calls_before


class SlowIndexGateway(FakeIndexGateway):
    """Index whose writes take long enough for syncs to overlap."""

    async def add_document(self, doc_id, content, metadata):
        await asyncio.sleep(0.05)
        await super().add_document(doc_id, content, metadata)


class TestOverlappingIndexSync:

    async def test_overlapping_orders_leave_one_current_document(self, session_factory, make_product):
        gateway = SlowIndexGateway()
        lamp = await make_product(stock_quantity=10)

        async def place():
            async with session_factory() as db:
                return await OrderService.place_order(db, gateway, _request((lamp.id, 1)))

        await asyncio.gather(place(), place())

        [doc] = gateway.documents_for(entity="product", productId=str(lamp.id))
        assert doc.id == f"product-{lamp.id}"
        assert "Stock: 8" in doc.content

    async def test_older_snapshot_does_not_overwrite_newer(self, gateway, make_product):
        lamp = await make_product(stock_quantity=10)
        newer = SimpleNamespace(**{c: getattr(lamp, c) for c in PRODUCT_FIELDS})
        newer.stock_quantity, newer.version = 8, lamp.version + 2
        older = SimpleNamespace(**{c: getattr(lamp, c) for c in PRODUCT_FIELDS})
        older.stock_quantity, older.version = 9, lamp.version + 1

        assert await sync_product(gateway, newer) == []
        assert await sync_product(gateway, older) == []

        [doc] = gateway.documents_for(entity="product", productId=str(lamp.id))
        assert "Stock: 8" in doc.content

    async def test_deleted_product_is_not_reindexed_by_late_sync(self, gateway, make_product):
        lamp = await make_product(stock_quantity=10)

        await remove_product(gateway, lamp.id)
        await sync_product(gateway, lamp)

        assert gateway.documents_for(entity="product", productId=str(lamp.id)) == []


def _sample(name, labels=None) -> float:
    return REGISTRY.get_sample_value(name, labels or {}) or 0.0


class TestOrderCodes:

    async def test_colliding_code_is_regenerated(self, session_factory, gateway, make_product, monkeypatch):
        lamp = await make_product(stock_quantity=10)
        codes = iter(["ORD00000000A1", "ORD00000000A1", "ORD00000000B2"])
        monkeypatch.setattr(order_service_module, "generate_order_id", lambda: next(codes))

        async with session_factory() as db:
            first = await OrderService.place_order(db, gateway, _request((lamp.id, 1)))
        async with session_factory() as db:
            second = await OrderService.place_order(db, gateway, _request((lamp.id, 1)))

        assert first.order_id == "ORD00000000A1"
        assert second.order_id == "ORD00000000B2"

    async def test_exhausted_codes_fail_without_side_effects(
        self, session_factory, gateway, make_product, stock_of, monkeypatch
    ):
        lamp = await make_product(stock_quantity=10)
        monkeypatch.setattr(order_service_module, "generate_order_id", lambda: "ORD00000000A1")
        async with session_factory() as db:
            await OrderService.place_order(db, gateway, _request((lamp.id, 1)))

        failed_before = _sample("ecomm_order_placement_total", {"status": "failed"})
        timed_before = _sample("ecomm_order_placement_duration_seconds_count")

        async with session_factory() as db:
            with pytest.raises(PersistenceFailure):
                await OrderService.place_order(db, gateway, _request((lamp.id, 2)))

        assert await stock_of(lamp.id) == 9
        assert await _order_count(session_factory) == 1
        assert _sample("ecomm_order_placement_total", {"status": "failed"}) == failed_before + 1
        assert _sample("ecomm_order_placement_duration_seconds_count") == timed_before + 1
