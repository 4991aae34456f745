import os

# Must be set before any application module reads its configuration
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ["TRACING_ENABLED"] = "false"
os.environ["INTERNAL_API_KEY"] = "test-internal-key"

from datetime import date
from decimal import Decimal

import httpx
import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker

from shared.config.database import Base, build_engine, get_db
from shared.vector_store.client import get_index_gateway
from services.product_service.models import Product
from services.order_service import models as order_models  # noqa: F401
from tests.fakes import FakeIndexGateway

API_KEY_HEADERS = {"X-Internal-API-Key": "test-internal-key"}


@pytest.fixture
async def engine(tmp_path):
    # File-backed so that concurrent sessions see the same database
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'ecom.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
def gateway():
    return FakeIndexGateway()


@pytest.fixture
def make_product(session_factory):
    async def _make(**overrides) -> Product:
        fields = {
            "name": "Desk Lamp",
            "description": "Adjustable LED desk lamp",
            "brand": "Lumio",
            "category": "Home",
            "price": Decimal("100.00"),
            "stock_quantity": 10,
            "product_available": True,
            "release_date": date(2024, 3, 1),
        }
        fields.update(overrides)
        async with session_factory() as db:
            async with db.begin():
                product = Product(**fields)
                db.add(product)
        return product

    return _make


@pytest.fixture
def stock_of(session_factory):
    async def _stock(product_id: int) -> int:
        async with session_factory() as db:
            product = await db.get(Product, product_id)
            return product.stock_quantity

    return _stock


@pytest.fixture
async def client(session_factory, gateway):
    from main import app

    async def _get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_index_gateway] = lambda: gateway
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()
