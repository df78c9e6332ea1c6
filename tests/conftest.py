"""
Shared pytest fixtures.

Tests run the real models on an in-memory SQLite database (aiosqlite).
Settings are read at import time, so the environment is prepared before
anything from wms_optimizer is imported.
"""
import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["MULTI_TENANT_ENABLED"] = "false"
os.environ["SCHEDULER_ENABLED"] = "false"

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from wms_optimizer import models  # noqa: F401
from wms_optimizer.database import Base, custom_json_dumps
from wms_optimizer.models.inventory import InventoryRecord, StockMovement, StockMovementType
from wms_optimizer.models.product import Product
from wms_optimizer.models.warehouse import Warehouse
from wms_optimizer.models.wms import StorageLocation


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        json_serializer=custom_json_dumps,
    )
    # public.tenants needs PostgreSQL schemas; everything else is plain tables
    tables = [t for t in Base.metadata.sorted_tables if t.schema is None]
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all, tables=tables)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


# ==================== Seed helpers ====================

class Seeder:
    """Creates committed rows so service-level rollbacks never undo the fixture data."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def warehouse(self, code="WH-01", **kwargs) -> Warehouse:
        warehouse = Warehouse(code=code, name=kwargs.pop("name", f"Warehouse {code}"), **kwargs)
        self.db.add(warehouse)
        await self.db.commit()
        return warehouse

    async def location(
        self,
        warehouse: Warehouse,
        code: str,
        capacity: int = 100,
        current_quantity: int = 0,
        **kwargs,
    ) -> StorageLocation:
        segments = code.split("-")
        kwargs.setdefault("zone", segments[0])
        if len(segments) > 1:
            kwargs.setdefault("aisle", segments[1])
        if len(segments) > 2:
            kwargs.setdefault("bin", segments[2])
        location = StorageLocation(
            warehouse_id=warehouse.id,
            code=code,
            capacity=capacity,
            current_quantity=current_quantity,
            **kwargs,
        )
        self.db.add(location)
        await self.db.commit()
        return location

    async def product(self, sku: str, unit_price="10.00", **kwargs) -> Product:
        product = Product(
            sku=sku,
            name=kwargs.pop("name", f"Product {sku}"),
            unit_price=Decimal(str(unit_price)),
            **kwargs,
        )
        self.db.add(product)
        await self.db.commit()
        return product

    async def stock(
        self,
        location: StorageLocation,
        product: Product,
        on_hand: int,
        reserved: int = 0,
        lot_number: str = "",
        expiry_date: date = None,
        received_at: datetime = None,
        status: str = "AVAILABLE",
    ) -> InventoryRecord:
        """Inventory row; the location's occupancy is expected to already include it."""
        record = InventoryRecord(
            warehouse_id=location.warehouse_id,
            location_id=location.id,
            product_id=product.id,
            sku=product.sku,
            lot_number=lot_number,
            expiry_date=expiry_date,
            received_at=received_at or datetime.now(timezone.utc),
            quantity_on_hand=on_hand,
            quantity_reserved=reserved,
            quantity_available=on_hand - reserved,
            status=status,
        )
        self.db.add(record)
        await self.db.commit()
        return record

    async def picks(self, warehouse: Warehouse, product: Product, quantity: int, count: int = 1,
                    days_ago: int = 5) -> None:
        """PICK movements that feed ABC analysis."""
        for _ in range(count):
            self.db.add(
                StockMovement(
                    warehouse_id=warehouse.id,
                    product_id=product.id,
                    sku=product.sku,
                    movement_type=StockMovementType.PICK.value,
                    movement_date=datetime.now(timezone.utc) - timedelta(days=days_ago),
                    quantity=quantity,
                    unit_price=product.unit_price,
                )
            )
        await self.db.commit()


@pytest.fixture
def seed(db):
    return Seeder(db)


@pytest.fixture
async def warehouse(seed):
    return await seed.warehouse()
