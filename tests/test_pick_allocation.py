"""Pick allocation: availability check, strategies, reservation."""
from datetime import date, datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from wms_optimizer.core.exceptions import InsufficientStockError
from wms_optimizer.models.inventory import InventoryRecord
from wms_optimizer.models.picking import PickingStrategy
from wms_optimizer.schemas.picking import PickingItem
from wms_optimizer.services.pick_allocation_service import PickAllocationService


@pytest.fixture
def allocator(db):
    return PickAllocationService(db)


async def inventory(db):
    result = await db.execute(select(InventoryRecord).execution_options(populate_existing=True))
    return {(r.location_id, r.lot_number): r for r in result.scalars().all()}


class TestAvailability:

    async def test_shortage_fails_before_reserving(self, db, seed, warehouse, allocator):
        """13 on hand with 3 reserved at A, 15 at B: 25 available for a request of 30."""
        product = await seed.product("P1")
        a = await seed.location(warehouse, "A-01-01", current_quantity=13)
        b = await seed.location(warehouse, "B-01-01", current_quantity=15)
        await seed.stock(a, product, 13, reserved=3)
        await seed.stock(b, product, 15)

        items = [PickingItem(product_id=product.id, sku="P1", quantity=30)]
        with pytest.raises(InsufficientStockError) as exc_info:
            await allocator.check_availability(items, warehouse.id)

        error = exc_info.value
        assert (error.product_id, error.available, error.requested) == (product.id, 25, 30)
        assert error.details["sku"] == "P1"
        assert "Available: 25, Requested: 30" in error.message
        rows = await inventory(db)
        assert rows[(a.id, "")].quantity_reserved == 3
        assert rows[(b.id, "")].quantity_reserved == 0

    async def test_lines_of_one_product_are_summed(self, seed, warehouse, allocator):
        product = await seed.product("P1")
        a = await seed.location(warehouse, "A-01-01", current_quantity=10)
        await seed.stock(a, product, 10)

        items = [
            PickingItem(product_id=product.id, sku="P1", quantity=6),
            PickingItem(product_id=product.id, sku="P1", quantity=6),
        ]
        with pytest.raises(InsufficientStockError) as exc_info:
            await allocator.check_availability(items, warehouse.id)
        assert exc_info.value.requested == 12

    async def test_blocked_stock_does_not_count(self, seed, warehouse, allocator):
        product = await seed.product("P1")
        damaged = await seed.location(warehouse, "A-01-01", current_quantity=10, status="damaged")
        held = await seed.location(warehouse, "A-01-02", current_quantity=10)
        await seed.stock(damaged, product, 10)
        await seed.stock(held, product, 10, status="QUARANTINE")

        with pytest.raises(InsufficientStockError) as exc_info:
            await allocator.check_availability(
                [PickingItem(product_id=product.id, sku="P1", quantity=1)], warehouse.id
            )
        assert exc_info.value.available == 0


class TestAllocation:

    async def test_full_allocation_reserves_stock(self, db, seed, warehouse, allocator):
        product = await seed.product("P1")
        a = await seed.location(warehouse, "A-01-01", current_quantity=10)
        b = await seed.location(warehouse, "B-01-01", current_quantity=15)
        await seed.stock(a, product, 10, received_at=datetime.now(timezone.utc) - timedelta(days=2))
        await seed.stock(b, product, 15, received_at=datetime.now(timezone.utc) - timedelta(days=1))

        [item] = await allocator.allocate_inventory_for_picking(
            [PickingItem(product_id=product.id, sku="P1", quantity=20)], warehouse.id
        )

        assert [(loc.location_code, loc.quantity) for loc in item.allocated_locations] == [
            ("A-01-01", 10),
            ("B-01-01", 10),
        ]
        assert sum(loc.quantity for loc in item.allocated_locations) == 20
        assert (item.allocated_quantity, item.short_quantity) == (20, 0)
        assert item.allocated_locations[0].distance == 15.0

        rows = await inventory(db)
        assert (rows[(a.id, "")].quantity_available, rows[(a.id, "")].quantity_reserved) == (0, 10)
        assert (rows[(b.id, "")].quantity_available, rows[(b.id, "")].quantity_reserved) == (5, 10)
        assert rows[(b.id, "")].quantity_on_hand == 15

    async def test_partial_allocation_reports_shortfall(self, db, seed, warehouse, allocator):
        product = await seed.product("P1")
        a = await seed.location(warehouse, "A-01-01", current_quantity=13)
        b = await seed.location(warehouse, "B-01-01", current_quantity=15)
        await seed.stock(a, product, 13, reserved=3)
        await seed.stock(b, product, 15)

        [item] = await allocator.allocate_inventory_for_picking(
            [PickingItem(product_id=product.id, sku="P1", quantity=30)], warehouse.id
        )

        assert (item.allocated_quantity, item.short_quantity) == (25, 5)
        assert sum(loc.quantity for loc in item.allocated_locations) == 25

    async def test_no_row_gives_more_than_available(self, db, seed, warehouse, allocator):
        product = await seed.product("P1")
        locations = []
        for n, qty in enumerate((7, 3, 12, 5), start=1):
            location = await seed.location(warehouse, f"A-01-{n:02d}", current_quantity=qty)
            await seed.stock(location, product, qty)
            locations.append((location.id, qty))
        available = dict(locations)

        items = await allocator.allocate_inventory_for_picking(
            [
                PickingItem(product_id=product.id, sku="P1", quantity=10),
                PickingItem(product_id=product.id, sku="P1", quantity=15),
            ],
            warehouse.id,
            PickingStrategy.BATCH,
        )

        taken = {}
        for item in items:
            for loc in item.allocated_locations:
                assert loc.quantity <= available[loc.location_id]
                taken[loc.location_id] = taken.get(loc.location_id, 0) + loc.quantity
        assert all(taken[location_id] <= qty for location_id, qty in available.items() if location_id in taken)
        assert [i.allocated_quantity for i in items] == [10, 15]
        rows = await inventory(db)
        assert sum(r.quantity_available for r in rows.values()) == 2

    async def test_preferred_location_first(self, seed, warehouse, allocator):
        product = await seed.product("P1")
        a = await seed.location(warehouse, "A-01-01", current_quantity=10)
        c = await seed.location(warehouse, "C-01-01", current_quantity=10)
        await seed.stock(a, product, 10)
        await seed.stock(c, product, 10)

        [item] = await allocator.allocate_inventory_for_picking(
            [PickingItem(product_id=product.id, sku="P1", quantity=5, preferred_location_id=c.id)],
            warehouse.id,
        )

        assert [loc.location_id for loc in item.allocated_locations] == [c.id]


class TestStrategies:

    @pytest.fixture
    async def spread(self, seed, warehouse):
        """Three rows of one product with different age, expiry, size and position."""
        product = await seed.product("P1")
        now = datetime.now(timezone.utc)
        far_face = await seed.location(warehouse, "C-05-01", current_quantity=4, is_picking_face=True)
        near = await seed.location(warehouse, "A-01-01", current_quantity=6)
        big = await seed.location(warehouse, "B-02-01", current_quantity=20)
        await seed.stock(far_face, product, 4, lot_number="L3", expiry_date=date(2026, 3, 1),
                         received_at=now - timedelta(days=1))
        await seed.stock(near, product, 6, lot_number="L2", expiry_date=None,
                         received_at=now - timedelta(days=10))
        await seed.stock(big, product, 20, lot_number="L1", expiry_date=date(2026, 9, 1),
                         received_at=now - timedelta(days=5))
        return product

    @pytest.mark.parametrize(
        "strategy,expected",
        [
            (PickingStrategy.FIFO, ["A-01-01", "B-02-01", "C-05-01"]),
            (PickingStrategy.FEFO, ["C-05-01", "B-02-01", "A-01-01"]),
            (PickingStrategy.ZONE, ["C-05-01", "A-01-01", "B-02-01"]),
            (PickingStrategy.BATCH, ["B-02-01", "A-01-01", "C-05-01"]),
            (PickingStrategy.WAVE, ["A-01-01", "B-02-01", "C-05-01"]),
        ],
    )
    async def test_draw_order(self, warehouse, allocator, spread, strategy, expected):
        [item] = await allocator.allocate_inventory_for_picking(
            [PickingItem(product_id=spread.id, sku="P1", quantity=30)], warehouse.id, strategy
        )
        assert [loc.location_code for loc in item.allocated_locations] == expected
