"""Picking order lifecycle, routing, waves and metrics."""
import uuid

import pytest
from sqlalchemy import select

from wms_optimizer.core.exceptions import (
    InsufficientStockError,
    InvalidStateTransitionError,
    NotFoundError,
    WMSOptimizationError,
)
from wms_optimizer.models.inventory import InventoryRecord, StockMovement
from wms_optimizer.models.picking import PickingOrder, PickingStatus
from wms_optimizer.models.wms import StorageLocation
from wms_optimizer.schemas.picking import (
    PickingItemCreate,
    PickingOrderCreate,
    PickItemRequest,
    VerifyPickingRequest,
)
from wms_optimizer.services.picking_service import PickingService


@pytest.fixture
def service(db):
    return PickingService(db)


@pytest.fixture
async def stocked(seed, warehouse):
    """P1: 20 units in A-01-01. P2: 10 units in B-01-01."""
    p1 = await seed.product("P1", unit_price="2.50")
    p2 = await seed.product("P2", unit_price="8.00")
    a = await seed.location(warehouse, "A-01-01", current_quantity=20, is_picking_face=True)
    b = await seed.location(warehouse, "B-01-01", current_quantity=10)
    await seed.stock(a, p1, 20)
    await seed.stock(b, p2, 10)
    return {"p1": p1, "p2": p2, "a": a, "b": b}


async def create(service, warehouse, *lines, **kwargs):
    return await service.create_picking_order(
        PickingOrderCreate(
            warehouse_id=warehouse.id,
            items=[PickingItemCreate(product_id=product.id, quantity=qty) for product, qty in lines],
            **kwargs,
        )
    )


async def row(db, location, product):
    result = await db.execute(
        select(InventoryRecord)
        .where(InventoryRecord.location_id == location.id, InventoryRecord.product_id == product.id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def start(service, order, picker="picker-1"):
    await service.assign_picker(order.id, picker)
    return await service.start_picking(order.id)


class TestCreate:

    async def test_create_allocates_and_reserves(self, db, service, warehouse, stocked):
        order = await create(service, warehouse, (stocked["p1"], 8), (stocked["p2"], 4),
                             order_reference="SO-1001")

        assert order.status == PickingStatus.PENDING.value
        assert order.picking_number.startswith("PICK-") and order.picking_number.endswith("-0001")
        assert (order.total_items, order.total_quantity, order.picked_quantity) == (2, 12, 0)
        assert order.picking_metadata == {
            "item_count": 2,
            "total_quantity": 12,
            "allocated_quantity": 12,
            "short_quantity": 0,
        }
        items = service.load_items(order)
        assert items[0].sku == "P1"
        assert items[0].allocated_locations[0].location_code == "A-01-01"

        record = await row(db, stocked["a"], stocked["p1"])
        assert (record.quantity_available, record.quantity_reserved) == (12, 8)

    async def test_numbers_are_sequential(self, service, warehouse, stocked):
        first = await create(service, warehouse, (stocked["p1"], 1))
        second = await create(service, warehouse, (stocked["p1"], 1))
        assert second.picking_number.endswith("-0002")
        assert first.picking_number[:-4] == second.picking_number[:-4]

    async def test_insufficient_stock_creates_nothing(self, db, service, warehouse, stocked):
        with pytest.raises(InsufficientStockError) as exc_info:
            await create(service, warehouse, (stocked["p1"], 21))

        assert (exc_info.value.available, exc_info.value.requested) == (20, 21)
        assert (await db.execute(select(PickingOrder))).first() is None
        record = await row(db, stocked["a"], stocked["p1"])
        assert record.quantity_reserved == 0

    async def test_unknown_product(self, service, warehouse, stocked):
        with pytest.raises(NotFoundError):
            await service.create_picking_order(
                PickingOrderCreate(
                    warehouse_id=warehouse.id,
                    items=[PickingItemCreate(product_id=uuid.uuid4(), quantity=1)],
                )
            )

    async def test_unknown_order(self, service):
        with pytest.raises(NotFoundError):
            await service.get_picking_order(uuid.uuid4())


class TestLifecycle:

    async def test_full_flow(self, db, service, warehouse, stocked):
        order = await create(service, warehouse, (stocked["p1"], 8), (stocked["p2"], 4))
        order = await service.assign_picker(order.id, "picker-7")
        assert (order.status, order.assigned_to) == ("assigned", "picker-7")
        order = await service.start_picking(order.id)
        assert order.status == "in_progress" and order.started_at is not None

        order = await service.pick_item(
            order.id,
            PickItemRequest(product_id=stocked["p1"].id, location_id=stocked["a"].id, quantity=8),
        )
        order = await service.pick_item(
            order.id,
            PickItemRequest(product_id=stocked["p2"].id, location_id=stocked["b"].id, quantity=3,
                            short_quantity=1, short_reason="damaged carton"),
        )
        assert order.picked_quantity == 11
        assert order.picking_metadata["total_picked_so_far"] == 11

        p1_row = await row(db, stocked["a"], stocked["p1"])
        assert (p1_row.quantity_on_hand, p1_row.quantity_reserved, p1_row.quantity_available) == (12, 0, 12)
        location = await db.get(StorageLocation, stocked["a"].id, populate_existing=True)
        assert location.current_quantity == 12

        movements = (await db.execute(select(StockMovement).order_by(StockMovement.sku))).scalars().all()
        assert [(m.movement_type, m.sku, m.quantity) for m in movements] == [("PICK", "P1", 8), ("PICK", "P2", 3)]
        assert float(movements[0].unit_price) == 2.5

        order = await service.complete_picking(order.id, notes="done")
        completion = order.picking_metadata["completion"]
        assert order.status == "completed"
        assert completion["total_expected"] == 12
        assert completion["total_picked"] == 11
        assert completion["total_short"] == 1
        assert completion["released_quantity"] == 1
        assert completion["accuracy_rate"] == pytest.approx(91.67)

        # The unpicked P2 unit goes back to available stock
        p2_row = await row(db, stocked["b"], stocked["p2"])
        assert (p2_row.quantity_on_hand, p2_row.quantity_reserved, p2_row.quantity_available) == (7, 0, 7)

        order = await service.verify_picking(
            order.id, VerifyPickingRequest(verified_by="qa-1", discrepancies=["P2 short 1"])
        )
        assert order.verified_by == "qa-1"
        assert order.picking_metadata["verification"]["discrepancies"] == ["P2 short 1"]

        with pytest.raises(InvalidStateTransitionError):
            await service.verify_picking(order.id, VerifyPickingRequest(verified_by="qa-2"))

    async def test_pick_requires_in_progress(self, service, warehouse, stocked):
        order = await create(service, warehouse, (stocked["p1"], 2))

        with pytest.raises(InvalidStateTransitionError) as exc_info:
            await service.pick_item(
                order.id,
                PickItemRequest(product_id=stocked["p1"].id, location_id=stocked["a"].id, quantity=1),
            )
        assert exc_info.value.current_state == "pending"

    async def test_start_requires_assignment(self, service, warehouse, stocked):
        order = await create(service, warehouse, (stocked["p1"], 2))
        with pytest.raises(InvalidStateTransitionError):
            await service.start_picking(order.id)

    async def test_cannot_pick_more_than_reserved(self, service, warehouse, stocked):
        order = await create(service, warehouse, (stocked["p1"], 2))
        await start(service, order)

        with pytest.raises(InsufficientStockError):
            await service.pick_item(
                order.id,
                PickItemRequest(product_id=stocked["p1"].id, location_id=stocked["a"].id, quantity=3),
            )

    async def test_pick_from_unallocated_location(self, service, warehouse, stocked):
        order = await create(service, warehouse, (stocked["p1"], 2))
        await start(service, order)

        with pytest.raises(NotFoundError):
            await service.pick_item(
                order.id,
                PickItemRequest(product_id=stocked["p1"].id, location_id=stocked["b"].id, quantity=1),
            )

    async def test_second_line_of_same_product_in_other_location(self, db, seed, service, warehouse, stocked):
        c = await seed.location(warehouse, "C-01-01", current_quantity=5)
        await seed.stock(c, stocked["p1"], 5)
        order = await service.create_picking_order(
            PickingOrderCreate(
                warehouse_id=warehouse.id,
                items=[
                    PickingItemCreate(product_id=stocked["p1"].id, quantity=5,
                                      preferred_location_id=stocked["a"].id),
                    PickingItemCreate(product_id=stocked["p1"].id, quantity=5, preferred_location_id=c.id),
                ],
            )
        )
        await start(service, order)

        for location in (stocked["a"], c):
            order = await service.pick_item(
                order.id,
                PickItemRequest(product_id=stocked["p1"].id, location_id=location.id, quantity=5),
            )

        assert [i.picked_quantity for i in service.load_items(order)] == [5, 5]
        assert order.picked_quantity == 10
        c_row = await row(db, c, stocked["p1"])
        assert (c_row.quantity_on_hand, c_row.quantity_reserved) == (0, 0)

    async def test_second_line_of_same_product_in_shared_location(self, service, warehouse, stocked):
        order = await create(service, warehouse, (stocked["p1"], 5), (stocked["p1"], 5))
        await start(service, order)

        for _ in range(2):
            order = await service.pick_item(
                order.id,
                PickItemRequest(product_id=stocked["p1"].id, location_id=stocked["a"].id, quantity=5),
            )

        assert [i.picked_quantity for i in service.load_items(order)] == [5, 5]
        assert order.picked_quantity == 10

    async def test_cancel_releases_reservation(self, db, service, warehouse, stocked):
        order = await create(service, warehouse, (stocked["p1"], 8))

        order = await service.cancel_picking(order.id, reason="order withdrawn")

        assert order.status == "cancelled"
        assert order.picking_metadata["released_quantity"] == 8
        assert order.picking_metadata["cancel_reason"] == "order withdrawn"
        record = await row(db, stocked["a"], stocked["p1"])
        assert (record.quantity_available, record.quantity_reserved) == (20, 0)

    async def test_cancel_after_partial_pick(self, db, service, warehouse, stocked):
        order = await create(service, warehouse, (stocked["p1"], 8))
        await start(service, order)
        await service.pick_item(
            order.id,
            PickItemRequest(product_id=stocked["p1"].id, location_id=stocked["a"].id, quantity=5),
        )

        order = await service.cancel_picking(order.id)

        assert order.picking_metadata["released_quantity"] == 3
        record = await row(db, stocked["a"], stocked["p1"])
        assert (record.quantity_on_hand, record.quantity_available, record.quantity_reserved) == (15, 15, 0)

    async def test_completed_order_cannot_be_cancelled(self, service, warehouse, stocked):
        order = await create(service, warehouse, (stocked["p1"], 1))
        await start(service, order)
        await service.complete_picking(order.id)

        with pytest.raises(InvalidStateTransitionError):
            await service.cancel_picking(order.id)


class TestRoutingAndWaves:

    async def test_optimize_route(self, service, warehouse, stocked):
        order = await create(service, warehouse, (stocked["p1"], 2), (stocked["p2"], 1))

        route = await service.optimize_picking_route(order.id)

        assert [s.location_code for s in route.stops] == ["A-01-01", "B-01-01"]
        assert route.total_distance == 20.0
        # ceil(20 * 0.5 + 2 * 2)
        assert route.estimated_time == 14
        assert route.picking_id == order.id

        order = await service.get_picking_order(order.id)
        assert order.picking_metadata["total_distance"] == 20.0
        assert len(order.picking_metadata["optimized_route"]) == 2

    async def test_batch_pending_orders(self, service, warehouse, stocked):
        first = await create(service, warehouse, (stocked["p1"], 4))
        second = await create(service, warehouse, (stocked["p2"], 2))

        wave = await service.batch_picking_orders(warehouse.id, [first.id, second.id])

        assert wave.wave_id.startswith("WAVE-")
        assert wave.picking_ids == [first.id, second.id]
        assert (wave.total_orders, wave.total_items, wave.total_quantity) == (2, 2, 6)
        assert wave.zones == ["A", "B"]
        assert wave.estimated_time == 5
        order = await service.get_picking_order(first.id)
        assert order.picking_metadata["wave_id"] == wave.wave_id

    async def test_batch_rejects_started_orders(self, service, warehouse, stocked):
        first = await create(service, warehouse, (stocked["p1"], 4))
        second = await create(service, warehouse, (stocked["p2"], 2))
        await service.assign_picker(second.id, "picker-1")

        with pytest.raises(WMSOptimizationError) as exc_info:
            await service.batch_picking_orders(warehouse.id, [first.id, second.id])

        assert exc_info.value.error_code == "ORDERS_NOT_BATCHABLE"
        assert exc_info.value.details["unavailable"] == [str(second.id)]


class TestQueries:

    async def test_filters(self, service, warehouse, stocked):
        first = await create(service, warehouse, (stocked["p1"], 1), priority="high")
        second = await create(service, warehouse, (stocked["p1"], 1))
        await service.assign_picker(second.id, "picker-9")

        assert [o.id for o in await service.get_picking_orders(warehouse_id=warehouse.id, priority="high")] == [first.id]
        assert [o.id for o in await service.get_picking_orders(assigned_to="picker-9")] == [second.id]
        assert [o.id for o in await service.get_picking_orders(status="pending")] == [first.id]
        assert len(await service.get_picking_orders(limit=1)) == 1

    async def test_metrics(self, service, warehouse, stocked):
        done = await create(service, warehouse, (stocked["p1"], 5))
        await start(service, done)
        await service.pick_item(
            done.id,
            PickItemRequest(product_id=stocked["p1"].id, location_id=stocked["a"].id, quantity=4,
                            short_quantity=1),
        )
        await service.complete_picking(done.id)
        cancelled = await create(service, warehouse, (stocked["p1"], 5))
        await service.cancel_picking(cancelled.id)
        await create(service, warehouse, (stocked["p2"], 5))

        metrics = await service.get_picking_metrics(warehouse.id)

        assert metrics.total_orders == 3
        assert (metrics.pending_orders, metrics.completed_orders, metrics.cancelled_orders) == (1, 1, 1)
        assert metrics.total_quantity_picked == 4
        # 4 of 15 units, one short line across three orders
        assert metrics.accuracy_rate == pytest.approx(26.67)
        assert metrics.error_rate == pytest.approx(33.33)

    async def test_metrics_without_orders(self, service, warehouse):
        metrics = await service.get_picking_metrics(warehouse.id)
        assert metrics.total_orders == 0
        assert metrics.accuracy_rate == 0.0
