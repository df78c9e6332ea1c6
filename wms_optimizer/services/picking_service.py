"""
Picking Service

Picking order lifecycle on top of the pick allocator and route sequencer:

    pending -> assigned -> in_progress -> completed (-> verified)
       \\_________\\______________\\-> cancelled

Creating an order reserves stock; picking consumes the reservation;
completing or cancelling returns whatever was reserved but not picked.
"""
import logging
import math
import time
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from wms_optimizer.config import OptimizerConfig
from wms_optimizer.core.exceptions import (
    InsufficientStockError,
    InvalidStateTransitionError,
    NotFoundError,
    WMSOptimizationError,
)
from wms_optimizer.models.inventory import StockMovementType
from wms_optimizer.models.picking import PickingOrder, PickingStatus
from wms_optimizer.schemas.picking import (
    PickingItem,
    PickingMetrics,
    PickingOrderCreate,
    PickingRouteResult,
    PickItemRequest,
    VerifyPickingRequest,
    WavePickingBatch,
)
from wms_optimizer.services.distance_service import DistanceProvider
from wms_optimizer.services.pick_allocation_service import PickAllocationService
from wms_optimizer.services.route_sequencer import RouteSequencer
from wms_optimizer.services.wms_storage import WarehouseStorage

logger = logging.getLogger(__name__)

ENTITY = "PickingOrder"

CANCELLABLE_STATUSES = (
    PickingStatus.PENDING.value,
    PickingStatus.ASSIGNED.value,
    PickingStatus.IN_PROGRESS.value,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class PickingService:
    """Picking order operations for one tenant session."""

    def __init__(
        self,
        db: AsyncSession,
        config: Optional[OptimizerConfig] = None,
        distance_provider: Optional[DistanceProvider] = None,
    ):
        self.db = db
        self.config = config or OptimizerConfig()
        self.storage = WarehouseStorage(db)
        self.allocator = PickAllocationService(db, self.config, distance_provider)

    # ==================== Helpers ====================

    async def get_picking_order(self, picking_id: UUID, for_update: bool = False) -> PickingOrder:
        order = await self.db.get(
            PickingOrder, picking_id, populate_existing=True, with_for_update=for_update
        )
        if not order:
            raise NotFoundError(ENTITY, picking_id)
        return order

    @staticmethod
    def _require_status(order: PickingOrder, allowed, target: str) -> None:
        if order.status not in allowed:
            raise InvalidStateTransitionError(ENTITY, order.status, target)

    @staticmethod
    def load_items(order: PickingOrder) -> List[PickingItem]:
        return [PickingItem.model_validate(item) for item in order.items or []]

    @staticmethod
    def _store_items(order: PickingOrder, items: List[PickingItem]) -> None:
        # JSON column: assign a new list so the change is flushed
        order.items = [item.model_dump(mode="json") for item in items]

    @staticmethod
    def _merge_metadata(order: PickingOrder, **values) -> None:
        order.picking_metadata = {**(order.picking_metadata or {}), **values}

    async def generate_picking_number(self) -> str:
        """PICK-YYYYMMDD-NNNN, sequence restarting every day."""
        prefix = f"PICK-{_utcnow():%Y%m%d}-"
        result = await self.db.execute(
            select(func.max(PickingOrder.picking_number)).where(
                PickingOrder.picking_number.like(f"{prefix}%")
            )
        )
        last = result.scalar_one_or_none()
        sequence = int(last.rsplit("-", 1)[1]) + 1 if last else 1
        return f"{prefix}{sequence:04d}"

    async def _release_unpicked(self, order: PickingOrder, items: List[PickingItem]) -> int:
        """Return reserved-but-unpicked units to available stock."""
        released = 0
        for item in items:
            for allocation in item.allocated_locations:
                left = allocation.quantity - allocation.picked_quantity
                if left <= 0:
                    continue
                if await self.storage.update_inventory_quantities(
                    allocation.location_id, item.product_id, allocation.lot_number,
                    available=left, reserved=-left,
                ):
                    released += left
                else:
                    logger.warning(
                        f"{order.picking_number}: reservation of {left} x {item.sku} "
                        f"at {allocation.location_code} no longer held"
                    )
        return released

    # ==================== Lifecycle ====================

    async def create_picking_order(self, data: PickingOrderCreate) -> PickingOrder:
        logger.info(f"Creating picking order for {data.order_reference or 'ad-hoc pick'}")
        await self.storage.get_warehouse(data.warehouse_id)

        products = await self.storage.list_products([line.product_id for line in data.items])
        items = []
        for line in data.items:
            product = products.get(line.product_id)
            if product is None:
                raise NotFoundError("Product", line.product_id)
            items.append(
                PickingItem(
                    product_id=line.product_id,
                    sku=product.sku,
                    product_name=product.name,
                    quantity=line.quantity,
                    preferred_location_id=line.preferred_location_id,
                )
            )

        await self.allocator.check_availability(items, data.warehouse_id)
        allocated = await self.allocator.allocate_inventory_for_picking(
            items, data.warehouse_id, data.picking_strategy
        )

        total_quantity = sum(item.quantity for item in allocated)
        order = PickingOrder(
            picking_number=await self.generate_picking_number(),
            warehouse_id=data.warehouse_id,
            order_reference=data.order_reference,
            status=PickingStatus.PENDING.value,
            priority=data.priority.value,
            picking_strategy=data.picking_strategy.value,
            total_items=len(allocated),
            total_quantity=total_quantity,
            picked_quantity=0,
            notes=data.notes,
            picking_metadata={
                "item_count": len(allocated),
                "total_quantity": total_quantity,
                "allocated_quantity": sum(item.allocated_quantity for item in allocated),
                "short_quantity": sum(item.short_quantity for item in allocated),
            },
        )
        self._store_items(order, allocated)
        self.db.add(order)
        await self.db.flush()

        logger.info(f"Picking order created: {order.picking_number} ({len(allocated)} lines)")
        return order

    async def assign_picker(self, picking_id: UUID, picker_id: str) -> PickingOrder:
        order = await self.get_picking_order(picking_id, for_update=True)
        self._require_status(order, (PickingStatus.PENDING.value,), PickingStatus.ASSIGNED.value)

        order.status = PickingStatus.ASSIGNED.value
        order.assigned_to = picker_id
        order.assigned_at = _utcnow()
        await self.db.flush()

        logger.info(f"Picking {order.picking_number} assigned to {picker_id}")
        return order

    async def start_picking(self, picking_id: UUID) -> PickingOrder:
        order = await self.get_picking_order(picking_id, for_update=True)
        self._require_status(order, (PickingStatus.ASSIGNED.value,), PickingStatus.IN_PROGRESS.value)

        order.status = PickingStatus.IN_PROGRESS.value
        order.started_at = _utcnow()
        await self.db.flush()

        logger.info(f"Picking started: {order.picking_number} by {order.assigned_to}")
        return order

    async def pick_item(self, picking_id: UUID, data: PickItemRequest) -> PickingOrder:
        """
        Confirm ``data.quantity`` units picked from one allocation.

        The reservation and on-hand stock drop together, the location empties
        by the same amount and a PICK movement is recorded at the product's
        unit price (this is what the ABC classifier consumes).
        """
        logger.debug(f"Picking {data.quantity} of {data.product_id} from {data.location_id}")
        order = await self.get_picking_order(picking_id, for_update=True)
        self._require_status(order, (PickingStatus.IN_PROGRESS.value,), "picked")

        items = self.load_items(order)
        lines = [i for i in items if i.product_id == data.product_id]
        if not lines:
            raise NotFoundError("PickingItem", data.product_id)

        # An order may carry several lines of one product; any of them can own the allocation
        candidates = [
            (i, a) for i in lines for a in i.allocated_locations
            if a.location_id == data.location_id
            and (data.lot_number is None or a.lot_number == data.lot_number)
        ]
        if not candidates:
            raise NotFoundError("Allocation", f"{lines[0].sku or data.product_id}@{data.location_id}")
        line, allocation = next(
            ((i, a) for i, a in candidates if a.quantity - a.picked_quantity > 0),
            candidates[0],
        )

        qty = data.quantity
        left = allocation.quantity - allocation.picked_quantity
        if qty > left:
            raise InsufficientStockError(
                data.product_id, left, qty, sku=line.sku,
                message=f"Only {left} units of {line.sku} reserved at {allocation.location_code}",
            )

        if qty > 0:
            picking_number, order_id = order.picking_number, order.id
            if not await self.storage.update_inventory_quantities(
                allocation.location_id, data.product_id, allocation.lot_number,
                on_hand=-qty, reserved=-qty,
            ):
                await self.db.rollback()
                raise InsufficientStockError(
                    data.product_id, left, qty, sku=line.sku,
                    message=f"{picking_number}: reservation at {allocation.location_code} no longer held",
                )
            if not await self.storage.adjust_location_quantity(allocation.location_id, -qty):
                await self.db.rollback()
                raise InsufficientStockError(
                    data.product_id, left, qty, sku=line.sku,
                    message=f"Location {allocation.location_code} holds fewer than {qty} units",
                )

            product = await self.storage.get_product(data.product_id)
            await self.storage.record_movement(
                warehouse_id=order.warehouse_id,
                product_id=data.product_id,
                sku=line.sku or product.sku,
                movement_type=StockMovementType.PICK.value,
                quantity=qty,
                from_location_id=allocation.location_id,
                lot_number=allocation.lot_number,
                unit_price=product.unit_price,
                reference_type="picking",
                reference_id=order_id,
            )

        allocation.picked_quantity += qty
        line.picked_quantity += qty
        if data.short_quantity:
            line.short_quantity += data.short_quantity
            logger.warning(
                f"Short pick reported: {data.short_quantity} units of {line.sku}. "
                f"Reason: {data.short_reason}"
            )

        self._store_items(order, items)
        order.picked_quantity = sum(i.picked_quantity for i in items)
        self._merge_metadata(
            order,
            last_item_picked=_utcnow().isoformat(),
            total_picked_so_far=order.picked_quantity,
        )
        await self.db.flush()
        return order

    async def complete_picking(self, picking_id: UUID, notes: Optional[str] = None) -> PickingOrder:
        order = await self.get_picking_order(picking_id, for_update=True)
        self._require_status(order, (PickingStatus.IN_PROGRESS.value,), PickingStatus.COMPLETED.value)

        items = self.load_items(order)
        total_expected = sum(i.quantity for i in items)
        total_picked = sum(i.picked_quantity for i in items)
        total_short = sum(i.short_quantity for i in items)

        now = _utcnow()
        accuracy = total_picked / total_expected * 100 if total_expected > 0 else 0.0
        pick_time = (now - _as_utc(order.started_at)).total_seconds() / 60 if order.started_at else 0.0
        productivity = total_picked / pick_time if pick_time > 0 else 0.0

        released = await self._release_unpicked(order, items)

        order.status = PickingStatus.COMPLETED.value
        order.completed_at = now
        if notes:
            order.notes = notes
        self._merge_metadata(
            order,
            completion={
                "total_expected": total_expected,
                "total_picked": total_picked,
                "total_short": total_short,
                "released_quantity": released,
                "accuracy_rate": round(accuracy, 2),
                "pick_time": round(pick_time, 2),
                "productivity_rate": round(productivity, 2),
            },
        )
        await self.db.flush()

        logger.info(
            f"Picking completed: {order.picking_number}. Accuracy: {accuracy:.2f}%, "
            f"Time: {pick_time:.2f} min, Productivity: {productivity:.2f} units/min"
        )
        return order

    async def verify_picking(self, picking_id: UUID, data: VerifyPickingRequest) -> PickingOrder:
        order = await self.get_picking_order(picking_id, for_update=True)
        self._require_status(order, (PickingStatus.COMPLETED.value,), "verified")
        if order.verified_at is not None:
            raise InvalidStateTransitionError(ENTITY, "verified", "verified")

        order.verified_at = _utcnow()
        order.verified_by = data.verified_by
        self._merge_metadata(
            order,
            verification={
                "verified": True,
                "notes": data.notes,
                "discrepancies": data.discrepancies,
            },
        )
        await self.db.flush()

        logger.info(f"Picking {order.picking_number} verified by {data.verified_by}")
        return order

    async def cancel_picking(self, picking_id: UUID, reason: Optional[str] = None) -> PickingOrder:
        order = await self.get_picking_order(picking_id, for_update=True)
        self._require_status(order, CANCELLABLE_STATUSES, PickingStatus.CANCELLED.value)

        released = await self._release_unpicked(order, self.load_items(order))
        order.status = PickingStatus.CANCELLED.value
        order.cancelled_at = _utcnow()
        self._merge_metadata(order, cancel_reason=reason, released_quantity=released)
        await self.db.flush()

        logger.info(f"Picking {order.picking_number} cancelled; {released} units released")
        return order

    # ==================== Routing & Waves ====================

    async def optimize_picking_route(self, picking_id: UUID) -> PickingRouteResult:
        order = await self.get_picking_order(picking_id, for_update=True)
        items = self.load_items(order)
        warehouse = await self.storage.get_warehouse(order.warehouse_id)

        location_ids = [a.location_id for item in items for a in item.allocated_locations]
        locations = await self.storage.get_locations(location_ids)
        sequencer = RouteSequencer(self.config, self.allocator.distance_provider_for(warehouse))
        route = sequencer.build_route(items, locations, picking_id=order.id)

        self._merge_metadata(
            order,
            optimized_route=[stop.model_dump(mode="json") for stop in route.stops],
            total_distance=route.total_distance,
            estimated_time=route.estimated_time,
        )
        await self.db.flush()

        logger.info(
            f"Route for {order.picking_number}: {len(route.stops)} stops, "
            f"{route.total_distance} m, ~{route.estimated_time} min"
        )
        return route

    async def batch_picking_orders(self, warehouse_id: UUID, picking_ids: List[UUID]) -> WavePickingBatch:
        logger.info(f"Creating batch for {len(picking_ids)} picking orders")
        await self.storage.get_warehouse(warehouse_id)

        requested = list(dict.fromkeys(picking_ids))
        result = await self.db.execute(
            select(PickingOrder)
            .where(
                and_(
                    PickingOrder.id.in_(requested),
                    PickingOrder.warehouse_id == warehouse_id,
                    PickingOrder.status == PickingStatus.PENDING.value,
                )
            )
            .order_by(PickingOrder.created_at)
            .execution_options(populate_existing=True)
        )
        orders = list(result.scalars().all())
        if len(orders) != len(requested):
            found = {o.id for o in orders}
            raise WMSOptimizationError(
                "Some picking orders are not available for batching",
                error_code="ORDERS_NOT_BATCHABLE",
                details={"unavailable": [str(pid) for pid in requested if pid not in found]},
            )

        wave_id = f"WAVE-{int(time.time() * 1000)}"
        total_items = 0
        total_quantity = 0
        zones: Dict[str, None] = {}
        for order in orders:
            items = self.load_items(order)
            total_items += len(items)
            total_quantity += sum(i.quantity for i in items)
            for item in items:
                for allocation in item.allocated_locations:
                    zones.setdefault(allocation.zone, None)
            self._merge_metadata(order, wave_id=wave_id, batch_picking=True)
        await self.db.flush()

        logger.info(f"Wave picking batch created: {wave_id} with {len(orders)} orders")
        return WavePickingBatch(
            wave_id=wave_id,
            warehouse_id=warehouse_id,
            picking_ids=[o.id for o in orders],
            picking_numbers=[o.picking_number for o in orders],
            total_orders=len(orders),
            total_items=total_items,
            total_quantity=total_quantity,
            zones=list(zones),
            estimated_time=math.ceil(total_items * self.config.wave_minutes_per_line),
        )

    # ==================== Queries ====================

    async def get_picking_orders(
        self,
        warehouse_id: Optional[UUID] = None,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        assigned_to: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[PickingOrder]:
        query = select(PickingOrder)
        if warehouse_id:
            query = query.where(PickingOrder.warehouse_id == warehouse_id)
        if status:
            query = query.where(PickingOrder.status == status)
        if priority:
            query = query.where(PickingOrder.priority == priority)
        if assigned_to:
            query = query.where(PickingOrder.assigned_to == assigned_to)
        if start_date:
            query = query.where(PickingOrder.created_at >= start_date)
        if end_date:
            query = query.where(PickingOrder.created_at <= end_date)

        result = await self.db.execute(
            query.order_by(PickingOrder.created_at.desc(), PickingOrder.picking_number.desc())
            .offset(skip)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def get_picking_metrics(
        self,
        warehouse_id: UUID,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> PickingMetrics:
        end_date = end_date or _utcnow()
        start_date = start_date or end_date - timedelta(days=30)

        result = await self.db.execute(
            select(PickingOrder).where(
                and_(
                    PickingOrder.warehouse_id == warehouse_id,
                    PickingOrder.created_at >= start_date,
                    PickingOrder.created_at <= end_date,
                )
            )
        )
        orders = list(result.scalars().all())
        by_status: Dict[str, int] = {}
        for order in orders:
            by_status[order.status] = by_status.get(order.status, 0) + 1

        completed = [o for o in orders if o.status == PickingStatus.COMPLETED.value]
        pick_times = [
            (_as_utc(o.completed_at) - _as_utc(o.started_at)).total_seconds() / 60
            for o in completed
            if o.started_at and o.completed_at
        ]
        average_pick_time = sum(pick_times) / len(pick_times) if pick_times else 0.0

        total_expected = total_picked = short_lines = 0
        for order in orders:
            for item in self.load_items(order):
                total_expected += item.quantity
                total_picked += item.picked_quantity
                if item.short_quantity > 0:
                    short_lines += 1

        accuracy = total_picked / total_expected * 100 if total_expected > 0 else 0.0
        error_rate = short_lines / len(orders) * 100 if orders else 0.0
        productivity = (
            total_picked / (average_pick_time * len(completed)) if average_pick_time > 0 else 0.0
        )

        return PickingMetrics(
            warehouse_id=warehouse_id,
            period_start=start_date,
            period_end=end_date,
            total_orders=len(orders),
            pending_orders=by_status.get(PickingStatus.PENDING.value, 0)
            + by_status.get(PickingStatus.ASSIGNED.value, 0),
            in_progress_orders=by_status.get(PickingStatus.IN_PROGRESS.value, 0),
            completed_orders=len(completed),
            cancelled_orders=by_status.get(PickingStatus.CANCELLED.value, 0),
            total_quantity_picked=total_picked,
            average_pick_time=round(average_pick_time, 2),
            accuracy_rate=round(accuracy, 2),
            productivity_rate=round(productivity, 2),
            error_rate=round(error_rate, 2),
        )
