"""
Replenishment Planner

Finds picking faces that have dropped below the minimum fill threshold and
plans moves from bulk storage to bring them back up to the maximum
threshold. Planning is read-only; execute_replenishment performs one move
with guarded counter updates.
"""
import logging
import math
from collections import defaultdict
from datetime import date, timedelta
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from wms_optimizer.config import OptimizerConfig
from wms_optimizer.core.exceptions import (
    DegenerateInputError,
    InsufficientCapacityError,
    InsufficientStockError,
    NotFoundError,
)
from wms_optimizer.models.inventory import StockMovementType
from wms_optimizer.models.wms import LocationStatus, StorageLocation
from wms_optimizer.schemas.location_optimization import (
    REPLENISHMENT_PRIORITY_ORDER,
    ABCClass,
    ReplenishmentOptions,
    ReplenishmentPriority,
    ReplenishmentResult,
    ReplenishmentTask,
)
from wms_optimizer.services.abc_analysis_service import ABCClassifier, MovementConsumptionProvider
from wms_optimizer.services.wms_storage import WarehouseStorage

logger = logging.getLogger(__name__)

# Bulk locations that may be drawn from
SOURCE_STATUSES = (LocationStatus.AVAILABLE.value, LocationStatus.OCCUPIED.value)

_ABC_RANK = {ABCClass.A: 0, ABCClass.B: 1, ABCClass.C: 2}


class ReplenishmentService:
    """Bulk-to-pick-face replenishment planning and execution."""

    def __init__(
        self,
        db: AsyncSession,
        config: Optional[OptimizerConfig] = None,
        classifier: Optional[ABCClassifier] = None,
    ):
        self.db = db
        self.config = config or OptimizerConfig()
        self.storage = WarehouseStorage(db)
        self.classifier = classifier or ABCClassifier(MovementConsumptionProvider(db), self.config)

    # ==================== Planning ====================

    def priority_for(self, utilization: float) -> ReplenishmentPriority:
        """Urgency tier from current fill ratio. LOW is never produced here."""
        if utilization < self.config.replenishment_urgent_threshold:
            return ReplenishmentPriority.URGENT
        if utilization < self.config.replenishment_high_threshold:
            return ReplenishmentPriority.HIGH
        return ReplenishmentPriority.NORMAL

    async def _classes(self, warehouse_id: UUID) -> Dict[str, ABCClass]:
        period_end = date.today()
        period_start = period_end - timedelta(days=self.config.slotting_lookback_days)
        results = await self.classifier.perform_abc_analysis(warehouse_id, period_start, period_end)
        return {r.sku: r.classification for r in results}

    async def generate_replenishment_tasks(
        self,
        warehouse_id: UUID,
        options: Optional[ReplenishmentOptions] = None,
    ) -> List[ReplenishmentTask]:
        logger.info(f"Generating replenishment tasks for warehouse: {warehouse_id}")
        options = options or ReplenishmentOptions()
        min_threshold = (
            options.min_threshold
            if options.min_threshold is not None
            else self.config.replenishment_min_threshold
        )
        max_threshold = options.max_threshold or self.config.replenishment_max_threshold
        if min_threshold >= max_threshold:
            raise DegenerateInputError(
                "Replenishment min threshold must be below max threshold",
                details={"min_threshold": min_threshold, "max_threshold": max_threshold},
            )

        await self.storage.get_warehouse(warehouse_id)

        faces = [
            loc for loc in await self.storage.list_available_locations(warehouse_id, picking_face=True)
            if loc.capacity > 0 and loc.utilization < min_threshold
        ]
        if not faces:
            logger.info("No picking faces below threshold")
            return []

        face_skus = await self.storage.list_location_skus([f.id for f in faces])

        # Bulk stock per SKU, best source first: earliest expiry, most stock, code
        sources: Dict[str, list] = defaultdict(list)
        for record, location in await self.storage.list_inventory_rows(warehouse_id, available_only=True):
            if location.is_bulk_storage and location.status in SOURCE_STATUSES:
                sources[record.sku].append([record, location, record.quantity_available])
        for rows in sources.values():
            rows.sort(
                key=lambda r: (
                    r[0].expiry_date is None,
                    r[0].expiry_date or date.max,
                    -r[0].quantity_available,
                    r[1].code,
                )
            )

        tasks = []
        for face in faces:
            slotted = list(face_skus.get(face.id, []))
            if face.reserved_for_sku and face.reserved_for_sku not in {sku for _, sku in slotted}:
                try:
                    product = await self.storage.get_product_by_sku(face.reserved_for_sku)
                    slotted.append((product.id, product.sku))
                except NotFoundError:
                    logger.warning(f"Face {face.code} reserved for unknown SKU {face.reserved_for_sku}")

            utilization = face.utilization
            headroom = face.capacity * max_threshold - face.current_quantity

            for product_id, sku in slotted:
                candidates = [
                    row for row in sources.get(sku, [])
                    if row[1].id != face.id and row[2] > 0
                ]
                if not candidates:
                    logger.debug(f"No bulk stock of {sku} for face {face.code}")
                    continue

                source = candidates[0]
                quantity = min(math.floor(headroom + 1e-9), source[2])
                if quantity <= 0:
                    continue

                source[2] -= quantity
                headroom -= quantity
                record, source_location = source[0], source[1]

                tasks.append(
                    ReplenishmentTask(
                        sku=sku,
                        product_id=product_id,
                        lot_number=record.lot_number,
                        source_location_id=source_location.id,
                        source_location_code=source_location.code,
                        destination_location_id=face.id,
                        destination_location_code=face.code,
                        quantity=quantity,
                        priority=self.priority_for(utilization),
                        reason=f"Picking location below {min_threshold * 100:.0f}% capacity",
                        estimated_time=self.config.replenishment_minutes_per_task,
                        current_utilization=round(utilization * 100, 2),
                    )
                )

        products = await self.storage.list_products([t.product_id for t in tasks])
        for task in tasks:
            if task.product_id in products:
                task.product_name = products[task.product_id].name

        if options.prioritize_a_items and tasks:
            classes = await self._classes(warehouse_id)
            for task in tasks:
                task.abc_classification = classes.get(task.sku)

        def sort_key(task: ReplenishmentTask):
            abc_rank = _ABC_RANK.get(task.abc_classification, 3) if options.prioritize_a_items else 0
            return (
                REPLENISHMENT_PRIORITY_ORDER[task.priority],
                abc_rank,
                task.current_utilization,
                task.destination_location_code,
            )

        tasks.sort(key=sort_key)
        logger.info(f"Generated {len(tasks)} replenishment tasks")
        return tasks

    # ==================== Execution ====================

    async def _location_in(self, warehouse_id: UUID, location_id: UUID) -> StorageLocation:
        location = await self.storage.get_location(location_id)
        if location.warehouse_id != warehouse_id:
            raise NotFoundError("Location", location_id)
        return location

    async def execute_replenishment(
        self,
        warehouse_id: UUID,
        task: ReplenishmentTask,
    ) -> ReplenishmentResult:
        """
        Move ``task.quantity`` units from the bulk source into the picking face.

        Every counter change is a guarded increment; when a guard fails the
        session is rolled back and nothing moves.
        """
        await self.storage.get_warehouse(warehouse_id)
        source = await self._location_in(warehouse_id, task.source_location_id)
        destination = await self._location_in(warehouse_id, task.destination_location_id)
        if destination.status not in SOURCE_STATUSES:
            raise InsufficientCapacityError(
                f"Location {destination.code} is {destination.status}",
                constraints={"location_id": str(destination.id), "status": destination.status},
            )

        row = await self.storage.get_inventory_row(source.id, task.product_id, task.lot_number)
        if row is None:
            raise NotFoundError("Inventory", f"{task.sku}@{source.code}")
        expiry_date, unit_cost = row.expiry_date, row.unit_cost
        available_before = row.quantity_available

        qty = task.quantity
        # Rollback expires ORM state, so keep plain values for error details
        source_code, source_qty = source.code, source.current_quantity
        dest_id, dest_code = destination.id, destination.code
        dest_capacity, dest_qty = destination.capacity, destination.current_quantity
        if not await self.storage.update_inventory_quantities(
            source.id, task.product_id, task.lot_number, on_hand=-qty, available=-qty
        ):
            await self.db.rollback()
            raise InsufficientStockError(task.product_id, available_before, qty)

        if not await self.storage.adjust_location_quantity(source.id, -qty):
            await self.db.rollback()
            raise InsufficientStockError(
                task.product_id, source_qty, qty,
                message=f"Location {source_code} holds fewer than {qty} units",
            )

        if not await self.storage.adjust_location_quantity(destination.id, qty):
            await self.db.rollback()
            raise InsufficientCapacityError(
                f"Location {dest_code} cannot take {qty} more units",
                constraints={
                    "location_id": str(dest_id),
                    "capacity": dest_capacity,
                    "current_quantity": dest_qty,
                    "requested": qty,
                },
            )

        await self.storage.receive_inventory(
            warehouse_id=warehouse_id,
            location_id=destination.id,
            product_id=task.product_id,
            sku=task.sku,
            quantity=qty,
            lot_number=task.lot_number,
            expiry_date=expiry_date,
            unit_cost=unit_cost,
        )
        await self.storage.record_movement(
            warehouse_id=warehouse_id,
            product_id=task.product_id,
            sku=task.sku,
            movement_type=StockMovementType.REPLENISH.value,
            quantity=qty,
            from_location_id=source.id,
            to_location_id=destination.id,
            lot_number=task.lot_number,
            reference_type="replenishment",
        )

        source = await self.storage.get_location(source.id)
        destination = await self.storage.get_location(destination.id)
        logger.info(f"Replenished {qty} x {task.sku}: {source.code} -> {destination.code}")

        return ReplenishmentResult(
            sku=task.sku,
            quantity=qty,
            lot_number=task.lot_number,
            source_location_code=source.code,
            destination_location_code=destination.code,
            source_quantity_after=source.current_quantity,
            destination_quantity_after=destination.current_quantity,
            destination_capacity=destination.capacity,
        )
