"""
Pick Allocator

Chooses which (location, lot) rows satisfy each pick line and reserves the
stock. Rows are ordered by the picking strategy, a preferred location is
always tried first, and no row ever gives more than it has available.
"""
import logging
from collections import OrderedDict, defaultdict
from datetime import date
from typing import Dict, List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from wms_optimizer.config import OptimizerConfig
from wms_optimizer.core.exceptions import InsufficientStockError
from wms_optimizer.models.inventory import InventoryRecord
from wms_optimizer.models.picking import PickingStrategy
from wms_optimizer.models.wms import LocationStatus, StorageLocation
from wms_optimizer.schemas.picking import PickingItem, PickingLocation
from wms_optimizer.services.distance_service import DistanceProvider, get_distance_provider
from wms_optimizer.services.wms_storage import WarehouseStorage

logger = logging.getLogger(__name__)

# Stock in these locations cannot be picked
BLOCKED_LOCATION_STATUSES = (LocationStatus.DAMAGED.value, LocationStatus.MAINTENANCE.value)

Row = Tuple[InventoryRecord, StorageLocation]


class PickAllocationService:
    """Strategy-driven allocation and reservation of pickable stock."""

    def __init__(
        self,
        db: AsyncSession,
        config: Optional[OptimizerConfig] = None,
        distance_provider: Optional[DistanceProvider] = None,
    ):
        self.db = db
        self.config = config or OptimizerConfig()
        self.storage = WarehouseStorage(db)
        self._distance_provider = distance_provider

    def distance_provider_for(self, warehouse) -> DistanceProvider:
        if self._distance_provider:
            return self._distance_provider
        return get_distance_provider(self.config, (warehouse.dock_x or 0.0, warehouse.dock_y or 0.0))

    async def _eligible_rows(
        self, warehouse_id: UUID, product_ids: Sequence[UUID]
    ) -> Dict[UUID, List[Row]]:
        rows = await self.storage.list_inventory_rows(
            warehouse_id, product_ids=product_ids, available_only=True
        )
        by_product: Dict[UUID, List[Row]] = defaultdict(list)
        for record, location in rows:
            if location.status in BLOCKED_LOCATION_STATUSES:
                continue
            by_product[record.product_id].append((record, location))
        return by_product

    # ==================== Availability ====================

    async def check_availability(self, items: List[PickingItem], warehouse_id: UUID) -> None:
        """
        Raise InsufficientStockError for the first product whose summed
        request exceeds its pickable stock. Nothing is reserved here.
        """
        requested: Dict[UUID, int] = OrderedDict()
        skus: Dict[UUID, Optional[str]] = {}
        for item in items:
            requested[item.product_id] = requested.get(item.product_id, 0) + item.quantity
            skus.setdefault(item.product_id, item.sku)

        rows = await self._eligible_rows(warehouse_id, list(requested))
        for product_id, quantity in requested.items():
            available = sum(record.quantity_available for record, _ in rows.get(product_id, []))
            if available < quantity:
                logger.warning(
                    f"Insufficient stock for {skus[product_id] or product_id}: "
                    f"available {available}, requested {quantity}"
                )
                raise InsufficientStockError(product_id, available, quantity, sku=skus[product_id])

    # ==================== Ordering ====================

    @staticmethod
    def order_rows(
        rows: List[Row],
        strategy: PickingStrategy,
        distance_provider: DistanceProvider,
        preferred_location_id: Optional[UUID] = None,
    ) -> List[Row]:
        """Rows in the order the strategy draws from them."""
        strategy = PickingStrategy(strategy)

        def strategy_key(row: Row):
            record, location = row
            received = record.received_at
            if strategy == PickingStrategy.FEFO:
                return (
                    record.expiry_date is None,
                    record.expiry_date or date.max,
                    received,
                    location.code,
                )
            if strategy == PickingStrategy.ZONE:
                return (not location.is_picking_face, location.zone, location.code)
            if strategy == PickingStrategy.BATCH:
                # Fewest stops: drain the biggest rows first
                return (-record.quantity_available, location.code)
            if strategy == PickingStrategy.WAVE:
                return (distance_provider.distance_from_receiving(location), location.code)
            return (received, location.code)

        ordered = sorted(rows, key=lambda row: (strategy_key(row), row[0].lot_number))
        if preferred_location_id:
            ordered.sort(key=lambda row: row[1].id != preferred_location_id)
        return ordered

    # ==================== Allocation ====================

    async def allocate_inventory_for_picking(
        self,
        items: List[PickingItem],
        warehouse_id: UUID,
        strategy: PickingStrategy = PickingStrategy.FIFO,
    ) -> List[PickingItem]:
        """
        Fill each line greedily from the strategy-ordered rows and reserve
        what was taken. Lines that cannot be fully covered keep the
        shortfall in ``short_quantity``.

        A reservation that loses a race rolls the session back and raises
        InsufficientStockError, so either every allocation holds or none do.
        """
        warehouse = await self.storage.get_warehouse(warehouse_id)
        distances = self.distance_provider_for(warehouse)
        rows = await self._eligible_rows(warehouse_id, [item.product_id for item in items])

        # Shared across lines so two lines for one product never double-book a row
        remaining: Dict[UUID, int] = {
            record.id: record.quantity_available
            for product_rows in rows.values()
            for record, _ in product_rows
        }

        allocated_items = []
        for item in items:
            needed = item.quantity
            allocations: List[PickingLocation] = []
            ordered = self.order_rows(
                rows.get(item.product_id, []), strategy, distances, item.preferred_location_id
            )
            for record, location in ordered:
                if needed <= 0:
                    break
                take = min(needed, remaining[record.id])
                if take <= 0:
                    continue

                if not await self.storage.update_inventory_quantities(
                    location.id, item.product_id, record.lot_number, available=-take, reserved=take
                ):
                    available = remaining[record.id]
                    await self.db.rollback()
                    raise InsufficientStockError(
                        item.product_id, available, take, sku=item.sku,
                        message=f"Stock of {item.sku or item.product_id} changed during allocation",
                    )

                remaining[record.id] -= take
                needed -= take
                allocations.append(
                    PickingLocation(
                        location_id=location.id,
                        location_code=location.code,
                        zone=location.zone,
                        quantity=take,
                        lot_number=record.lot_number,
                        expiry_date=record.expiry_date,
                        distance=round(distances.distance_from_receiving(location), 2),
                    )
                )

            allocated = item.quantity - needed
            if needed > 0:
                logger.warning(f"Short allocation for {item.sku}: {needed} of {item.quantity} uncovered")
            allocated_items.append(
                item.model_copy(
                    update={
                        "allocated_locations": allocations,
                        "allocated_quantity": allocated,
                        "short_quantity": needed,
                    }
                )
            )

        logger.info(
            f"Allocated {sum(i.allocated_quantity for i in allocated_items)} units "
            f"across {len(allocated_items)} lines ({PickingStrategy(strategy).value})"
        )
        return allocated_items
