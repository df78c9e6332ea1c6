"""
Warehouse storage access for the optimizer.

All reads the optimizer needs (locations, occupant stock, inventory rows,
products) and the only writes it is allowed to make: guarded increments of
location occupancy and inventory counters. Counters are never written as a
read-modify-write from Python; every change is a single conditional UPDATE
and the caller learns from the row count whether the guard held.
"""
import logging
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy import and_, case, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from wms_optimizer.core.exceptions import NotFoundError
from wms_optimizer.models.inventory import InventoryRecord, InventoryStatus, StockMovement
from wms_optimizer.models.product import Product
from wms_optimizer.models.warehouse import Warehouse
from wms_optimizer.models.wms import LocationStatus, StorageLocation
from wms_optimizer.schemas.location_optimization import (
    InventorySnapshot,
    LocationSnapshot,
    OccupantStock,
)

logger = logging.getLogger(__name__)


class WarehouseStorage:
    """Tenant-scoped storage collaborator (the session carries the schema)."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ==================== Warehouses & Products ====================

    async def get_warehouse(self, warehouse_id: UUID) -> Warehouse:
        warehouse = await self.db.get(Warehouse, warehouse_id)
        if not warehouse:
            raise NotFoundError("Warehouse", warehouse_id)
        return warehouse

    async def list_active_warehouses(self) -> List[Warehouse]:
        result = await self.db.execute(
            select(Warehouse).where(Warehouse.is_active == True).order_by(Warehouse.code)
        )
        return list(result.scalars().all())

    async def list_products(self, product_ids: Sequence[UUID]) -> Dict[UUID, Product]:
        if not product_ids:
            return {}
        result = await self.db.execute(
            select(Product).where(Product.id.in_(set(product_ids)))
        )
        return {p.id: p for p in result.scalars().all()}

    async def get_product(self, product_id: UUID) -> Product:
        product = await self.db.get(Product, product_id)
        if not product:
            raise NotFoundError("Product", product_id)
        return product

    async def get_product_by_sku(self, sku: str) -> Product:
        result = await self.db.execute(select(Product).where(Product.sku == sku))
        product = result.scalar_one_or_none()
        if not product:
            raise NotFoundError("Product", sku)
        return product

    # ==================== Locations ====================

    async def list_available_locations(
        self,
        warehouse_id: UUID,
        zone: Optional[str] = None,
        picking_face: Optional[bool] = None,
    ) -> List[LocationSnapshot]:
        """Locations with status 'available', ordered by code."""
        query = select(StorageLocation).where(
            and_(
                StorageLocation.warehouse_id == warehouse_id,
                StorageLocation.status == LocationStatus.AVAILABLE.value,
            )
        )
        if zone:
            query = query.where(StorageLocation.zone == zone)
        if picking_face is not None:
            query = query.where(StorageLocation.is_picking_face == picking_face)

        result = await self.db.execute(
            query.order_by(StorageLocation.code).execution_options(populate_existing=True)
        )
        return [LocationSnapshot.model_validate(loc) for loc in result.scalars().all()]

    async def get_location(self, location_id: UUID) -> StorageLocation:
        location = await self.db.get(StorageLocation, location_id, populate_existing=True)
        if not location:
            raise NotFoundError("Location", location_id)
        return location

    async def get_locations(self, location_ids: Sequence[UUID]) -> Dict[UUID, StorageLocation]:
        if not location_ids:
            return {}
        result = await self.db.execute(
            select(StorageLocation)
            .where(StorageLocation.id.in_(set(location_ids)))
            .execution_options(populate_existing=True)
        )
        return {loc.id: loc for loc in result.scalars().all()}

    async def adjust_location_quantity(
        self, location_id: UUID, delta: int, weight_delta: float = 0.0
    ) -> bool:
        """
        Atomically add ``delta`` units (and optionally ``weight_delta`` kg) to a
        location's occupancy.

        Returns False (and changes nothing) when the result would leave
        [0, capacity]. Full locations flip to 'occupied' and back.
        """
        values = {"current_quantity": StorageLocation.current_quantity + delta}
        if weight_delta:
            values["current_weight"] = func.coalesce(StorageLocation.current_weight, 0) + weight_delta
        result = await self.db.execute(
            update(StorageLocation)
            .where(
                and_(
                    StorageLocation.id == location_id,
                    StorageLocation.current_quantity + delta >= 0,
                    StorageLocation.current_quantity + delta <= StorageLocation.capacity,
                )
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.debug(f"Occupancy change {delta:+d} rejected for location {location_id}")
            return False

        await self.db.execute(
            update(StorageLocation)
            .where(
                and_(
                    StorageLocation.id == location_id,
                    StorageLocation.status.in_(
                        [LocationStatus.AVAILABLE.value, LocationStatus.OCCUPIED.value]
                    ),
                )
            )
            .values(
                status=case(
                    (
                        StorageLocation.current_quantity >= StorageLocation.capacity,
                        LocationStatus.OCCUPIED.value,
                    ),
                    else_=LocationStatus.AVAILABLE.value,
                )
            )
            .execution_options(synchronize_session=False)
        )
        return True

    # ==================== Inventory ====================

    async def get_location_inventory(self, location_id: UUID) -> List[OccupantStock]:
        occupants = await self.get_inventory_for_locations([location_id])
        return occupants.get(location_id, [])

    async def get_inventory_for_locations(
        self, location_ids: Sequence[UUID]
    ) -> Dict[UUID, List[OccupantStock]]:
        """Current occupants of several locations in one query."""
        if not location_ids:
            return {}
        result = await self.db.execute(
            select(InventoryRecord, Product.is_hazmat)
            .join(Product, Product.id == InventoryRecord.product_id)
            .where(
                and_(
                    InventoryRecord.location_id.in_(set(location_ids)),
                    InventoryRecord.quantity_on_hand > 0,
                )
            )
            .order_by(InventoryRecord.sku, InventoryRecord.lot_number)
            .execution_options(populate_existing=True)
        )
        occupants: Dict[UUID, List[OccupantStock]] = defaultdict(list)
        for record, is_hazmat in result.all():
            occupants[record.location_id].append(
                OccupantStock(
                    sku=record.sku,
                    product_id=record.product_id,
                    quantity=record.quantity_on_hand,
                    lot_number=record.lot_number or None,
                    expiry_date=record.expiry_date,
                    hazmat=bool(is_hazmat),
                )
            )
        return dict(occupants)

    async def list_inventory_rows(
        self,
        warehouse_id: UUID,
        sku: Optional[str] = None,
        product_ids: Optional[Sequence[UUID]] = None,
        available_only: bool = False,
    ) -> List[Tuple[InventoryRecord, StorageLocation]]:
        """Inventory rows with stock on hand, joined with their location."""
        query = (
            select(InventoryRecord, StorageLocation)
            .join(StorageLocation, StorageLocation.id == InventoryRecord.location_id)
            .where(
                and_(
                    InventoryRecord.warehouse_id == warehouse_id,
                    InventoryRecord.quantity_on_hand > 0,
                )
            )
        )
        if sku:
            query = query.where(InventoryRecord.sku == sku)
        if product_ids:
            query = query.where(InventoryRecord.product_id.in_(set(product_ids)))
        if available_only:
            query = query.where(
                and_(
                    InventoryRecord.quantity_available > 0,
                    InventoryRecord.status == InventoryStatus.AVAILABLE.value,
                )
            )

        result = await self.db.execute(
            query.order_by(StorageLocation.code, InventoryRecord.lot_number)
            .execution_options(populate_existing=True)
        )
        return [(record, location) for record, location in result.all()]

    async def get_inventory_row(
        self, location_id: UUID, product_id: UUID, lot_number: Optional[str]
    ) -> Optional[InventoryRecord]:
        result = await self.db.execute(
            select(InventoryRecord)
            .where(
                and_(
                    InventoryRecord.location_id == location_id,
                    InventoryRecord.product_id == product_id,
                    InventoryRecord.lot_number == (lot_number or ""),
                )
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_location_skus(
        self, location_ids: Sequence[UUID]
    ) -> Dict[UUID, List[Tuple[UUID, str]]]:
        """(product_id, sku) pairs slotted in each location, empty rows included."""
        if not location_ids:
            return {}
        result = await self.db.execute(
            select(InventoryRecord.location_id, InventoryRecord.product_id, InventoryRecord.sku)
            .where(InventoryRecord.location_id.in_(set(location_ids)))
            .distinct()
            .order_by(InventoryRecord.location_id, InventoryRecord.sku)
        )
        skus: Dict[UUID, List[Tuple[UUID, str]]] = defaultdict(list)
        for location_id, product_id, sku in result.all():
            skus[location_id].append((product_id, sku))
        return dict(skus)

    async def list_inventory(
        self, warehouse_id: UUID, sku: Optional[str] = None
    ) -> List[InventorySnapshot]:
        rows = await self.list_inventory_rows(warehouse_id, sku=sku)
        return [
            InventorySnapshot(
                id=record.id,
                location_id=location.id,
                location_code=location.code,
                zone=location.zone,
                product_id=record.product_id,
                sku=record.sku,
                lot_number=record.lot_number,
                expiry_date=record.expiry_date,
                quantity_on_hand=record.quantity_on_hand,
                quantity_reserved=record.quantity_reserved,
                quantity_available=record.quantity_available,
                unit_cost=float(record.unit_cost or 0),
            )
            for record, location in rows
        ]

    async def update_inventory_quantities(
        self,
        location_id: UUID,
        product_id: UUID,
        lot_number: Optional[str],
        on_hand: int = 0,
        available: int = 0,
        reserved: int = 0,
    ) -> bool:
        """
        Atomically apply counter deltas to one inventory row.

        The update only happens if no counter would go negative; returns
        whether the row was changed.
        """
        result = await self.db.execute(
            update(InventoryRecord)
            .where(
                and_(
                    InventoryRecord.location_id == location_id,
                    InventoryRecord.product_id == product_id,
                    InventoryRecord.lot_number == (lot_number or ""),
                    InventoryRecord.quantity_on_hand + on_hand >= 0,
                    InventoryRecord.quantity_available + available >= 0,
                    InventoryRecord.quantity_reserved + reserved >= 0,
                )
            )
            .values(
                quantity_on_hand=InventoryRecord.quantity_on_hand + on_hand,
                quantity_available=InventoryRecord.quantity_available + available,
                quantity_reserved=InventoryRecord.quantity_reserved + reserved,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def receive_inventory(
        self,
        warehouse_id: UUID,
        location_id: UUID,
        product_id: UUID,
        sku: str,
        quantity: int,
        lot_number: Optional[str] = None,
        expiry_date: Optional[date] = None,
        unit_cost: Decimal = Decimal("0"),
    ) -> None:
        """Add available stock to a (location, product, lot) row, creating it if needed."""
        if await self.update_inventory_quantities(
            location_id, product_id, lot_number, on_hand=quantity, available=quantity
        ):
            return

        # First lot of this product here; the unique constraint rejects a concurrent duplicate
        self.db.add(
            InventoryRecord(
                warehouse_id=warehouse_id,
                location_id=location_id,
                product_id=product_id,
                sku=sku,
                lot_number=lot_number or "",
                expiry_date=expiry_date,
                quantity_on_hand=quantity,
                quantity_available=quantity,
                quantity_reserved=0,
                unit_cost=unit_cost,
            )
        )
        await self.db.flush()

    # ==================== Movements ====================

    async def record_movement(
        self,
        warehouse_id: UUID,
        product_id: UUID,
        sku: str,
        movement_type: str,
        quantity: int,
        from_location_id: Optional[UUID] = None,
        to_location_id: Optional[UUID] = None,
        lot_number: Optional[str] = None,
        unit_price: Decimal = Decimal("0"),
        reference_type: Optional[str] = None,
        reference_id: Optional[UUID] = None,
        notes: Optional[str] = None,
    ) -> StockMovement:
        movement = StockMovement(
            warehouse_id=warehouse_id,
            product_id=product_id,
            sku=sku,
            movement_type=movement_type,
            quantity=quantity,
            from_location_id=from_location_id,
            to_location_id=to_location_id,
            lot_number=lot_number or "",
            unit_price=unit_price,
            reference_type=reference_type,
            reference_id=reference_id,
            notes=notes,
        )
        self.db.add(movement)
        await self.db.flush()
        return movement
