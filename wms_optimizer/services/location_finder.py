"""
Location Finder

Ranks storage locations for a placement request in three strict phases:
candidate retrieval and filtering, scoring, then a stable descending sort.
Also executes an accepted placement (putaway) without ever pushing a
location past its capacity.
"""
import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from wms_optimizer.config import OptimizerConfig
from wms_optimizer.core.exceptions import InsufficientCapacityError, NotFoundError
from wms_optimizer.models.inventory import StockMovementType
from wms_optimizer.models.wms import LocationStatus
from wms_optimizer.schemas.location_optimization import (
    LocationSnapshot,
    LocationSuggestion,
    PlacementOptions,
    PutawayResult,
    StockItem,
)
from wms_optimizer.services.distance_service import DistanceProvider, get_distance_provider
from wms_optimizer.services.location_scoring import LocationScorer
from wms_optimizer.services.wms_storage import WarehouseStorage

logger = logging.getLogger(__name__)


class LocationFinderService:
    """Placement suggestions and putaway for one tenant session."""

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

    def resolve_options(self, item: StockItem, options: Optional[PlacementOptions]) -> PlacementOptions:
        """Fill unset options from the item and configuration."""
        options = options or PlacementOptions()
        return options.model_copy(
            update={
                "min_capacity": options.min_capacity if options.min_capacity is not None else item.quantity,
                "max_distance": options.max_distance or self.config.default_max_distance,
                "require_picking_face": (
                    options.require_picking_face
                    if options.require_picking_face is not None
                    else item.fast_moving
                ),
            }
        )

    @staticmethod
    def is_candidate(location: LocationSnapshot, item: StockItem, options: PlacementOptions) -> bool:
        """Hard constraints applied before scoring."""
        if location.status != LocationStatus.AVAILABLE.value:
            return False
        if options.preferred_zone and location.zone != options.preferred_zone:
            return False
        if options.require_picking_face and not location.is_picking_face:
            return False
        if location.available_capacity < options.min_capacity:
            return False
        # The whole placement has to fit, whatever min_capacity says
        if location.current_quantity + item.quantity > location.capacity:
            return False
        if item.temperature_requirement and location.temperature_zone != item.temperature_requirement:
            return False
        if (
            location.reserved_for_sku
            and location.reserved_for_sku != item.sku
            and not options.allow_mixed_sku
        ):
            return False
        if item.weight and location.max_weight is not None:
            if (location.current_weight or 0.0) + item.weight > location.max_weight:
                return False
        return True

    async def find_optimal_location(
        self,
        warehouse_id: UUID,
        item: StockItem,
        options: Optional[PlacementOptions] = None,
    ) -> List[LocationSuggestion]:
        """Top-ranked placement suggestions for ``item``."""
        logger.info(f"Finding optimal location for SKU: {item.sku} in warehouse: {warehouse_id}")

        warehouse = await self.storage.get_warehouse(warehouse_id)
        opts = self.resolve_options(item, options)

        # Phase 1: retrieval + filtering
        locations = await self.storage.list_available_locations(
            warehouse_id,
            zone=opts.preferred_zone,
            picking_face=True if opts.require_picking_face else None,
        )
        candidates = [loc for loc in locations if self.is_candidate(loc, item, opts)]

        if not candidates:
            logger.warning(
                f"No suitable location for SKU {item.sku} (qty {item.quantity}); "
                f"{len(locations)} locations retrieved"
            )
            raise InsufficientCapacityError(
                "No suitable locations available",
                constraints={
                    "warehouse_id": str(warehouse_id),
                    "sku": item.sku,
                    "quantity": item.quantity,
                    "preferred_zone": opts.preferred_zone,
                    "min_capacity": opts.min_capacity,
                    "require_picking_face": opts.require_picking_face,
                    "temperature_requirement": item.temperature_requirement,
                    "allow_mixed_sku": opts.allow_mixed_sku,
                    "locations_considered": len(locations),
                },
            )

        # Phase 2: scoring
        occupants = await self.storage.get_inventory_for_locations([loc.id for loc in candidates])
        scorer = LocationScorer(self.config, self.distance_provider_for(warehouse))

        suggestions = []
        for location in candidates:
            breakdown = scorer.score(location, item, opts, occupants.get(location.id, []))
            logger.debug(
                f"{location.code}: score={breakdown.score:.2f} "
                f"(distance={breakdown.distance_score:.1f}, capacity={breakdown.capacity_score:.1f}, "
                f"compat={breakdown.compatibility_score:.1f}, fefo={breakdown.fefo_score:.1f})"
            )
            suggestions.append(
                LocationSuggestion(
                    location=location,
                    score=round(breakdown.score, 2),
                    reasons=breakdown.reasons,
                    distance=breakdown.distance,
                    utilization_after=round(breakdown.utilization_after * 100, 2),
                    conflicts=breakdown.conflicts,
                )
            )

        # Phase 3: ranking (sorted() is stable, ties keep catalog order)
        suggestions = sorted(suggestions, key=lambda s: s.score, reverse=True)

        logger.info(f"Found {len(suggestions)} location suggestions for {item.sku}")
        return suggestions[: self.config.max_suggestions]

    async def putaway_item(
        self,
        warehouse_id: UUID,
        location_id: UUID,
        item: StockItem,
    ) -> PutawayResult:
        """
        Place ``item`` into a location.

        Occupancy is incremented with a capacity guard, so concurrent
        putaways can never overfill the location.
        """
        await self.storage.get_warehouse(warehouse_id)
        location = await self.storage.get_location(location_id)
        if location.warehouse_id != warehouse_id:
            raise NotFoundError("Location", location_id)

        if location.status != LocationStatus.AVAILABLE.value:
            raise InsufficientCapacityError(
                f"Location {location.code} is {location.status}",
                constraints={"location_id": str(location_id), "status": location.status},
            )

        if item.product_id:
            product = await self.storage.get_product(item.product_id)
        else:
            product = await self.storage.get_product_by_sku(item.sku)

        if not await self.storage.adjust_location_quantity(
            location.id, item.quantity, weight_delta=item.weight or 0.0
        ):
            raise InsufficientCapacityError(
                f"Location {location.code} cannot take {item.quantity} more units",
                constraints={
                    "location_id": str(location_id),
                    "capacity": location.capacity,
                    "current_quantity": location.current_quantity,
                    "requested": item.quantity,
                },
            )

        await self.storage.receive_inventory(
            warehouse_id=warehouse_id,
            location_id=location.id,
            product_id=product.id,
            sku=product.sku,
            quantity=item.quantity,
            lot_number=item.lot_number,
            expiry_date=item.expiry_date,
        )
        await self.storage.record_movement(
            warehouse_id=warehouse_id,
            product_id=product.id,
            sku=product.sku,
            movement_type=StockMovementType.RECEIPT.value,
            quantity=item.quantity,
            to_location_id=location.id,
            lot_number=item.lot_number,
            unit_price=product.unit_price,
            reference_type="putaway",
        )

        location = await self.storage.get_location(location.id)
        logger.info(f"Put away {item.quantity} x {product.sku} into {location.code}")

        return PutawayResult(
            location_id=location.id,
            location_code=location.code,
            sku=product.sku,
            quantity=item.quantity,
            lot_number=item.lot_number or "",
            location_quantity_after=location.current_quantity,
            location_capacity=location.capacity,
        )
