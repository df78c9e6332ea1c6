"""
Slotting Recommender

Compares where each SKU sits against the zone implied by its ABC class and
proposes relocations that cut travel distance by at least the configured
threshold. Replacement locations come from the Location Finder constrained
to the recommended zone.
"""
import logging
from collections import defaultdict
from datetime import date, timedelta
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from wms_optimizer.config import OptimizerConfig
from wms_optimizer.core.exceptions import InsufficientCapacityError
from wms_optimizer.schemas.location_optimization import (
    ABCClass,
    EstimatedImpact,
    LocationSnapshot,
    PlacementOptions,
    SlottingOptions,
    SlottingRecommendation,
    StockItem,
)
from wms_optimizer.services.abc_analysis_service import ABCClassifier, MovementConsumptionProvider
from wms_optimizer.services.location_finder import LocationFinderService
from wms_optimizer.services.wms_storage import WarehouseStorage

logger = logging.getLogger(__name__)


class SlottingService:
    """Generates relocation recommendations for misplaced SKUs."""

    def __init__(
        self,
        db: AsyncSession,
        config: Optional[OptimizerConfig] = None,
        classifier: Optional[ABCClassifier] = None,
        finder: Optional[LocationFinderService] = None,
    ):
        self.db = db
        self.config = config or OptimizerConfig()
        self.storage = WarehouseStorage(db)
        self.classifier = classifier or ABCClassifier(MovementConsumptionProvider(db), self.config)
        self.finder = finder or LocationFinderService(db, self.config)

    def _period(self, options: SlottingOptions) -> tuple[date, date]:
        period_end = options.period_end or date.today()
        period_start = options.period_start or period_end - timedelta(days=self.config.slotting_lookback_days)
        return period_start, period_end

    async def generate_slotting_recommendations(
        self,
        warehouse_id: UUID,
        options: Optional[SlottingOptions] = None,
    ) -> List[SlottingRecommendation]:
        logger.info(f"Generating slotting recommendations for warehouse: {warehouse_id}")
        options = options or SlottingOptions()
        min_impact = (
            options.min_impact_threshold
            if options.min_impact_threshold is not None
            else self.config.slotting_min_impact_threshold
        )
        max_recommendations = options.max_recommendations or self.config.slotting_max_recommendations

        warehouse = await self.storage.get_warehouse(warehouse_id)
        distances = self.finder.distance_provider_for(warehouse)
        period_start, period_end = self._period(options)

        abc_results = await self.classifier.perform_abc_analysis(warehouse_id, period_start, period_end)

        # Current placement of every SKU with stock
        locations_by_sku: Dict[str, Dict[UUID, LocationSnapshot]] = defaultdict(dict)
        on_hand_by_sku: Dict[str, int] = defaultdict(int)
        for record, location in await self.storage.list_inventory_rows(warehouse_id):
            locations_by_sku[record.sku][location.id] = LocationSnapshot.model_validate(location)
            on_hand_by_sku[record.sku] += record.quantity_on_hand

        recommendations = []
        for result in abc_results:
            current_locations = list(locations_by_sku.get(result.sku, {}).values())
            if not current_locations:
                continue

            if all(loc.zone.upper() == result.recommended_zone for loc in current_locations):
                continue

            item = StockItem(
                sku=result.sku,
                product_id=result.product_id,
                product_name=result.product_name,
                quantity=on_hand_by_sku[result.sku],
                fast_moving=result.classification == ABCClass.A,
                abc_classification=result.classification,
            )
            try:
                suggestions = await self.finder.find_optimal_location(
                    warehouse_id,
                    item,
                    PlacementOptions(preferred_zone=result.recommended_zone, consider_abc=True),
                )
            except InsufficientCapacityError:
                logger.debug(f"No room in zone {result.recommended_zone} for {result.sku}; skipping")
                continue

            current_distance = max(distances.distance_from_receiving(loc) for loc in current_locations)
            if current_distance <= 0:
                logger.debug(f"{result.sku} already at the dock; no distance to save")
                continue

            new_distance = suggestions[0].distance
            reduction_pct = (current_distance - new_distance) / current_distance * 100
            if reduction_pct < min_impact:
                continue

            recommendations.append(
                SlottingRecommendation(
                    sku=result.sku,
                    product_name=result.product_name,
                    classification=result.classification,
                    current_locations=current_locations,
                    recommended_locations=suggestions[: self.config.slotting_recommended_locations],
                    reasoning=(
                        f"{result.classification.value}-class item currently in "
                        f"{current_locations[0].zone} zone, should be in {result.recommended_zone} zone"
                    ),
                    distance_reduction_percent=round(reduction_pct, 2),
                    priority_score=round(result.pick_frequency * reduction_pct, 2),
                    estimated_impact=EstimatedImpact(
                        picking_time_reduction=round(reduction_pct * self.config.picking_time_factor, 2),
                        travel_distance_reduction=round(current_distance - new_distance, 2),
                        labor_cost_saving=round(
                            reduction_pct / 100 * result.pick_frequency * self.config.cost_per_pick, 2
                        ),
                    ),
                )
            )

        recommendations.sort(key=lambda r: r.priority_score, reverse=True)
        logger.info(f"Generated {len(recommendations)} slotting recommendations")
        return recommendations[:max_recommendations]
