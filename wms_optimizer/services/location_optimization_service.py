"""
Location Optimization Service

Single entry point for the placement side of the optimizer: location
suggestions, putaway, ABC analysis, slotting and replenishment. The
collaborators share one session and one OptimizerConfig.
"""
import logging
from datetime import date
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from wms_optimizer.config import OptimizerConfig
from wms_optimizer.schemas.location_optimization import (
    ABCAnalysisResult,
    LocationSuggestion,
    PlacementOptions,
    PutawayResult,
    ReplenishmentOptions,
    ReplenishmentResult,
    ReplenishmentTask,
    SlottingOptions,
    SlottingRecommendation,
    StockItem,
)
from wms_optimizer.services.abc_analysis_service import (
    ABCClassifier,
    ConsumptionValueProvider,
    MovementConsumptionProvider,
)
from wms_optimizer.services.distance_service import DistanceProvider
from wms_optimizer.services.location_finder import LocationFinderService
from wms_optimizer.services.replenishment_service import ReplenishmentService
from wms_optimizer.services.slotting_service import SlottingService

logger = logging.getLogger(__name__)


class LocationOptimizationService:
    """Facade over finder, classifier, slotting and replenishment."""

    def __init__(
        self,
        db: AsyncSession,
        config: Optional[OptimizerConfig] = None,
        consumption_provider: Optional[ConsumptionValueProvider] = None,
        distance_provider: Optional[DistanceProvider] = None,
    ):
        self.db = db
        self.config = config or OptimizerConfig()
        self.finder = LocationFinderService(db, self.config, distance_provider)
        self.classifier = ABCClassifier(
            consumption_provider or MovementConsumptionProvider(db), self.config
        )
        self.slotting = SlottingService(db, self.config, self.classifier, self.finder)
        self.replenishment = ReplenishmentService(db, self.config, self.classifier)

    async def find_optimal_location(
        self, warehouse_id: UUID, item: StockItem, options: Optional[PlacementOptions] = None
    ) -> List[LocationSuggestion]:
        return await self.finder.find_optimal_location(warehouse_id, item, options)

    async def putaway_item(self, warehouse_id: UUID, location_id: UUID, item: StockItem) -> PutawayResult:
        return await self.finder.putaway_item(warehouse_id, location_id, item)

    async def perform_abc_analysis(
        self, warehouse_id: UUID, period_start: date, period_end: date
    ) -> List[ABCAnalysisResult]:
        return await self.classifier.perform_abc_analysis(warehouse_id, period_start, period_end)

    async def generate_slotting_recommendations(
        self, warehouse_id: UUID, options: Optional[SlottingOptions] = None
    ) -> List[SlottingRecommendation]:
        return await self.slotting.generate_slotting_recommendations(warehouse_id, options)

    async def generate_replenishment_tasks(
        self, warehouse_id: UUID, options: Optional[ReplenishmentOptions] = None
    ) -> List[ReplenishmentTask]:
        return await self.replenishment.generate_replenishment_tasks(warehouse_id, options)

    async def execute_replenishment(self, warehouse_id: UUID, task: ReplenishmentTask) -> ReplenishmentResult:
        return await self.replenishment.execute_replenishment(warehouse_id, task)
