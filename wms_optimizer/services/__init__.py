# Services module
from wms_optimizer.services.location_optimization_service import LocationOptimizationService
from wms_optimizer.services.picking_service import PickingService

# Components
from wms_optimizer.services.location_scoring import LocationScorer
from wms_optimizer.services.location_finder import LocationFinderService
from wms_optimizer.services.abc_analysis_service import ABCClassifier, MovementConsumptionProvider
from wms_optimizer.services.slotting_service import SlottingService
from wms_optimizer.services.replenishment_service import ReplenishmentService
from wms_optimizer.services.pick_allocation_service import PickAllocationService
from wms_optimizer.services.route_sequencer import RouteSequencer

__all__ = [
    "LocationOptimizationService",
    "PickingService",
    # Components
    "LocationScorer",
    "LocationFinderService",
    "ABCClassifier",
    "MovementConsumptionProvider",
    "SlottingService",
    "ReplenishmentService",
    "PickAllocationService",
    "RouteSequencer",
]
