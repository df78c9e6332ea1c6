"""
Route Sequencer

Orders the stops of a picking order so a picker sweeps one zone at a time:
zones in the order they first appear, locations by code inside a zone.
Travel is measured stop to stop from the dock origin.
"""
import logging
import math
from typing import Any, Dict, List, Optional
from uuid import UUID

from wms_optimizer.config import OptimizerConfig
from wms_optimizer.core.exceptions import NotFoundError
from wms_optimizer.schemas.picking import PickingItem, PickingRouteResult, RouteStop
from wms_optimizer.services.distance_service import DistanceProvider, ZoneAisleDistanceProvider

logger = logging.getLogger(__name__)


class RouteSequencer:

    def __init__(
        self,
        config: Optional[OptimizerConfig] = None,
        distance_provider: Optional[DistanceProvider] = None,
    ):
        self.config = config or OptimizerConfig()
        self.distances = distance_provider or ZoneAisleDistanceProvider()

    @staticmethod
    def sequence_stops(stops: List[dict]) -> List[dict]:
        """Group by zone (first-appearance order), then sort each group by location code."""
        zone_groups: Dict[str, List[dict]] = {}
        for stop in stops:
            zone_groups.setdefault(stop["zone"], []).append(stop)

        ordered = []
        for zone_stops in zone_groups.values():
            ordered.extend(sorted(zone_stops, key=lambda s: s["location_code"]))
        return ordered

    def build_route(
        self,
        items: List[PickingItem],
        locations: Dict[UUID, Any],
        picking_id: Optional[UUID] = None,
    ) -> PickingRouteResult:
        """
        One stop per allocation. ``locations`` maps location id to anything
        with the attributes the distance provider reads (code, zone, aisle,
        bin, coord_x, coord_y).
        """
        stops = []
        for item in items:
            for allocation in item.allocated_locations:
                location = locations.get(allocation.location_id)
                if location is None:
                    raise NotFoundError("Location", allocation.location_id)
                stops.append(
                    {
                        "product_id": item.product_id,
                        "sku": item.sku,
                        "location_id": allocation.location_id,
                        "location_code": location.code,
                        "zone": location.zone or "Unknown",
                        "lot_number": allocation.lot_number,
                        "quantity": allocation.quantity,
                        "position": self.distances.coordinates(location),
                    }
                )

        route = []
        cumulative = 0.0
        previous = self.distances.origin
        for sequence, stop in enumerate(self.sequence_stops(stops), start=1):
            position = stop.pop("position")
            leg = self.distances.travel_distance(previous, position)
            cumulative += leg
            previous = position
            route.append(
                RouteStop(
                    sequence=sequence,
                    x=position[0],
                    y=position[1],
                    distance=round(leg, 2),
                    cumulative_distance=round(cumulative, 2),
                    **stop,
                )
            )

        n = len(route)
        unoptimized = n * self.config.baseline_meters_per_stop
        savings = unoptimized - cumulative
        zone_sequence = list(dict.fromkeys(stop.zone for stop in route))

        logger.debug(f"Route for {picking_id}: {n} stops, {cumulative:.2f} m, zones {zone_sequence}")

        return PickingRouteResult(
            picking_id=picking_id,
            stops=route,
            zone_sequence=zone_sequence,
            total_distance=round(cumulative, 2),
            estimated_time=math.ceil(
                cumulative * self.config.minutes_per_meter + n * self.config.minutes_per_stop
            ),
            unoptimized_distance=round(unoptimized, 2),
            distance_savings=round(savings, 2),
            time_reduction=round(
                savings * self.config.minutes_per_meter + n * self.config.minutes_saved_per_stop, 2
            ),
        )
