"""
Location scoring engine.

Scores a candidate storage location for a placement request as a weighted
sum of four components, each on a 0-100 scale:

    distance        proximity to receiving (closer is better)
    capacity fit    deviation of post-placement utilization from target
    compatibility   picking-face / velocity fit, dedicated and empty slots
    FEFO            penalty when the location holds later-expiring stock

A flat bonus is added when the item's ABC class matches the zone letter and
the result is clamped to [0, 100]. Scoring is a pure function of its inputs;
occupant stock is fetched by the caller.
"""
from typing import Optional, Sequence

from wms_optimizer.config import OptimizerConfig
from wms_optimizer.core.exceptions import DegenerateInputError
from wms_optimizer.schemas.location_optimization import (
    LocationSnapshot,
    OccupantStock,
    PlacementOptions,
    ScoreBreakdown,
    StockItem,
)
from wms_optimizer.services.distance_service import DistanceProvider, ZoneAisleDistanceProvider

HAZMAT_CONFLICT = "Hazmat items cannot be mixed with non-hazmat items"
PREMIUM_ZONE = "A"


class LocationScorer:
    """Pure scoring of (location, item, options) triples."""

    def __init__(
        self,
        config: Optional[OptimizerConfig] = None,
        distance_provider: Optional[DistanceProvider] = None,
    ):
        self.config = config or OptimizerConfig()
        self.distance_provider = distance_provider or ZoneAisleDistanceProvider()

    def score(
        self,
        location: LocationSnapshot,
        item: StockItem,
        options: Optional[PlacementOptions] = None,
        occupants: Sequence[OccupantStock] = (),
    ) -> ScoreBreakdown:
        options = options or PlacementOptions()
        cfg = self.config

        if location.capacity <= 0:
            raise DegenerateInputError(
                f"Location {location.code} has no capacity to score against",
                details={"location_id": str(location.id)},
            )

        # 1. Distance
        max_distance = options.max_distance or cfg.default_max_distance
        distance = self.distance_provider.distance_from_receiving(location)
        distance_score = max(0.0, 1 - distance / max_distance) * 100

        # 2. Capacity fit
        utilization_after = (location.current_quantity + item.quantity) / location.capacity
        capacity_score = max(0.0, 1 - abs(utilization_after - cfg.target_utilization)) * 100

        # 3. Slot compatibility (floored, not capped)
        compatibility_score = 100.0
        if item.fast_moving and not location.is_picking_face:
            compatibility_score -= cfg.fast_mover_off_face_penalty
        if not item.fast_moving and location.is_picking_face:
            compatibility_score -= cfg.slow_mover_on_face_penalty
        if location.reserved_for_sku and location.reserved_for_sku == item.sku:
            compatibility_score += cfg.reserved_sku_bonus
        if location.current_quantity == 0:
            compatibility_score += cfg.empty_location_bonus
        compatibility_score = max(0.0, compatibility_score)

        # 4. FEFO: an earlier-expiring lot must not go behind later-expiring stock
        fefo_score = 100.0
        if item.expiry_date and any(
            occ.expiry_date and occ.expiry_date > item.expiry_date for occ in occupants
        ):
            fefo_score -= cfg.fefo_violation_penalty

        total = (
            distance_score * cfg.distance_weight
            + capacity_score * cfg.capacity_weight
            + compatibility_score * cfg.compatibility_weight
            + fefo_score * cfg.fefo_weight
        )

        abc_bonus = 0.0
        if (
            options.consider_abc
            and item.abc_classification
            and (location.zone or "").upper() == item.abc_classification.value
        ):
            abc_bonus = cfg.abc_zone_bonus
            total += abc_bonus

        total = min(100.0, max(0.0, total))

        return ScoreBreakdown(
            score=total,
            reasons=self.explain(location, item, total, utilization_after),
            conflicts=self.check_conflicts(location, item, occupants),
            distance=distance,
            utilization_after=utilization_after,
            distance_score=distance_score,
            capacity_score=capacity_score,
            compatibility_score=compatibility_score,
            fefo_score=fefo_score,
            abc_bonus=abc_bonus,
        )

    def explain(
        self,
        location: LocationSnapshot,
        item: StockItem,
        score: float,
        utilization_after: float,
    ) -> list[str]:
        """Human-readable reasons, in a fixed order."""
        reasons = []

        if score >= 90:
            reasons.append("Excellent match for this item")
        elif score >= 75:
            reasons.append("Good match for this item")
        elif score >= 60:
            reasons.append("Acceptable match")
        else:
            reasons.append("Suboptimal location")

        if location.is_picking_face and item.fast_moving:
            reasons.append("Picking face location for fast-moving item")
        if location.current_quantity == 0:
            reasons.append("Empty location - clean slate")
        if location.reserved_for_sku and location.reserved_for_sku == item.sku:
            reasons.append("Reserved for this SKU")
        if 0.80 <= utilization_after <= 0.95:
            reasons.append("Optimal capacity utilization")
        if (location.zone or "").upper() == PREMIUM_ZONE:
            reasons.append("Premium zone - close to shipping")

        return reasons

    def check_conflicts(
        self,
        location: LocationSnapshot,
        item: StockItem,
        occupants: Sequence[OccupantStock] = (),
    ) -> list[str]:
        """Advisory conflicts; they do not change the score."""
        conflicts = []

        if occupants:
            if item.hazmat and not all(occ.hazmat for occ in occupants):
                conflicts.append(HAZMAT_CONFLICT)
            elif not item.hazmat and any(occ.hazmat for occ in occupants):
                conflicts.append(HAZMAT_CONFLICT)

        if item.temperature_requirement and location.temperature_zone != item.temperature_requirement:
            conflicts.append(
                f"Temperature mismatch: requires {item.temperature_requirement}, "
                f"location is {location.temperature_zone}"
            )

        return conflicts
