"""
Travel distance models for storage locations.

Two providers share one interface so the scorer and the route sequencer do
not care which geometry is in use:

- ZoneAisleDistanceProvider: proximity derived from zone letter and aisle
  number, with a synthetic planar grid for routing.
- CoordinateDistanceProvider: stored coordinates measured from the receiving
  dock, falling back to the zone/aisle model for unsurveyed locations.
"""
import math
import re
from abc import ABC, abstractmethod
from typing import Any, Optional, Tuple

from wms_optimizer.config import OptimizerConfig

_LEADING_INT = re.compile(r"^\s*(\d+)")

ZONE_BASE_DISTANCE = {"A": 10.0, "B": 30.0}
DEFAULT_ZONE_BASE_DISTANCE = 50.0
AISLE_DISTANCE = 5.0

# Synthetic grid spacing (meters)
ZONE_SPACING = 20.0
SLOT_SPACING = 5.0
AISLE_SPACING = 10.0


def parse_number(label: Optional[str], default: int = 0) -> int:
    """Leading integer of a label ('01' -> 1, '12B' -> 12)."""
    if not label:
        return default
    match = _LEADING_INT.match(str(label))
    return int(match.group(1)) if match else default


def zone_index(zone: Optional[str]) -> int:
    """Column of a zone on the synthetic grid; named zones go after Z."""
    if zone and len(zone) == 1 and zone.isalpha():
        return ord(zone.upper()) - ord("A")
    return 26


def euclidean(a: Tuple[float, float], b: Tuple[float, float]) -> float:
    return math.hypot(a[0] - b[0], a[1] - b[1])


class DistanceProvider(ABC):
    """Distance capability used by scoring and route sequencing."""

    def __init__(self, origin: Tuple[float, float] = (0.0, 0.0)):
        self.origin = origin

    @abstractmethod
    def distance_from_receiving(self, location: Any) -> float:
        """Scalar proximity of a location to the receiving dock (lower is closer)."""

    @abstractmethod
    def coordinates(self, location: Any) -> Tuple[float, float]:
        """Planar (x, y) position of a location."""

    def travel_distance(self, a: Tuple[float, float], b: Tuple[float, float]) -> float:
        return euclidean(a, b)


class ZoneAisleDistanceProvider(DistanceProvider):
    """Zone base distance (A=10, B=30, other=50) plus 5 m per aisle."""

    def distance_from_receiving(self, location: Any) -> float:
        zone = (location.zone or "").upper()
        base = ZONE_BASE_DISTANCE.get(zone, DEFAULT_ZONE_BASE_DISTANCE)
        return base + parse_number(location.aisle) * AISLE_DISTANCE

    def coordinates(self, location: Any) -> Tuple[float, float]:
        # Code layout is ZONE-AISLE-SLOT, e.g. A-01-02
        segments = (location.code or "").split("-")
        aisle = parse_number(location.aisle) or (
            parse_number(segments[1]) if len(segments) > 1 else 0
        )
        slot = parse_number(getattr(location, "bin", None)) or (
            parse_number(segments[-1]) if len(segments) > 2 else 0
        )
        x = zone_index(location.zone) * ZONE_SPACING + max(slot - 1, 0) * SLOT_SPACING
        y = max(aisle - 1, 0) * AISLE_SPACING
        return (x, y)


class CoordinateDistanceProvider(ZoneAisleDistanceProvider):
    """Surveyed coordinates relative to the dock origin."""

    def _stored(self, location: Any) -> Optional[Tuple[float, float]]:
        x = getattr(location, "coord_x", None)
        y = getattr(location, "coord_y", None)
        if x is None or y is None:
            return None
        return (float(x), float(y))

    def distance_from_receiving(self, location: Any) -> float:
        stored = self._stored(location)
        if stored is None:
            return super().distance_from_receiving(location)
        return euclidean(self.origin, stored)

    def coordinates(self, location: Any) -> Tuple[float, float]:
        stored = self._stored(location)
        if stored is None:
            return super().coordinates(location)
        return stored


def get_distance_provider(
    config: OptimizerConfig,
    origin: Tuple[float, float] = (0.0, 0.0),
) -> DistanceProvider:
    if config.distance_model == "coordinates":
        return CoordinateDistanceProvider(origin)
    return ZoneAisleDistanceProvider(origin)
