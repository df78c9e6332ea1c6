"""Pydantic schemas for placement, ABC, slotting and replenishment."""
from pydantic import BaseModel, Field, computed_field, model_validator

from wms_optimizer.schemas.base import BaseResponseSchema, BaseCreateSchema
from typing import Optional, List, Dict
from datetime import date
from enum import Enum
import uuid


class ABCClass(str, Enum):
    A = "A"
    B = "B"
    C = "C"


class ReplenishmentPriority(str, Enum):
    """Task urgency. LOW exists for downstream queues but the planner never assigns it."""
    URGENT = "urgent"
    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"


REPLENISHMENT_PRIORITY_ORDER = {
    ReplenishmentPriority.URGENT: 0,
    ReplenishmentPriority.HIGH: 1,
    ReplenishmentPriority.NORMAL: 2,
    ReplenishmentPriority.LOW: 3,
}


# ==================== LOCATION SNAPSHOTS ====================

class LocationSnapshot(BaseResponseSchema):
    """Read-only view of a storage location at query time."""
    id: uuid.UUID
    code: str
    warehouse_id: uuid.UUID
    location_type: str = "rack"
    zone: str
    aisle: Optional[str] = None
    rack: Optional[str] = None
    shelf: Optional[str] = None
    bin: Optional[str] = None
    coord_x: Optional[float] = None
    coord_y: Optional[float] = None
    capacity: int = Field(..., ge=0)
    current_quantity: int = Field(0, ge=0)
    max_weight: Optional[float] = None
    current_weight: Optional[float] = None
    temperature_zone: Optional[str] = None
    is_picking_face: bool = False
    is_bulk_storage: bool = False
    reserved_for_sku: Optional[str] = None
    status: str = "available"

    @model_validator(mode="after")
    def check_occupancy(self):
        if self.current_quantity > self.capacity:
            raise ValueError(
                f"Location {self.code} holds {self.current_quantity} units over capacity {self.capacity}"
            )
        return self

    @computed_field
    @property
    def available_capacity(self) -> int:
        return self.capacity - self.current_quantity

    @computed_field
    @property
    def utilization(self) -> float:
        if self.capacity == 0:
            return 0.0
        return self.current_quantity / self.capacity


class OccupantStock(BaseModel):
    """Stock already sitting in a location (used for FEFO and hazmat checks)."""
    sku: str
    product_id: Optional[uuid.UUID] = None
    quantity: int = 0
    lot_number: Optional[str] = None
    expiry_date: Optional[date] = None
    hazmat: bool = False


class InventorySnapshot(BaseResponseSchema):
    """One inventory row joined with its location."""
    id: uuid.UUID
    location_id: uuid.UUID
    location_code: str
    zone: str
    product_id: uuid.UUID
    sku: str
    lot_number: str = ""
    expiry_date: Optional[date] = None
    quantity_on_hand: int
    quantity_reserved: int
    quantity_available: int
    unit_cost: float = 0.0


# ==================== PLACEMENT ====================

class StockItem(BaseCreateSchema):
    """Placement request for a quantity of one SKU."""
    sku: str = Field(..., min_length=1, max_length=50)
    product_id: Optional[uuid.UUID] = None
    product_name: str = ""
    quantity: int = Field(..., gt=0)
    weight: Optional[float] = Field(None, ge=0, description="Total weight of the placement (kg)")
    volume: Optional[float] = Field(None, ge=0)
    dimensions: Optional[Dict[str, float]] = None
    temperature_requirement: Optional[str] = None
    hazmat: bool = False
    fast_moving: bool = False
    abc_classification: Optional[ABCClass] = None
    lot_number: Optional[str] = None
    expiry_date: Optional[date] = None


class PlacementOptions(BaseCreateSchema):
    """Unset fields fall back to item/config driven defaults."""
    preferred_zone: Optional[str] = None
    min_capacity: Optional[int] = Field(None, ge=0)
    max_distance: Optional[float] = Field(None, gt=0)
    allow_mixed_sku: bool = False
    require_picking_face: Optional[bool] = None
    consider_abc: bool = True


class ScoreBreakdown(BaseModel):
    """Scoring engine output for one (location, item) pair."""
    score: float
    reasons: List[str] = []
    conflicts: List[str] = []
    distance: float
    utilization_after: float  # fraction of capacity
    distance_score: float
    capacity_score: float
    compatibility_score: float
    fefo_score: float
    abc_bonus: float = 0.0


class LocationSuggestion(BaseModel):
    """Ranked placement candidate."""
    location: LocationSnapshot
    score: float = Field(..., ge=0, le=100)
    reasons: List[str] = []
    distance: float
    utilization_after: float  # percent of capacity after placement
    conflicts: List[str] = []


class FindLocationRequest(BaseCreateSchema):
    warehouse_id: uuid.UUID
    item: StockItem
    options: Optional[PlacementOptions] = None


class PutawayRequest(BaseCreateSchema):
    warehouse_id: uuid.UUID
    location_id: uuid.UUID
    item: StockItem


class PutawayResult(BaseModel):
    location_id: uuid.UUID
    location_code: str
    sku: str
    quantity: int
    lot_number: str
    location_quantity_after: int
    location_capacity: int


# ==================== ABC ANALYSIS ====================

class SkuConsumption(BaseModel):
    """Per-SKU consumption over a period, as supplied by a ConsumptionValueProvider."""
    sku: str
    product_id: Optional[uuid.UUID] = None
    product_name: str = ""
    quantity: int = Field(0, ge=0)
    revenue: float = Field(0.0, ge=0)
    pick_frequency: int = Field(0, ge=0)
    current_zone: Optional[str] = None


class ABCAnalysisResult(BaseModel):
    sku: str
    product_id: Optional[uuid.UUID] = None
    product_name: str = ""
    classification: ABCClass
    annual_revenue: float
    annual_quantity: int
    pick_frequency: int
    revenue_percentage: float
    quantity_percentage: float
    cumulative_percentage: float
    current_zone: Optional[str] = None
    recommended_zone: str


class ABCAnalysisRequest(BaseCreateSchema):
    warehouse_id: uuid.UUID
    period_start: date
    period_end: date


# ==================== SLOTTING ====================

class SlottingOptions(BaseCreateSchema):
    min_impact_threshold: Optional[float] = Field(None, ge=0, description="Minimum distance reduction (%)")
    max_recommendations: Optional[int] = Field(None, ge=1)
    period_start: Optional[date] = None
    period_end: Optional[date] = None


class EstimatedImpact(BaseModel):
    picking_time_reduction: float  # percent
    travel_distance_reduction: float  # meters
    labor_cost_saving: float  # currency per month


class SlottingRecommendation(BaseModel):
    sku: str
    product_name: str = ""
    classification: ABCClass
    current_locations: List[LocationSnapshot]
    recommended_locations: List[LocationSuggestion]
    reasoning: str
    distance_reduction_percent: float
    priority_score: float
    estimated_impact: EstimatedImpact


class SlottingRequest(BaseCreateSchema):
    warehouse_id: uuid.UUID
    options: Optional[SlottingOptions] = None


# ==================== REPLENISHMENT ====================

class ReplenishmentOptions(BaseCreateSchema):
    min_threshold: Optional[float] = Field(None, ge=0, le=1)
    max_threshold: Optional[float] = Field(None, gt=0, le=1)
    prioritize_a_items: bool = True


class ReplenishmentTask(BaseModel):
    sku: str
    product_id: uuid.UUID
    product_name: str = ""
    lot_number: str = ""
    source_location_id: uuid.UUID
    source_location_code: str
    destination_location_id: uuid.UUID
    destination_location_code: str
    quantity: int = Field(..., gt=0)
    priority: ReplenishmentPriority
    reason: str
    estimated_time: int  # minutes
    current_utilization: float  # percent
    abc_classification: Optional[ABCClass] = None


class ReplenishmentRequest(BaseCreateSchema):
    warehouse_id: uuid.UUID
    options: Optional[ReplenishmentOptions] = None


class ExecuteReplenishmentRequest(BaseCreateSchema):
    warehouse_id: uuid.UUID
    task: ReplenishmentTask


class ReplenishmentResult(BaseModel):
    sku: str
    quantity: int
    lot_number: str = ""
    source_location_code: str
    destination_location_code: str
    source_quantity_after: int
    destination_quantity_after: int
    destination_capacity: int
