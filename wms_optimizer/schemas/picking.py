"""Pydantic schemas for picking orders, allocation and routing."""
from pydantic import BaseModel, Field

from wms_optimizer.schemas.base import BaseResponseSchema, BaseCreateSchema
from wms_optimizer.models.picking import PickingStrategy, PickingPriority
from typing import Optional, List
from datetime import date, datetime
import uuid


# ==================== ALLOCATION ====================

class PickingLocation(BaseModel):
    """Quantity of one lot reserved at one location for a pick line."""
    location_id: uuid.UUID
    location_code: str
    zone: str
    quantity: int = Field(..., gt=0)
    lot_number: str = ""
    expiry_date: Optional[date] = None
    distance: float = 0.0
    picked_quantity: int = 0


class PickingItem(BaseModel):
    """Pick line with its allocation breakdown."""
    product_id: uuid.UUID
    sku: Optional[str] = None
    product_name: Optional[str] = None
    quantity: int = Field(..., gt=0)
    preferred_location_id: Optional[uuid.UUID] = None
    allocated_locations: List[PickingLocation] = []
    allocated_quantity: int = 0
    short_quantity: int = 0
    picked_quantity: int = 0


class PickingItemCreate(BaseCreateSchema):
    product_id: uuid.UUID
    quantity: int = Field(..., gt=0)
    preferred_location_id: Optional[uuid.UUID] = None


# ==================== PICKING ORDERS ====================

class PickingOrderCreate(BaseCreateSchema):
    warehouse_id: uuid.UUID
    order_reference: Optional[str] = Field(None, max_length=100)
    items: List[PickingItemCreate] = Field(..., min_length=1)
    priority: PickingPriority = PickingPriority.NORMAL
    picking_strategy: PickingStrategy = PickingStrategy.FIFO
    notes: Optional[str] = None


class PickingOrderResponse(BaseResponseSchema):
    id: uuid.UUID
    picking_number: str
    warehouse_id: uuid.UUID
    order_reference: Optional[str] = None
    status: str
    priority: str
    picking_strategy: str
    total_items: int
    total_quantity: int
    picked_quantity: int
    items: List[PickingItem]
    picking_metadata: dict = {}
    assigned_to: Optional[str] = None
    assigned_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    verified_at: Optional[datetime] = None
    verified_by: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: datetime


class AssignPickerRequest(BaseCreateSchema):
    picker_id: str = Field(..., min_length=1, max_length=100)


class PickItemRequest(BaseCreateSchema):
    product_id: uuid.UUID
    location_id: uuid.UUID
    lot_number: Optional[str] = None
    quantity: int = Field(..., ge=0)
    short_quantity: int = Field(0, ge=0)
    short_reason: Optional[str] = None


class CompletePickingRequest(BaseCreateSchema):
    notes: Optional[str] = None


class VerifyPickingRequest(BaseCreateSchema):
    verified_by: str = Field(..., min_length=1, max_length=100)
    notes: Optional[str] = None
    discrepancies: List[str] = []


class CancelPickingRequest(BaseCreateSchema):
    reason: Optional[str] = None


# ==================== ROUTING ====================

class RouteStop(BaseModel):
    """One pick (allocation) in visiting order."""
    sequence: int
    product_id: uuid.UUID
    sku: Optional[str] = None
    location_id: uuid.UUID
    location_code: str
    zone: str
    lot_number: str = ""
    quantity: int
    x: float
    y: float
    distance: float  # from previous stop
    cumulative_distance: float


class PickingRouteResult(BaseModel):
    picking_id: Optional[uuid.UUID] = None
    stops: List[RouteStop]
    zone_sequence: List[str]
    total_distance: float  # meters
    estimated_time: int  # minutes
    unoptimized_distance: float
    distance_savings: float
    time_reduction: float  # minutes


# ==================== WAVES & METRICS ====================

class WaveCreateRequest(BaseCreateSchema):
    warehouse_id: uuid.UUID
    picking_ids: List[uuid.UUID] = Field(..., min_length=1)


class WavePickingBatch(BaseModel):
    wave_id: str
    warehouse_id: uuid.UUID
    picking_ids: List[uuid.UUID]
    picking_numbers: List[str]
    total_orders: int
    total_items: int
    total_quantity: int
    zones: List[str]
    estimated_time: int  # minutes


class PickingMetrics(BaseModel):
    warehouse_id: Optional[uuid.UUID] = None
    period_start: Optional[datetime] = None
    period_end: Optional[datetime] = None
    total_orders: int = 0
    pending_orders: int = 0
    in_progress_orders: int = 0
    completed_orders: int = 0
    cancelled_orders: int = 0
    total_quantity_picked: int = 0
    average_pick_time: float = 0.0  # minutes
    accuracy_rate: float = 0.0  # percent
    productivity_rate: float = 0.0  # units per minute
    error_rate: float = 0.0  # short lines per 100 orders
