"""Picking order API endpoints: lifecycle, routing, waves and metrics."""
from typing import List, Optional
import uuid
from datetime import datetime

from fastapi import APIRouter, Query, status

from wms_optimizer.api.deps import Picking
from wms_optimizer.models.picking import PickingPriority, PickingStatus
from wms_optimizer.schemas.picking import (
    AssignPickerRequest,
    CancelPickingRequest,
    CompletePickingRequest,
    PickingMetrics,
    PickingOrderCreate,
    PickingOrderResponse,
    PickingRouteResult,
    PickItemRequest,
    VerifyPickingRequest,
    WaveCreateRequest,
    WavePickingBatch,
)


router = APIRouter()


# ==================== PICKING ORDERS ====================

@router.post(
    "/orders",
    response_model=PickingOrderResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_picking_order(data: PickingOrderCreate, service: Picking):
    """Allocate and reserve stock for a new picking order."""
    return await service.create_picking_order(data)


@router.get("/orders", response_model=List[PickingOrderResponse])
async def list_picking_orders(
    service: Picking,
    warehouse_id: Optional[uuid.UUID] = Query(None),
    status: Optional[PickingStatus] = Query(None),
    priority: Optional[PickingPriority] = Query(None),
    assigned_to: Optional[str] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
):
    return await service.get_picking_orders(
        warehouse_id=warehouse_id,
        status=status.value if status else None,
        priority=priority.value if priority else None,
        assigned_to=assigned_to,
        start_date=start_date,
        end_date=end_date,
        skip=skip,
        limit=limit,
    )


@router.get("/orders/{picking_id}", response_model=PickingOrderResponse)
async def get_picking_order(picking_id: uuid.UUID, service: Picking):
    return await service.get_picking_order(picking_id)


# ==================== LIFECYCLE ====================

@router.post("/orders/{picking_id}/assign", response_model=PickingOrderResponse)
async def assign_picker(picking_id: uuid.UUID, data: AssignPickerRequest, service: Picking):
    return await service.assign_picker(picking_id, data.picker_id)


@router.post("/orders/{picking_id}/start", response_model=PickingOrderResponse)
async def start_picking(picking_id: uuid.UUID, service: Picking):
    return await service.start_picking(picking_id)


@router.post("/orders/{picking_id}/pick", response_model=PickingOrderResponse)
async def pick_item(picking_id: uuid.UUID, data: PickItemRequest, service: Picking):
    """Confirm units picked from one allocated location."""
    return await service.pick_item(picking_id, data)


@router.post("/orders/{picking_id}/complete", response_model=PickingOrderResponse)
async def complete_picking(picking_id: uuid.UUID, service: Picking, data: Optional[CompletePickingRequest] = None):
    return await service.complete_picking(picking_id, data.notes if data else None)


@router.post("/orders/{picking_id}/verify", response_model=PickingOrderResponse)
async def verify_picking(picking_id: uuid.UUID, data: VerifyPickingRequest, service: Picking):
    return await service.verify_picking(picking_id, data)


@router.post("/orders/{picking_id}/cancel", response_model=PickingOrderResponse)
async def cancel_picking(picking_id: uuid.UUID, service: Picking, data: Optional[CancelPickingRequest] = None):
    """Cancel an open order and release its unpicked reservations."""
    return await service.cancel_picking(picking_id, data.reason if data else None)


# ==================== ROUTING & WAVES ====================

@router.post("/orders/{picking_id}/optimize-route", response_model=PickingRouteResult)
async def optimize_picking_route(picking_id: uuid.UUID, service: Picking):
    return await service.optimize_picking_route(picking_id)


@router.post(
    "/waves",
    response_model=WavePickingBatch,
    status_code=status.HTTP_201_CREATED,
)
async def batch_picking_orders(data: WaveCreateRequest, service: Picking):
    """Group pending orders of one warehouse into a wave."""
    return await service.batch_picking_orders(data.warehouse_id, data.picking_ids)


@router.get("/metrics", response_model=PickingMetrics)
async def get_picking_metrics(
    service: Picking,
    warehouse_id: uuid.UUID = Query(...),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
):
    return await service.get_picking_metrics(warehouse_id, start_date, end_date)
