"""Replenishment planning and execution endpoints."""
from typing import List

from fastapi import APIRouter

from wms_optimizer.api.deps import LocationService
from wms_optimizer.schemas.location_optimization import (
    ExecuteReplenishmentRequest,
    ReplenishmentRequest,
    ReplenishmentResult,
    ReplenishmentTask,
)


router = APIRouter()


@router.post("/tasks", response_model=List[ReplenishmentTask])
async def generate_replenishment_tasks(request: ReplenishmentRequest, service: LocationService):
    """Plan bulk-to-pick-face moves (nothing is moved)."""
    return await service.generate_replenishment_tasks(request.warehouse_id, request.options)


@router.post("/execute", response_model=ReplenishmentResult)
async def execute_replenishment(request: ExecuteReplenishmentRequest, service: LocationService):
    return await service.execute_replenishment(request.warehouse_id, request.task)
