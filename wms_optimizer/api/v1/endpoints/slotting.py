"""Slotting recommendation endpoints."""
from typing import List

from fastapi import APIRouter

from wms_optimizer.api.deps import LocationService
from wms_optimizer.schemas.location_optimization import SlottingRecommendation, SlottingRequest


router = APIRouter()


@router.post("/recommendations", response_model=List[SlottingRecommendation])
async def generate_slotting_recommendations(request: SlottingRequest, service: LocationService):
    """Relocations for SKUs stored outside the zone their ABC class calls for."""
    return await service.generate_slotting_recommendations(request.warehouse_id, request.options)
