"""Location suggestion, putaway and ABC analysis endpoints."""
from typing import List

from fastapi import APIRouter, status

from wms_optimizer.api.deps import LocationService
from wms_optimizer.schemas.location_optimization import (
    ABCAnalysisRequest,
    ABCAnalysisResult,
    FindLocationRequest,
    LocationSuggestion,
    PutawayRequest,
    PutawayResult,
)


router = APIRouter()


@router.post("/locations/optimal", response_model=List[LocationSuggestion])
async def find_optimal_location(request: FindLocationRequest, service: LocationService):
    """Ranked placement suggestions for an incoming item."""
    return await service.find_optimal_location(request.warehouse_id, request.item, request.options)


@router.post(
    "/locations/putaway",
    response_model=PutawayResult,
    status_code=status.HTTP_201_CREATED,
)
async def putaway_item(request: PutawayRequest, service: LocationService):
    """Place stock into a chosen location."""
    return await service.putaway_item(request.warehouse_id, request.location_id, request.item)


@router.post("/abc-analysis", response_model=List[ABCAnalysisResult])
async def perform_abc_analysis(request: ABCAnalysisRequest, service: LocationService):
    return await service.perform_abc_analysis(
        request.warehouse_id, request.period_start, request.period_end
    )
