from fastapi import APIRouter

from wms_optimizer.api.v1.endpoints import (
    # Placement & ABC
    locations,
    # Slotting
    slotting,
    # Replenishment
    replenishment,
    # Picking
    picking,
)

# Create main API router
api_router = APIRouter(prefix="/api/v1")

# ==================== Location Optimization ====================
api_router.include_router(
    locations.router,
    prefix="/wms",
    tags=["Location Optimization"]
)

# ==================== Slotting ====================
api_router.include_router(
    slotting.router,
    prefix="/wms/slotting",
    tags=["Slotting"]
)

# ==================== Replenishment ====================
api_router.include_router(
    replenishment.router,
    prefix="/wms/replenishment",
    tags=["Replenishment"]
)

# ==================== Picking ====================
api_router.include_router(
    picking.router,
    prefix="/picking",
    tags=["Picking"]
)
