from typing import Annotated
import logging

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from wms_optimizer.config import OptimizerConfig, settings
from wms_optimizer.database import get_db_with_tenant
from wms_optimizer.services.location_optimization_service import LocationOptimizationService
from wms_optimizer.services.picking_service import PickingService


logger = logging.getLogger(__name__)


def get_optimizer_config() -> OptimizerConfig:
    """Optimizer tuning from settings (OPTIMIZER_* overrides)."""
    return settings.optimizer_config()


# Type aliases for cleaner endpoint signatures
TenantDB = Annotated[AsyncSession, Depends(get_db_with_tenant)]  # Tenant schema
Config = Annotated[OptimizerConfig, Depends(get_optimizer_config)]


def get_location_service(db: TenantDB, config: Config) -> LocationOptimizationService:
    return LocationOptimizationService(db, config)


def get_picking_service(db: TenantDB, config: Config) -> PickingService:
    return PickingService(db, config)


LocationService = Annotated[LocationOptimizationService, Depends(get_location_service)]
Picking = Annotated[PickingService, Depends(get_picking_service)]
