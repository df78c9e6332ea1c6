# Import all models so they register with Base.metadata
from wms_optimizer.models.tenant import Tenant
from wms_optimizer.models.warehouse import Warehouse, WarehouseType
from wms_optimizer.models.wms import StorageLocation, LocationType, LocationStatus
from wms_optimizer.models.product import Product
from wms_optimizer.models.inventory import (
    InventoryRecord,
    InventoryStatus,
    StockMovement,
    StockMovementType,
)
from wms_optimizer.models.picking import (
    PickingOrder,
    PickingStatus,
    PickingStrategy,
    PickingPriority,
)

__all__ = [
    "Tenant",
    "Warehouse",
    "WarehouseType",
    "StorageLocation",
    "LocationType",
    "LocationStatus",
    "Product",
    "InventoryRecord",
    "InventoryStatus",
    "StockMovement",
    "StockMovementType",
    "PickingOrder",
    "PickingStatus",
    "PickingStrategy",
    "PickingPriority",
]
