"""WMS storage location model."""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import String, Boolean, DateTime, ForeignKey, Integer, Float
from sqlalchemy import UniqueConstraint, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from wms_optimizer.database import Base
from wms_optimizer.db_types import UUIDType

if TYPE_CHECKING:
    from wms_optimizer.models.warehouse import Warehouse


class LocationType(str, Enum):
    """Storage location type enumeration."""
    PICKING = "picking"          # Forward pick face
    RACK = "rack"                # Pallet rack
    BULK = "bulk"                # Reserve/bulk storage
    OVERFLOW = "overflow"
    RECEIVING = "receiving"
    STAGING = "staging"
    QUARANTINE = "quarantine"
    DAMAGED = "damaged"


class LocationStatus(str, Enum):
    """Storage location status enumeration."""
    AVAILABLE = "available"
    OCCUPIED = "occupied"        # Full
    RESERVED = "reserved"
    DAMAGED = "damaged"
    MAINTENANCE = "maintenance"


class StorageLocation(Base):
    """
    Storage location (bin) inside a warehouse.

    current_quantity is only ever changed through guarded UPDATE statements
    (see WarehouseStorage.adjust_location_quantity).
    """
    __tablename__ = "wms_locations"
    __table_args__ = (
        UniqueConstraint("warehouse_id", "code", name="uq_wms_location_code"),
        CheckConstraint("current_quantity >= 0", name="ck_wms_location_qty_non_negative"),
        CheckConstraint("current_quantity <= capacity", name="ck_wms_location_qty_within_capacity"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )

    warehouse_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("warehouses.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    code: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        index=True,
        comment="Location code e.g., A-01-01"
    )
    location_type: Mapped[str] = mapped_column(
        String(30),
        default=LocationType.RACK.value,
        nullable=False,
        comment="picking, rack, bulk, overflow, receiving, staging, quarantine, damaged"
    )

    # Location breakdown
    zone: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    aisle: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    rack: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    shelf: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    bin: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)

    # Planar position from the receiving dock (meters)
    coord_x: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    coord_y: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    coord_z: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # Capacity (units)
    capacity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    current_quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    max_weight: Mapped[Optional[float]] = mapped_column(Float, nullable=True, comment="kg")
    current_weight: Mapped[Optional[float]] = mapped_column(Float, nullable=True, comment="kg")

    # Slotting attributes
    temperature_zone: Mapped[Optional[str]] = mapped_column(
        String(30),
        nullable=True,
        comment="ambient, chilled, frozen"
    )
    is_picking_face: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_bulk_storage: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    reserved_for_sku: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    status: Mapped[str] = mapped_column(
        String(20),
        default=LocationStatus.AVAILABLE.value,
        nullable=False,
        index=True,
        comment="available, occupied, reserved, damaged, maintenance"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    warehouse: Mapped["Warehouse"] = relationship("Warehouse", back_populates="locations")

    @property
    def available_capacity(self) -> int:
        return max(0, (self.capacity or 0) - (self.current_quantity or 0))

    @property
    def utilization(self) -> float:
        """Fill ratio in [0, 1]; zero-capacity locations report 0."""
        if not self.capacity:
            return 0.0
        return (self.current_quantity or 0) / self.capacity

    def __repr__(self) -> str:
        return f"<StorageLocation(code='{self.code}', zone='{self.zone}')>"
