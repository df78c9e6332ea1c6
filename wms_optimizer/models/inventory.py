"""Location-level inventory and the stock movement ledger."""
import uuid
from enum import Enum
from datetime import datetime, date, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import String, DateTime, Date, ForeignKey, Integer, Numeric, Text
from sqlalchemy import UniqueConstraint, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from wms_optimizer.database import Base
from wms_optimizer.db_types import UUIDType

if TYPE_CHECKING:
    from wms_optimizer.models.product import Product
    from wms_optimizer.models.wms import StorageLocation


class InventoryStatus(str, Enum):
    """Inventory row status enum."""
    AVAILABLE = "AVAILABLE"
    QUARANTINE = "QUARANTINE"  # In quality hold
    DAMAGED = "DAMAGED"


class InventoryRecord(Base):
    """
    Stock of one product lot in one location.

    quantity_available + quantity_reserved == quantity_on_hand; the three
    counters move together through WarehouseStorage.update_inventory_quantities.
    """
    __tablename__ = "wms_inventory"
    __table_args__ = (
        UniqueConstraint("location_id", "product_id", "lot_number", name="uq_wms_inventory_location_product_lot"),
        CheckConstraint("quantity_on_hand >= 0", name="ck_wms_inventory_on_hand"),
        CheckConstraint("quantity_available >= 0", name="ck_wms_inventory_available"),
        CheckConstraint("quantity_reserved >= 0", name="ck_wms_inventory_reserved"),
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
    location_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("wms_locations.id"),
        nullable=False,
        index=True
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("products.id"),
        nullable=False,
        index=True
    )
    sku: Mapped[str] = mapped_column(String(50), nullable=False, index=True)

    # Lot tracking ("" when the product is not lot-controlled)
    lot_number: Mapped[str] = mapped_column(String(50), default="", nullable=False)
    expiry_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    received_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    quantity_on_hand: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    quantity_reserved: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    quantity_available: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    unit_cost: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        default=InventoryStatus.AVAILABLE.value,
        nullable=False,
        comment="AVAILABLE, QUARANTINE, DAMAGED"
    )

    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    location: Mapped["StorageLocation"] = relationship("StorageLocation")
    product: Mapped["Product"] = relationship("Product")

    def __repr__(self) -> str:
        return f"<InventoryRecord(sku='{self.sku}', lot='{self.lot_number}', on_hand={self.quantity_on_hand})>"


class StockMovementType(str, Enum):
    """Stock movement type enum."""
    RECEIPT = "RECEIPT"  # Putaway into a location
    PICK = "PICK"  # Picked for an order (consumption)
    REPLENISH = "REPLENISH"  # Bulk -> picking face
    ADJUSTMENT_PLUS = "ADJUSTMENT_PLUS"
    ADJUSTMENT_MINUS = "ADJUSTMENT_MINUS"


class StockMovement(Base):
    """Stock movement history/ledger. PICK rows feed ABC analysis."""

    __tablename__ = "stock_movements"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    movement_type: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        index=True,
        comment="RECEIPT, PICK, REPLENISH, ADJUSTMENT_PLUS, ADJUSTMENT_MINUS"
    )
    movement_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True
    )

    warehouse_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("warehouses.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("products.id"),
        nullable=False,
        index=True
    )
    sku: Mapped[str] = mapped_column(String(50), nullable=False)
    from_location_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUIDType(as_uuid=True), nullable=True)
    to_location_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUIDType(as_uuid=True), nullable=True)
    lot_number: Mapped[str] = mapped_column(String(50), default="", nullable=False)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)

    # Related documents
    reference_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)  # picking, replenishment, putaway
    reference_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUIDType(as_uuid=True), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<StockMovement {self.movement_type} {self.sku} x{self.quantity}>"
