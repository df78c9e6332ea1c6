"""Picking order model for warehouse order picking operations."""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import String, DateTime, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from wms_optimizer.database import Base
from wms_optimizer.db_types import JSONType, UUIDType


class PickingStatus(str, Enum):
    """Picking order status enumeration."""
    PENDING = "pending"           # Allocated, waiting for a picker
    ASSIGNED = "assigned"         # Assigned to picker
    IN_PROGRESS = "in_progress"   # Picking in progress
    COMPLETED = "completed"       # Picker finished
    CANCELLED = "cancelled"


class PickingStrategy(str, Enum):
    """Order in which eligible (location, lot) rows are drawn."""
    FIFO = "fifo"
    FEFO = "fefo"
    ZONE = "zone"
    BATCH = "batch"
    WAVE = "wave"


class PickingPriority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class PickingOrder(Base):
    """
    Picking order with its allocated pick lines.

    ``items`` holds the serialized PickingItem list (allocations included);
    ``picking_metadata`` holds route, wave, metrics and verification data.
    Both are JSON, so they are reassigned rather than mutated in place.
    """
    __tablename__ = "picking_orders"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )

    picking_number: Mapped[str] = mapped_column(
        String(30),
        unique=True,
        nullable=False,
        index=True,
        comment="Unique picking number e.g., PICK-20260101-0001"
    )

    warehouse_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        ForeignKey("warehouses.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    order_reference: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)

    status: Mapped[str] = mapped_column(
        String(20),
        default=PickingStatus.PENDING.value,
        nullable=False,
        index=True,
        comment="pending, assigned, in_progress, completed, cancelled"
    )
    priority: Mapped[str] = mapped_column(String(20), default=PickingPriority.NORMAL.value, nullable=False)
    picking_strategy: Mapped[str] = mapped_column(
        String(20),
        default=PickingStrategy.FIFO.value,
        nullable=False,
        comment="fifo, fefo, zone, batch, wave"
    )

    # Counts
    total_items: Mapped[int] = mapped_column(Integer, default=0)
    total_quantity: Mapped[int] = mapped_column(Integer, default=0)
    picked_quantity: Mapped[int] = mapped_column(Integer, default=0)

    items: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)
    picking_metadata: Mapped[dict] = mapped_column("metadata", JSONType, default=dict, nullable=False)

    # Assignment
    assigned_to: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, comment="Picker id")
    assigned_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    verified_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    verified_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

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

    def __repr__(self) -> str:
        return f"<PickingOrder(number='{self.picking_number}', status='{self.status}')>"
