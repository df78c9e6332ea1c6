"""Warehouse model."""
import uuid
from enum import Enum
from datetime import datetime, timezone
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import String, Boolean, DateTime, Float
from sqlalchemy.orm import Mapped, mapped_column, relationship

from wms_optimizer.database import Base
from wms_optimizer.db_types import UUIDType

if TYPE_CHECKING:
    from wms_optimizer.models.wms import StorageLocation


class WarehouseType(str, Enum):
    """Warehouse type enum."""
    MAIN = "MAIN"  # Central warehouse
    REGIONAL = "REGIONAL"  # Regional distribution center
    CROSS_DOCK = "CROSS_DOCK"
    VIRTUAL = "VIRTUAL"  # Virtual/Transit warehouse


class Warehouse(Base):
    """Warehouse holding storage locations."""

    __tablename__ = "warehouses"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    warehouse_type: Mapped[str] = mapped_column(String(50), default="REGIONAL")

    # Receiving dock position (origin for travel distances)
    dock_x: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    dock_y: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

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

    locations: Mapped[List["StorageLocation"]] = relationship(
        "StorageLocation",
        back_populates="warehouse",
        cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Warehouse(code='{self.code}')>"
