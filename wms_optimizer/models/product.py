"""Product master (the slice of it the optimizer reads)."""
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import String, Boolean, DateTime, Float, Numeric
from sqlalchemy.orm import Mapped, mapped_column

from wms_optimizer.database import Base
from wms_optimizer.db_types import UUIDType


class Product(Base):
    """Product with handling attributes relevant to slotting."""
    __tablename__ = "products"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    sku: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # Handling
    is_hazmat: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    temperature_requirement: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    unit_weight_kg: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    unit_volume_m3: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<Product(sku='{self.sku}')>"
