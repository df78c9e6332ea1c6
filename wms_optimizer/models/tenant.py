"""
Tenant model for schema-per-tenant routing
"""
from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
import uuid

from wms_optimizer.database import Base
from wms_optimizer.db_types import UUIDType


class Tenant(Base):
    """
    Tenant/Organization model

    Each tenant owns a database schema holding its warehouses, locations
    and inventory. The table itself lives in the public schema.
    """
    __tablename__ = "tenants"
    __table_args__ = {'schema': 'public'}

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    subdomain: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    database_schema: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="active", nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
