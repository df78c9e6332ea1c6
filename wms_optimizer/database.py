import json
import logging
import re
from contextlib import asynccontextmanager
from decimal import Decimal
from datetime import datetime, date
from typing import AsyncGenerator
from uuid import UUID

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy import text
from psycopg.types.json import set_json_dumps

from wms_optimizer.config import settings


logger = logging.getLogger(__name__)

_SCHEMA_NAME = re.compile(r"^[a-z_][a-z0-9_]*$")


# Custom JSON encoder that handles Decimal, datetime, UUID, etc.
class CustomJSONEncoder(json.JSONEncoder):
    """JSON encoder that handles Decimal, datetime, UUID and other types."""
    def default(self, obj):
        if isinstance(obj, Decimal):
            return float(obj)
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        if isinstance(obj, UUID):
            return str(obj)
        return super().default(obj)


def custom_json_dumps(obj):
    """Custom JSON dumps function for psycopg and SQLAlchemy JSON columns."""
    return json.dumps(obj, cls=CustomJSONEncoder)


# Picking metadata carries UUIDs and dates
set_json_dumps(custom_json_dumps)


# SQLite doesn't support pool settings, check database type
is_sqlite = settings.DATABASE_URL.startswith("sqlite")

# Convert database URL for proper driver
database_url = settings.DATABASE_URL
if database_url.startswith("postgresql+asyncpg://"):
    database_url = database_url.replace("postgresql+asyncpg://", "postgresql+psycopg://")
elif database_url.startswith("postgresql://"):
    database_url = database_url.replace("postgresql://", "postgresql+psycopg://")

if is_sqlite:
    engine = create_async_engine(
        settings.DATABASE_URL,
        echo=settings.DEBUG,
        json_serializer=custom_json_dumps,
        connect_args={"check_same_thread": False},
    )
else:
    engine = create_async_engine(
        database_url,
        echo=settings.DEBUG,
        json_serializer=custom_json_dumps,
        pool_pre_ping=True,  # Check connection health before use
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        connect_args={
            "prepare_threshold": None,  # Disable prepared statements for pgbouncer
            "connect_timeout": 30,
        },
    )

# Create async session factory (for default/public schema)
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


@asynccontextmanager
async def get_db_session():
    """Context manager for getting database session (for background jobs)."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Create tables for local/dev databases. Production uses alembic."""
    from wms_optimizer import models  # noqa: F401

    # SQLite has no schemas; the public tenant registry only exists on PostgreSQL
    tables = [t for t in Base.metadata.sorted_tables if not (is_sqlite and t.schema)]
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all, tables=tables)
    logger.info(f"Database ready ({len(Base.metadata.tables)} tables registered)")


# ====================
# MULTI-TENANT SUPPORT
# ====================

def validate_schema_name(schema: str) -> str:
    """Schema names are interpolated into SET search_path, so restrict them."""
    if not _SCHEMA_NAME.match(schema or ""):
        raise ValueError(f"Invalid tenant schema name: {schema!r}")
    return schema


@asynccontextmanager
async def tenant_session(schema: str):
    """
    Session bound to a tenant schema (search_path set on the connection).

    Args:
        schema: Tenant database schema name (e.g., 'tenant_acme')
    """
    schema = validate_schema_name(schema)
    async with engine.connect() as conn:
        await conn.execute(text(f"SET search_path TO {schema}, public"))
        session = AsyncSession(bind=conn, expire_on_commit=False, autoflush=False)
        try:
            yield session
            await session.commit()
            await conn.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def get_db_with_tenant(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency to get database session for current tenant
    (default schema when multi-tenancy is disabled)

    Usage in FastAPI routes:
        @router.post("/wms/locations/optimal")
        async def find(db: AsyncSession = Depends(get_db_with_tenant)):
            ...
    """
    if not settings.MULTI_TENANT_ENABLED:
        async with get_db_session() as session:
            yield session
        return

    if not hasattr(request.state, "schema"):
        raise ValueError("Tenant schema not found in request. Is tenant middleware enabled?")

    async with tenant_session(request.state.schema) as session:
        yield session
