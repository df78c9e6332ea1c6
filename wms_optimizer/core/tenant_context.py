"""
Tenant lookups for schema-per-tenant routing.

Tenants live in ``public.tenants``; everything the optimizer reads or writes
lives in the tenant's own schema. The request middleware and the background
job runner both resolve tenants through these helpers and then open a
session with ``tenant_session(schema)``.
"""
import logging
import uuid
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from wms_optimizer.models.tenant import Tenant

logger = logging.getLogger(__name__)

ACTIVE = "active"

# Host prefixes that are never tenant subdomains
RESERVED_SUBDOMAINS = ("www", "api", "admin", "localhost")


async def get_tenant_by_id(db: AsyncSession, tenant_id: str) -> Optional[Tenant]:
    """Active tenant by id; None for unknown, inactive or malformed ids."""
    try:
        tenant_uuid = uuid.UUID(str(tenant_id))
    except ValueError:
        logger.warning(f"Malformed tenant id: {tenant_id}")
        return None

    result = await db.execute(
        select(Tenant).where(Tenant.id == tenant_uuid, Tenant.status == ACTIVE)
    )
    return result.scalar_one_or_none()


async def get_tenant_by_subdomain(db: AsyncSession, subdomain: str) -> Optional[Tenant]:
    result = await db.execute(
        select(Tenant).where(Tenant.subdomain == subdomain, Tenant.status == ACTIVE)
    )
    return result.scalar_one_or_none()


def subdomain_from_host(host: str) -> Optional[str]:
    host = host.split(":")[0]
    if "." not in host:
        return None
    subdomain = host.split(".")[0]
    if subdomain in RESERVED_SUBDOMAINS:
        return None
    return subdomain


async def list_active_tenants(db: AsyncSession) -> List[Tenant]:
    result = await db.execute(
        select(Tenant).where(Tenant.status == ACTIVE).order_by(Tenant.created_at)
    )
    return list(result.scalars().all())
