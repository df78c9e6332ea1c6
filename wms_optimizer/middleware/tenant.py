"""
Tenant middleware for multi-tenant request handling
"""
import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from wms_optimizer.config import settings
from wms_optimizer.core.exceptions import NotFoundError
from wms_optimizer.core.tenant_context import (
    get_tenant_by_id,
    get_tenant_by_subdomain,
    subdomain_from_host,
)

logger = logging.getLogger(__name__)

PUBLIC_ROUTES = ("/", "/health", "/docs", "/openapi.json", "/redoc")


async def resolve_tenant(request: Request, db):
    """
    Tenant for a request.

    Priority:
    1. Custom header (X-Tenant-ID) - for API calls
    2. Subdomain - for browser access
    """
    tenant_id = request.headers.get("X-Tenant-ID")
    if tenant_id:
        tenant = await get_tenant_by_id(db, tenant_id)
        if tenant:
            logger.debug(f"Tenant identified by header: {tenant.name}")
            return tenant

    subdomain = subdomain_from_host(request.headers.get("host", ""))
    if subdomain:
        tenant = await get_tenant_by_subdomain(db, subdomain)
        if tenant:
            logger.debug(f"Tenant identified by subdomain: {tenant.name}")
            return tenant

    return None


async def tenant_middleware(request: Request, call_next):
    """
    Inject tenant context into request.state.

    Public routes skip the lookup, and so does everything when
    multi-tenancy is disabled.
    """
    if not settings.MULTI_TENANT_ENABLED or request.url.path in PUBLIC_ROUTES:
        return await call_next(request)

    from wms_optimizer.database import async_session_factory

    async with async_session_factory() as db:
        tenant = await resolve_tenant(request, db)

    if tenant is None:
        logger.warning(f"Tenant not found for host: {request.headers.get('host', '')}")
        error = NotFoundError("Tenant", request.headers.get("X-Tenant-ID") or request.headers.get("host", ""))
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    request.state.tenant_id = str(tenant.id)
    request.state.schema = tenant.database_schema
    logger.info(f"Request for tenant: {tenant.name} ({tenant.subdomain}) | Schema: {tenant.database_schema}")

    return await call_next(request)
