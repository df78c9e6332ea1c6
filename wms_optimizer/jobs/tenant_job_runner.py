"""
Tenant-Aware Job Runner

Runs registered background jobs across all active tenants. Each tenant gets
its own schema-bound session; a failure in one tenant is logged and does
not stop the others. With multi-tenancy disabled a job runs once against
the default schema.

Usage:
    @tenant_job("plan_replenishment")
    async def plan_replenishment(session, tenant):
        ...
"""
import asyncio
import logging
from datetime import datetime, timezone
from functools import wraps
from typing import Callable, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from wms_optimizer.config import settings
from wms_optimizer.core.tenant_context import list_active_tenants

logger = logging.getLogger(__name__)

# Registry of tenant-aware jobs
_tenant_jobs: Dict[str, Callable] = {}


def tenant_job(name: str):
    """
    Register a tenant-aware background job.

    The decorated coroutine receives the tenant's session and a tenant dict
    (id, name, subdomain, database_schema).
    """
    def decorator(func: Callable):
        @wraps(func)
        async def wrapper(session: AsyncSession, tenant: dict):
            return await func(session, tenant)

        _tenant_jobs[name] = wrapper
        logger.debug(f"Registered tenant job: {name}")
        return wrapper
    return decorator


def registered_jobs() -> List[str]:
    return list(_tenant_jobs)


class TenantJobRunner:
    """Executes registered jobs for every active tenant, a few at a time."""

    def __init__(self, max_concurrent: int = 5):
        self.max_concurrent = max_concurrent
        self._semaphore = asyncio.Semaphore(max_concurrent)

    async def get_active_tenants(self) -> List[dict]:
        if not settings.MULTI_TENANT_ENABLED:
            return [
                {
                    "id": None,
                    "name": "default",
                    "subdomain": "default",
                    "database_schema": settings.DEFAULT_SCHEMA,
                }
            ]

        from wms_optimizer.database import async_session_factory

        async with async_session_factory() as session:
            tenants = await list_active_tenants(session)
        return [
            {
                "id": str(t.id),
                "name": t.name,
                "subdomain": t.subdomain,
                "database_schema": t.database_schema,
            }
            for t in tenants
        ]

    async def run_job_for_tenant(self, job_name: str, job_func: Callable, tenant: dict) -> dict:
        from wms_optimizer.database import get_db_session, tenant_session

        start_time = datetime.now(timezone.utc)
        result = {
            "tenant_id": tenant["id"],
            "subdomain": tenant["subdomain"],
            "job": job_name,
            "status": "pending",
            "started_at": start_time.isoformat(),
            "error": None,
            "output": None,
        }

        if settings.MULTI_TENANT_ENABLED:
            session_scope = tenant_session(tenant["database_schema"])
        else:
            session_scope = get_db_session()

        try:
            async with self._semaphore:
                async with session_scope as session:
                    result["output"] = await job_func(session, tenant)
            result["status"] = "success"
        except Exception as e:
            result["status"] = "failed"
            result["error"] = str(e)
            logger.error(f"Job '{job_name}' failed for tenant '{tenant['subdomain']}': {e}")

        end_time = datetime.now(timezone.utc)
        result["duration_ms"] = int((end_time - start_time).total_seconds() * 1000)
        result["completed_at"] = end_time.isoformat()
        return result

    async def run_job(self, job_name: str) -> dict:
        if job_name not in _tenant_jobs:
            raise ValueError(f"Unknown job: {job_name}. Registered: {registered_jobs()}")

        job_func = _tenant_jobs[job_name]
        start_time = datetime.now(timezone.utc)
        logger.info(f"Starting tenant job: {job_name}")

        tenants = await self.get_active_tenants()
        if not tenants:
            logger.info(f"No active tenants found. Job '{job_name}' skipped.")
            return {"job": job_name, "status": "skipped", "reason": "no_active_tenants", "tenant_count": 0}

        results = await asyncio.gather(
            *(self.run_job_for_tenant(job_name, job_func, tenant) for tenant in tenants)
        )
        successful = sum(1 for r in results if r["status"] == "success")
        total_duration = int((datetime.now(timezone.utc) - start_time).total_seconds() * 1000)

        logger.info(
            f"Job '{job_name}' completed: {successful}/{len(tenants)} successful in {total_duration}ms"
        )
        return {
            "job": job_name,
            "status": "completed",
            "duration_ms": total_duration,
            "tenant_count": len(tenants),
            "successful": successful,
            "failed": len(tenants) - successful,
            "results": list(results),
        }


_runner: Optional[TenantJobRunner] = None


def get_tenant_job_runner() -> TenantJobRunner:
    global _runner
    if _runner is None:
        _runner = TenantJobRunner()
    return _runner


async def run_tenant_job(job_name: str) -> dict:
    return await get_tenant_job_runner().run_job(job_name)
