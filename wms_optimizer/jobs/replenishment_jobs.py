"""
Replenishment planning job.

Plans bulk-to-pick-face moves for every active warehouse of a tenant and
logs the task counts per priority. Execution stays with the operators (or
the task queue consuming these plans).
"""
import logging
from collections import Counter
from typing import Any, Dict

from sqlalchemy.ext.asyncio import AsyncSession

from wms_optimizer.config import settings
from wms_optimizer.jobs.tenant_job_runner import tenant_job
from wms_optimizer.services.replenishment_service import ReplenishmentService
from wms_optimizer.services.wms_storage import WarehouseStorage

logger = logging.getLogger(__name__)


@tenant_job("plan_replenishment")
async def plan_replenishment_job(session: AsyncSession, tenant: dict) -> Dict[str, Any]:
    service = ReplenishmentService(session, settings.optimizer_config())
    warehouses = await WarehouseStorage(session).list_active_warehouses()

    summary = {"warehouses": len(warehouses), "tasks": 0, "by_warehouse": {}}
    for warehouse in warehouses:
        tasks = await service.generate_replenishment_tasks(warehouse.id)
        by_priority = Counter(task.priority.value for task in tasks)
        summary["tasks"] += len(tasks)
        summary["by_warehouse"][warehouse.code] = dict(by_priority)
        if tasks:
            logger.info(
                f"Tenant '{tenant['subdomain']}' warehouse {warehouse.code}: "
                f"{len(tasks)} replenishment tasks {dict(by_priority)}"
            )

    return summary
