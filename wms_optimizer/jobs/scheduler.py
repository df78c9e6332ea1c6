"""
APScheduler configuration.

Jobs are registered with @tenant_job and triggered here at fixed
intervals; TenantJobRunner fans each trigger out over the active tenants.
"""
import logging

from apscheduler.executors.asyncio import AsyncIOExecutor
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from wms_optimizer.config import settings

logger = logging.getLogger(__name__)

jobstores = {
    'default': MemoryJobStore()
}

executors = {
    'default': AsyncIOExecutor(),
}

job_defaults = {
    'coalesce': True,  # Combine multiple pending executions into one
    'max_instances': 1,  # Only one instance of each job at a time
    'misfire_grace_time': 60,
}

scheduler = AsyncIOScheduler(
    jobstores=jobstores,
    executors=executors,
    job_defaults=job_defaults,
    timezone=settings.SCHEDULER_TIMEZONE,
)


async def run_tenant_aware_job(job_name: str):
    """Called by APScheduler; delegates to the TenantJobRunner."""
    from wms_optimizer.jobs.tenant_job_runner import run_tenant_job

    try:
        result = await run_tenant_job(job_name)
        logger.info(
            f"Job '{job_name}' completed: "
            f"{result.get('successful', 0)}/{result.get('tenant_count', 0)} tenants successful"
        )
    except Exception as e:
        logger.error(f"Job '{job_name}' failed: {e}")


def start_scheduler():
    """Start the background job scheduler."""
    if not settings.SCHEDULER_ENABLED:
        logger.info("Scheduler disabled")
        return

    if not scheduler.running:
        # Registers the @tenant_job functions
        from wms_optimizer.jobs import replenishment_jobs  # noqa: F401

        scheduler.add_job(
            run_tenant_aware_job,
            'interval',
            minutes=settings.REPLENISHMENT_JOB_INTERVAL_MINUTES,
            args=["plan_replenishment"],
            id='plan_replenishment',
            name='Plan pick-face replenishment',
            replace_existing=True,
        )

        scheduler.start()
        logger.info("Background scheduler started")


def shutdown_scheduler():
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Background scheduler stopped")
