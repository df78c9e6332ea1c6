"""
Background Jobs Module

Handles scheduled tasks for:
- Replenishment planning (per tenant, per warehouse)
"""

from wms_optimizer.jobs.scheduler import scheduler, start_scheduler, shutdown_scheduler

__all__ = [
    "scheduler",
    "start_scheduler",
    "shutdown_scheduler",
]
