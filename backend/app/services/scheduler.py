"""
Background Job Scheduler.

WHAT: Configures APScheduler and exposes the delayed retry queue used by
the bot personality workflow.

WHY: When n8n refuses to activate a workflow, provisioning still succeeds
and a single activation retry is scheduled for later. The retry runs
outside the request that scheduled it.

HOW: Uses APScheduler with AsyncIOScheduler for async job support. Each
retry is a one-shot DateTrigger job.

Example:
    # In main.py startup:
    from app.services.scheduler import start_scheduler, shutdown_scheduler

    @app.on_event("startup")
    async def startup():
        await start_scheduler()

    @app.on_event("shutdown")
    async def shutdown():
        await shutdown_scheduler()
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.executors.asyncio import AsyncIOExecutor
from apscheduler.triggers.date import DateTrigger

from app.core.config import settings


logger = logging.getLogger(__name__)

ACTIVATE_N8N_WORKFLOW = "activate_n8n_workflow"

# Global scheduler instance
_scheduler: Optional[AsyncIOScheduler] = None


def get_scheduler() -> Optional[AsyncIOScheduler]:
    """Get the global scheduler instance."""
    return _scheduler


def build_scheduler() -> AsyncIOScheduler:
    """
    Create an AsyncIOScheduler with in-memory job store.

    Retries are best effort: a restart drops pending retries, and the
    affected workflow stays in n8n's error state until retried manually.
    """
    return AsyncIOScheduler(
        jobstores={"default": MemoryJobStore()},
        executors={"default": AsyncIOExecutor()},
        job_defaults={
            "coalesce": True,  # Combine multiple missed runs into one
            "max_instances": 1,
            "misfire_grace_time": 300,
        },
        timezone="UTC",
    )


async def start_scheduler() -> None:
    """
    Start the background job scheduler.

    Note: Call this from FastAPI startup event.
    """
    global _scheduler

    if _scheduler is not None and _scheduler.running:
        logger.warning("Scheduler already running")
        return

    _scheduler = build_scheduler()
    _scheduler.start()
    logger.info("Scheduler started")


async def shutdown_scheduler() -> None:
    """
    Shut down the background job scheduler.

    Note: Call this from FastAPI shutdown event.
    """
    global _scheduler

    if _scheduler is None:
        logger.info("Scheduler not running")
        return

    if not _scheduler.running:
        logger.info("Scheduler already stopped")
        return

    logger.info("Shutting down scheduler...")
    _scheduler.shutdown(wait=False)
    _scheduler = None
    logger.info("Scheduler shut down successfully")


def get_scheduler_status() -> dict:
    """
    Get scheduler status information.

    Returns:
        Dict with scheduler status and job details
    """
    if _scheduler is None:
        return {
            "running": False,
            "jobs": [],
            "message": "Scheduler not initialized",
        }

    jobs = []
    for job in _scheduler.get_jobs():
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run_time": str(job.next_run_time) if job.next_run_time else None,
            "trigger": str(job.trigger),
        })

    return {
        "running": _scheduler.running,
        "jobs": jobs,
        "message": "Scheduler is running" if _scheduler.running else "Scheduler is paused",
    }


# ============================================================================
# Retry Queue
# ============================================================================


class RetryQueue:
    """
    Delayed, single-attempt retry of workflow operations.

    WHAT: enqueue(operation, target, delay) schedules run_workflow_retry to
    run once at now + delay.

    HOW: Uses the injected scheduler, or the global one started at app
    startup. Enqueuing without a scheduler raises RuntimeError; the caller
    decides whether that is fatal.
    """

    def __init__(self, scheduler: Optional[AsyncIOScheduler] = None):
        self._scheduler = scheduler

    def _get_scheduler(self) -> AsyncIOScheduler:
        scheduler = self._scheduler or get_scheduler()
        if scheduler is None:
            raise RuntimeError("Retry scheduler is not running")
        return scheduler

    async def enqueue(
        self,
        operation_name: str,
        target_reference: str,
        delay_seconds: Optional[int] = None,
    ) -> str:
        """
        Schedule one retry of an operation.

        Args:
            operation_name: Operation to retry (e.g. "activate_n8n_workflow")
            target_reference: Local id the operation acts on
            delay_seconds: Delay before the attempt (default WORKFLOW_RETRY_DELAY_SECONDS)

        Returns:
            The scheduled job id
        """
        delay = settings.WORKFLOW_RETRY_DELAY_SECONDS if delay_seconds is None else delay_seconds
        run_date = datetime.now(timezone.utc) + timedelta(seconds=delay)
        job_id = f"retry:{operation_name}:{target_reference}:{uuid.uuid4().hex}"

        self._get_scheduler().add_job(
            func=run_workflow_retry,
            trigger=DateTrigger(run_date=run_date),
            args=[operation_name, target_reference],
            id=job_id,
            name=f"Retry {operation_name}",
        )

        logger.info(
            "Retry scheduled for n8n workflow operation",
            extra={
                "operation": operation_name,
                "workflow_id": target_reference,
                "retry_delay_seconds": delay,
                "job_id": job_id,
            },
        )
        return job_id


async def run_workflow_retry(operation_name: str, target_reference: str) -> Optional[dict]:
    """
    Execute one scheduled retry.

    WHAT: For activate_n8n_workflow, re-runs the gateway activation with a
    fresh client and session. No further retry is scheduled on failure.

    Returns:
        The operation result as a dict, or None for unknown operations
    """
    # Imported here: the gateway pulls in the DAO layer, which the
    # scheduler module must not require at import time.
    from app.db.session import AsyncSessionLocal
    from app.services.n8n_client import create_n8n_client
    from app.services.n8n_workflow_gateway import N8nWorkflowGateway

    if operation_name != ACTIVATE_N8N_WORKFLOW:
        logger.warning(
            "Ignoring retry for unknown operation",
            extra={"operation": operation_name, "workflow_id": target_reference},
        )
        return None

    try:
        client = create_n8n_client(
            base_url=settings.N8N_BASE_URL,
            api_key=settings.N8N_API_KEY,
            timeout=settings.N8N_TIMEOUT_SECONDS,
        )
    except Exception as e:
        logger.error(
            "Retry aborted: n8n client could not be created",
            extra={"operation": operation_name, "workflow_id": target_reference, "error": str(e)},
        )
        return {"success": False, "message": "Retry aborted", "error": str(e)}

    gateway = N8nWorkflowGateway(client=client, session_factory=AsyncSessionLocal)
    result = await gateway.activate(target_reference)

    log = logger.info if result.success else logger.error
    log(
        "Retry of n8n workflow activation finished",
        extra={
            "operation": operation_name,
            "workflow_id": target_reference,
            "success": result.success,
            "error": result.error,
        },
    )
    return result.to_dict()
