"""
Celery tasks for AI app.

This module defines background triggers for:
- Draining a thread's queue outside a user request
- Sweeping runs stuck in the running state

Generation itself never runs here by default: submissions and drains
generate inline in the request that triggered them. These tasks only
provide additional triggers.

Usage:
    from ai.tasks import drain_thread_queue

    drain_thread_queue.delay(str(thread.id))

    # reap_stale_runs is scheduled via celery-beat
    # (see migrations/0002_add_stale_run_sweep_schedule.py, disabled by default)
"""

from __future__ import annotations

import logging

from celery import shared_task

from ai.models import AIQueueItem, QueueItemStatus
from ai.services import RunOrchestrator, StaleRunReaper

logger = logging.getLogger(__name__)


@shared_task
def drain_thread_queue(thread_id: str) -> dict:
    """
    Process the next pending message of a thread.

    Idempotent: concurrent drains of the same thread claim each queue
    item at most once.

    Returns:
        Dict with the drain status and run id (if any)
    """
    result = RunOrchestrator.drain(thread_id)
    if not result.success:
        logger.info(
            f"Drain skipped: {result.error}",
            extra={"thread_id": thread_id, "error_code": result.error_code},
        )
        return {"status": "rejected", "error_code": result.error_code}

    outcome = result.data
    return {
        "status": str(outcome.status),
        "run_id": str(outcome.run_id) if outcome.run_id else None,
    }


@shared_task(bind=True)
def reap_stale_runs(self) -> dict:
    """
    Fail stale running runs and queue drains for their threads.

    Returns:
        Dict with:
        - reaped_count: Number of runs failed by this sweep
        - drains_queued: Number of drain tasks queued
    """
    logger.info("Starting stale run sweep")

    thread_ids = StaleRunReaper.sweep()

    drains_queued = 0
    for thread_id in thread_ids:
        if AIQueueItem.objects.filter(thread_id=thread_id, status=QueueItemStatus.PENDING).exists():
            drain_thread_queue.delay(str(thread_id))
            drains_queued += 1

    logger.info(
        f"Stale run sweep complete: reaped {len(thread_ids)} runs",
        extra={"reaped_count": len(thread_ids), "drains_queued": drains_queued},
    )
    return {"reaped_count": len(thread_ids), "drains_queued": drains_queued}
