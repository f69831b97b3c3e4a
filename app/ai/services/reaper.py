"""
Recovery of runs stuck in the running state.

A run whose request died (worker killed, timeout upstream of Django)
would block its thread forever. Two paths fail such runs:

- Lazy: the next submission to the thread checks the active run's age
  and fails it when it is older than the staleness threshold.
- Sweep (opt-in): the reap_stale_runs Celery task fails every stale run
  in batches, for threads that receive no new submission.

Both paths use the same compare-and-swap transition, so a run that
finishes while being reaped keeps its real outcome.
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

from django.conf import settings
from django.utils import timezone
from django_fsm import ConcurrentTransition, TransitionNotAllowed

from ai.constants import RUN_CONFIG
from ai.models import AIRun, RunStatus
from core.services import BaseService

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID


class StaleRunReaper(BaseService):
    """Detect and fail stuck runs."""

    @staticmethod
    def threshold() -> timedelta:
        return timedelta(
            seconds=getattr(
                settings,
                "AI_STALE_RUN_THRESHOLD_SECONDS",
                RUN_CONFIG.STALE_RUN_THRESHOLD_SECONDS,
            )
        )

    @classmethod
    def is_stale(cls, run: AIRun, now: datetime | None = None) -> bool:
        """True when a running run started longer ago than the threshold."""
        now = now or timezone.now()
        return run.is_running and run.started_at < now - cls.threshold()

    @classmethod
    def reap(cls, run: AIRun, reason: str = RUN_CONFIG.STALE_RUN_ERROR) -> bool:
        """
        Fail a running run.

        Returns:
            True if this call failed the run, False if it had already
            reached a terminal state (here or in another process)
        """
        try:
            with cls.atomic():
                run.fail(reason)
                run.save(update_fields=["status", "finished_at", "error", "updated_at"])
        except (ConcurrentTransition, TransitionNotAllowed):
            cls.get_logger().info(
                "Stale run already finished",
                extra={"run_id": str(run.id), "thread_id": str(run.thread_id)},
            )
            return False

        cls.get_logger().warning(
            "Failed stale run",
            extra={
                "run_id": str(run.id),
                "thread_id": str(run.thread_id),
                "started_at": run.started_at.isoformat(),
                "reason": reason,
            },
        )
        return True

    @classmethod
    def sweep(cls, now: datetime | None = None) -> list[UUID]:
        """
        Fail every stale running run, oldest first.

        Returns:
            Thread ids whose run was failed by this sweep
        """
        now = now or timezone.now()
        stale_runs = AIRun.objects.filter(
            status=RunStatus.RUNNING,
            started_at__lt=now - cls.threshold(),
        ).order_by("started_at")[: RUN_CONFIG.SWEEP_BATCH_SIZE]

        reaped_threads = []
        for run in stale_runs:
            if cls.reap(run, reason=RUN_CONFIG.SWEEP_STALE_RUN_ERROR):
                reaped_threads.append(run.thread_id)
        return reaped_threads
