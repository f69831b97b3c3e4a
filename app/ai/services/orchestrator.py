"""
Run/queue orchestration for AI threads.

RunOrchestrator serializes concurrent submissions to a thread:

    submit()                                  drain()
       |                                         |
    thread ok? --no--> rejected               running run? --yes--> queued
       |                                         |
    running run? --stale--> reap              oldest pending item? --no--> idle
       |  \\                                      |
       |   fresh --> enqueue --> queued       claim + message + run (one transaction)
       |                                         |   CAS lost --> idle
    insert run + user message                    |   run insert lost --> queued
       |   IntegrityError --> enqueue --> queued |
    generate inline --> started               generate inline --> processed

Coordination happens only through conditional writes:
- The partial unique constraint on AIRun(thread) WHERE status='running'
  makes the run insert the per-thread mutex.
- Queue claims and run transitions are compare-and-swap saves
  (ConcurrentTransitionMixin).

Generation runs synchronously inside the calling request. Any exception
while generating fails the run and appends an ``Error: ...`` system
message; callers only ever see an outcome.

Usage:
    from ai.services import RunOrchestrator

    result = RunOrchestrator.submit(thread.id, request.user, "Hello", SenderKind.OWNER)
    if result:
        outcome = result.data  # RunOutcome(status=STARTED, run_id=...)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, models, transaction
from django_fsm import ConcurrentTransition, TransitionNotAllowed

from ai.constants import RUN_CONFIG
from ai.models import AIQueueItem, AIRun, AIThread, QueueItemStatus, RunStatus, SenderKind
from ai.providers import get_provider
from core.exceptions import BaseApplicationError
from core.services import BaseService, ServiceResult

from .credentials import CredentialResolver
from .history import HistoryLoader
from .messages import MessageWriter
from .reaper import StaleRunReaper
from .stream import StreamSink

if TYPE_CHECKING:
    from uuid import UUID


class RunOutcomeStatus(models.TextChoices):
    STARTED = "started", "Started"
    QUEUED = "queued", "Queued"
    PROCESSED = "processed", "Processed"
    IDLE = "idle", "Idle"


@dataclass(frozen=True)
class RunOutcome:
    """
    Result of a submit or drain call.

    Attributes:
        status: What happened to the submission or queue
        run_id: Run driven by this call (STARTED, PROCESSED)
        run_status: Terminal status of that run
        queue_item_id: Queue item created by this call (QUEUED from submit)
    """

    status: RunOutcomeStatus
    run_id: UUID | None = None
    run_status: str | None = None
    queue_item_id: int | None = None


class RunOrchestrator(BaseService):
    """Single-flight run orchestration with a durable FIFO queue."""

    THREAD_NOT_FOUND = "THREAD_NOT_FOUND"
    THREAD_ARCHIVED = "THREAD_ARCHIVED"
    EMPTY_CONTENT = "EMPTY_CONTENT"
    CONTENT_TOO_LONG = "CONTENT_TOO_LONG"
    INVALID_SENDER_KIND = "INVALID_SENDER_KIND"

    SUBMITTER_KINDS = (SenderKind.OWNER, SenderKind.COLLABORATOR)

    # =========================================================================
    # Public operations
    # =========================================================================

    @classmethod
    def submit(
        cls,
        thread_id: UUID | str,
        user,
        content: str,
        sender_kind: str,
        api_key: str | None = None,
    ) -> ServiceResult[RunOutcome]:
        """
        Accept a user message for a thread.

        Starts a run and generates the reply inline when the thread is
        idle; otherwise queues the message.

        Args:
            thread_id: Target thread
            user: Submitting user (owner or authorized collaborator)
            content: Message text
            sender_kind: SenderKind.OWNER or SenderKind.COLLABORATOR
            api_key: Client-decrypted provider key, for client-encrypted keys

        Returns:
            ServiceResult with RunOutcome STARTED or QUEUED, or a failure
            (THREAD_NOT_FOUND, THREAD_ARCHIVED, EMPTY_CONTENT,
            CONTENT_TOO_LONG, INVALID_SENDER_KIND) with nothing written
        """
        thread, rejection = cls._get_open_thread(thread_id)
        if rejection is not None:
            return rejection

        if sender_kind not in cls.SUBMITTER_KINDS:
            return ServiceResult.failure(
                f"Invalid sender kind: {sender_kind}",
                error_code=cls.INVALID_SENDER_KIND,
            )
        if not content or not content.strip():
            return ServiceResult.failure("Message content is empty", error_code=cls.EMPTY_CONTENT)
        max_length = getattr(settings, "AI_MAX_CONTENT_LENGTH", RUN_CONFIG.MAX_CONTENT_LENGTH)
        if len(content) > max_length:
            return ServiceResult.failure(
                f"Message content exceeds {max_length} characters",
                error_code=cls.CONTENT_TOO_LONG,
            )

        active_run = cls._get_active_run(thread)
        if active_run is not None and StaleRunReaper.is_stale(active_run):
            StaleRunReaper.reap(active_run)
            active_run = None

        run = None
        if active_run is None:
            run = cls._start_run(thread, user, content, sender_kind)

        if run is None:
            item = cls._enqueue(thread, user, content, sender_kind)
            return ServiceResult.success(
                RunOutcome(status=RunOutcomeStatus.QUEUED, queue_item_id=item.pk)
            )

        run_status = cls._generate(run, thread, api_key)
        return ServiceResult.success(
            RunOutcome(status=RunOutcomeStatus.STARTED, run_id=run.id, run_status=run_status)
        )

    @classmethod
    def drain(cls, thread_id: UUID | str, api_key: str | None = None) -> ServiceResult[RunOutcome]:
        """
        Process the oldest pending queue item of a thread.

        Safe to call from any number of triggers at once: exactly one
        caller claims a given item, the others get IDLE.

        Returns:
            ServiceResult with RunOutcome PROCESSED (a run was driven),
            IDLE (nothing to claim, or the claim was lost) or QUEUED
            (a run is active), or a thread failure
        """
        thread, rejection = cls._get_open_thread(thread_id)
        if rejection is not None:
            return rejection

        if cls._get_active_run(thread) is not None:
            return ServiceResult.success(RunOutcome(status=RunOutcomeStatus.QUEUED))

        item = (
            AIQueueItem.objects.filter(thread=thread, status=QueueItemStatus.PENDING)
            .order_by("created_at", "id")
            .first()
        )
        if item is None:
            return ServiceResult.success(RunOutcome(status=RunOutcomeStatus.IDLE))

        run, lost_status = cls._claim_and_start(thread, item)
        if run is None:
            return ServiceResult.success(RunOutcome(status=lost_status))

        run_status = cls._generate(run, thread, api_key)
        return ServiceResult.success(
            RunOutcome(status=RunOutcomeStatus.PROCESSED, run_id=run.id, run_status=run_status)
        )

    @classmethod
    def discard_pending(cls, thread_id: UUID | str) -> ServiceResult[int]:
        """
        Discard every pending queue item of a thread.

        Items claimed by a concurrent drain are left alone.

        Returns:
            ServiceResult with the number of discarded items
        """
        thread = cls._find_thread(thread_id)
        if thread is None:
            return ServiceResult.failure("Thread not found", error_code=cls.THREAD_NOT_FOUND)

        discarded = 0
        pending = AIQueueItem.objects.filter(thread=thread, status=QueueItemStatus.PENDING)
        for item in pending.order_by("created_at", "id"):
            try:
                with cls.atomic():
                    item.discard()
                    item.save(update_fields=["status", "discarded_at", "updated_at"])
            except (ConcurrentTransition, TransitionNotAllowed):
                continue
            discarded += 1

        cls.get_logger().info(
            "Discarded pending queue items",
            extra={"thread_id": str(thread.id), "discarded": discarded},
        )
        return ServiceResult.success(discarded)

    # =========================================================================
    # Run lifecycle
    # =========================================================================

    @staticmethod
    def _find_thread(thread_id) -> AIThread | None:
        try:
            return AIThread.objects.select_related("owner").filter(pk=thread_id).first()
        except (ValueError, DjangoValidationError):
            return None

    @classmethod
    def _get_open_thread(cls, thread_id) -> tuple[AIThread | None, ServiceResult | None]:
        thread = cls._find_thread(thread_id)
        if thread is None:
            return None, ServiceResult.failure("Thread not found", error_code=cls.THREAD_NOT_FOUND)
        if thread.is_archived:
            return None, ServiceResult.failure("Thread is archived", error_code=cls.THREAD_ARCHIVED)
        return thread, None

    @staticmethod
    def _get_active_run(thread: AIThread) -> AIRun | None:
        return AIRun.objects.filter(thread=thread, status=RunStatus.RUNNING).first()

    @classmethod
    def _start_run(cls, thread: AIThread, user, content: str, sender_kind: str) -> AIRun | None:
        """
        Insert a running run and the user message.

        Returns:
            The new run, or None when another request holds the thread
        """
        try:
            with cls.atomic():
                run = AIRun.objects.create(thread=thread)
                MessageWriter.append_user(thread, user, sender_kind, content)
        except IntegrityError:
            cls.get_logger().info(
                "Run insert lost to a concurrent request",
                extra={"thread_id": str(thread.id)},
            )
            return None

        cls.get_logger().info(
            "Run started",
            extra={"thread_id": str(thread.id), "run_id": str(run.id)},
        )
        return run

    @classmethod
    def _enqueue(cls, thread: AIThread, user, content: str, sender_kind: str) -> AIQueueItem:
        item = AIQueueItem.objects.create(
            thread=thread,
            user=user,
            sender_kind=sender_kind,
            content=content,
        )
        cls.get_logger().info(
            "Submission queued",
            extra={"thread_id": str(thread.id), "queue_item_id": item.pk},
        )
        return item

    @classmethod
    def _claim_and_start(
        cls, thread: AIThread, item: AIQueueItem
    ) -> tuple[AIRun | None, RunOutcomeStatus | None]:
        """
        Claim a queue item, materialize its message and start a run.

        All three writes share one transaction: if the run insert loses
        to a concurrent submission, the claim is rolled back and the item
        stays pending.

        Returns:
            (run, None) on success, (None, IDLE) if another drain claimed
            the item, (None, QUEUED) if a run started meanwhile
        """
        try:
            with cls.atomic():
                item.consume()
                item.save(update_fields=["status", "consumed_at", "updated_at"])
                MessageWriter.append_user(thread, item.user, item.sender_kind, item.content)
                run = AIRun.objects.create(thread=thread)
        except (ConcurrentTransition, TransitionNotAllowed):
            cls.get_logger().info(
                "Queue item claimed by another drain",
                extra={"thread_id": str(thread.id), "queue_item_id": item.pk},
            )
            return None, RunOutcomeStatus.IDLE
        except IntegrityError:
            cls.get_logger().info(
                "Run started concurrently, leaving queue item pending",
                extra={"thread_id": str(thread.id), "queue_item_id": item.pk},
            )
            return None, RunOutcomeStatus.QUEUED

        cls.get_logger().info(
            "Queue item claimed",
            extra={"thread_id": str(thread.id), "queue_item_id": item.pk, "run_id": str(run.id)},
        )
        return run, None

    # =========================================================================
    # Generation
    # =========================================================================

    @classmethod
    def _generate(cls, run: AIRun, thread: AIThread, api_key: str | None) -> str:
        """
        Drive a run to a terminal state.

        Returns:
            The run status after this call
        """
        try:
            provider = get_provider(thread.provider)
            resolved_key = CredentialResolver.resolve(
                thread.owner, thread.provider, client_api_key=api_key
            )
            history = HistoryLoader.load(thread, attribute_speakers=provider.attributes_speakers)
            text = provider.generate(
                messages=history,
                model=thread.model,
                system_prompt=thread.system_prompt,
                api_key=resolved_key,
                on_delta=StreamSink.writer(run),
            )
            cls._complete_run(run, thread, text)
        except Exception as e:
            cls._fail_run(run, thread, e)

        cls._schedule_drain(thread)
        return run.status

    @classmethod
    def _complete_run(cls, run: AIRun, thread: AIThread, text: str) -> None:
        try:
            with cls.atomic():
                MessageWriter.append_assistant(thread, text)
                run.complete()
                run.save(update_fields=["status", "finished_at", "updated_at"])
        except (ConcurrentTransition, TransitionNotAllowed):
            # Reaped while generating; the stale failure stands
            run.refresh_from_db(fields=["status", "finished_at", "error"])
            cls.get_logger().warning(
                "Run superseded before completion, discarding output",
                extra={"thread_id": str(thread.id), "run_id": str(run.id)},
            )
            return

        cls.get_logger().info(
            "Run completed",
            extra={"thread_id": str(thread.id), "run_id": str(run.id), "length": len(text)},
        )

    @classmethod
    def _fail_run(cls, run: AIRun, thread: AIThread, exc: Exception) -> None:
        reason = cls.error_text(exc)
        log_extra = {
            "thread_id": str(thread.id),
            "run_id": str(run.id),
            "provider": thread.provider,
            "error": reason,
        }
        if isinstance(exc, BaseApplicationError):
            cls.get_logger().warning(f"Run failed: {exc}", extra=log_extra)
        else:
            cls.get_logger().exception("Run failed with unexpected error", extra=log_extra)

        try:
            with cls.atomic():
                run.fail(reason)
                run.save(update_fields=["status", "finished_at", "error", "updated_at"])
                MessageWriter.append_error(thread, reason)
        except (ConcurrentTransition, TransitionNotAllowed):
            run.refresh_from_db(fields=["status", "finished_at", "error"])
            cls.get_logger().warning(
                "Run already finished, failure not recorded",
                extra=log_extra,
            )

    @staticmethod
    def error_text(exc: Exception) -> str:
        """Human-readable reason stored on the run and shown in the transcript."""
        if isinstance(exc, BaseApplicationError):
            return exc.message
        return str(exc) or exc.__class__.__name__

    @classmethod
    def _schedule_drain(cls, thread: AIThread) -> None:
        """Queue a drain for the thread after commit, when auto-drain is enabled."""
        if not getattr(settings, "AI_AUTO_DRAIN_ON_COMPLETE", False):
            return
        if not AIQueueItem.objects.filter(thread=thread, status=QueueItemStatus.PENDING).exists():
            return

        from ai.tasks import drain_thread_queue

        thread_id = str(thread.id)
        transaction.on_commit(lambda: drain_thread_queue.delay(thread_id))
