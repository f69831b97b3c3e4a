"""
AI models for thread orchestration.

This module defines models for:
- AIThread: A conversation with one model, owned by one user
- AIThreadMember: Collaborators allowed to view or intervene in a thread
- AIRun: One generation attempt (at most one running per thread)
- AIQueueItem: Submissions waiting for the thread to become idle
- AIMessage: Append-only thread transcript
- AIStreamEvent: Ordered partial output of a run
- UserLLMKey: Per-user provider API keys (encrypted at rest)

Related files:
    - services/orchestrator.py: RunOrchestrator (submit/drain)
    - services/reaper.py: StaleRunReaper
    - providers/: Provider adapters

Model Relationships:
    User (1) ---> (*) AIThread (owner)
    AIThread (1) ---> (*) AIThreadMember
    AIThread (1) ---> (*) AIRun ---> (*) AIStreamEvent
    AIThread (1) ---> (*) AIQueueItem
    AIThread (1) ---> (*) AIMessage
    User (1) ---> (*) UserLLMKey (one per provider)

Concurrency:
    Single-flight runs are enforced by a partial unique constraint on
    AIRun(thread) WHERE status='running'. Status transitions on AIRun and
    AIQueueItem are saved with ConcurrentTransitionMixin, which issues
    UPDATE ... WHERE status=<loaded status> and raises ConcurrentTransition
    when another process changed the row first.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone
from django_fsm import ConcurrentTransitionMixin, FSMField, transition

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


# =============================================================================
# Choices
# =============================================================================


class ModelProvider(models.TextChoices):
    """
    Upstream provider serving a thread's model.

    Resolved from the model identifier when the model is assigned to a
    thread, then stored with it.
    """

    OPENAI = "openai", "OpenAI"
    GOOGLE = "google", "Google (Gemini)"

    @classmethod
    def for_model(cls, model: str) -> ModelProvider:
        """
        Resolve the provider for a model identifier.

        Gemini models are served by Google; every other identifier is
        sent to the OpenAI-compatible chat completions endpoint.
        """
        if model.startswith("gemini"):
            return cls.GOOGLE
        return cls.OPENAI


class MemberPermission(models.TextChoices):
    """Collaborator permission on a thread."""

    VIEW = "VIEW", "View"
    INTERVENE = "INTERVENE", "Intervene"


class MessageRole(models.TextChoices):
    """Role of a message in the provider transcript."""

    USER = "user", "User"
    ASSISTANT = "assistant", "Assistant"
    SYSTEM = "system", "System"


class SenderKind(models.TextChoices):
    """
    Who produced a message.

    Queue items only ever carry OWNER or COLLABORATOR.
    """

    OWNER = "owner", "Owner"
    COLLABORATOR = "collaborator", "Collaborator"
    ASSISTANT = "assistant", "Assistant"
    SYSTEM = "system", "System"


class RunStatus(models.TextChoices):
    """
    Run lifecycle.

    Flow:
        RUNNING -> COMPLETED
        RUNNING -> FAILED

    Terminal states are immutable.
    """

    RUNNING = "running", "Running"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"


class QueueItemStatus(models.TextChoices):
    """
    Queue item lifecycle.

    Flow:
        PENDING -> CONSUMED (claimed by a drain)
        PENDING -> DISCARDED (cleared by the owner)
    """

    PENDING = "pending", "Pending"
    CONSUMED = "consumed", "Consumed"
    DISCARDED = "discarded", "Discarded"


# =============================================================================
# Threads
# =============================================================================


class AIThread(UUIDPrimaryKeyMixin, BaseModel):
    """
    A conversation between users and one AI model.

    Threads are created, renamed and archived by the thread CRUD layer;
    the orchestration services only read them.

    Fields:
        owner: User whose API key pays for generations
        title: Display title
        model: Provider model identifier (e.g. gpt-4o, gemini-2.0-flash)
        provider: Provider resolved from the model when it was assigned
        system_prompt: Optional custom instructions
        source_room_id: Chat room this thread reads context from, if any
        archived_at: Set when the thread is archived (read only afterwards)
    """

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="ai_threads",
        help_text="User who owns this thread",
    )
    title = models.CharField(
        max_length=200,
        default="New Chat",
        help_text="Thread display title",
    )
    model = models.CharField(
        max_length=100,
        help_text="Provider model identifier",
    )
    provider = models.CharField(
        max_length=20,
        choices=ModelProvider.choices,
        help_text="Provider resolved from the model identifier",
    )
    system_prompt = models.TextField(
        null=True,
        blank=True,
        help_text="Custom system prompt prepended to every generation",
    )
    source_room_id = models.UUIDField(
        null=True,
        blank=True,
        help_text="Chat room bound to this thread for context injection",
    )
    archived_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the thread was archived",
    )

    class Meta:
        db_table = "ai_thread"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["owner", "-created_at"], name="ai_thread_owner_idx"),
        ]

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._loaded_model = self.model

    def __str__(self) -> str:
        return f"AIThread({self.id}, {self.model})"

    def save(self, *args, **kwargs):
        """Resolve the provider whenever a new model is assigned."""
        if not self.provider or self.model != self._loaded_model:
            self.provider = ModelProvider.for_model(self.model)
            update_fields = kwargs.get("update_fields")
            if update_fields is not None and "model" in update_fields:
                kwargs["update_fields"] = {*update_fields, "provider"}
        super().save(*args, **kwargs)
        self._loaded_model = self.model

    @property
    def is_archived(self) -> bool:
        return self.archived_at is not None


class AIThreadMember(BaseModel):
    """
    A collaborator on a thread.

    VIEW members can read the transcript; INTERVENE members can also
    submit messages, which are attributed as collaborator turns.
    """

    thread = models.ForeignKey(
        AIThread,
        on_delete=models.CASCADE,
        related_name="members",
        help_text="Thread shared with the user",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="ai_thread_memberships",
        help_text="Collaborating user",
    )
    permission = models.CharField(
        max_length=20,
        choices=MemberPermission.choices,
        default=MemberPermission.VIEW,
        help_text="What the collaborator may do in the thread",
    )

    class Meta:
        db_table = "ai_thread_member"
        constraints = [
            models.UniqueConstraint(
                fields=["thread", "user"],
                name="unique_ai_thread_member",
            ),
        ]

    def __str__(self) -> str:
        return f"AIThreadMember({self.thread_id}, {self.user_id}, {self.permission})"

    @property
    def can_intervene(self) -> bool:
        return self.permission == MemberPermission.INTERVENE


# =============================================================================
# Runs
# =============================================================================


class AIRun(ConcurrentTransitionMixin, UUIDPrimaryKeyMixin, BaseModel):
    """
    One generation attempt for a thread.

    Fields:
        thread: Thread being answered
        status: RUNNING, COMPLETED or FAILED (managed by FSM)
        started_at: When the run was created (staleness is measured from here)
        finished_at: When the run reached a terminal state
        error: Failure reason for FAILED runs

    Constraints:
        - UniqueConstraint(thread) WHERE status='running': the insert of a
          running row is the per-thread mutex. A second insert raises
          IntegrityError and the caller queues its submission instead.
    """

    thread = models.ForeignKey(
        AIThread,
        on_delete=models.PROTECT,
        related_name="runs",
        help_text="Thread this run generates a reply for",
    )
    status = FSMField(
        default=RunStatus.RUNNING,
        choices=RunStatus.choices,
        db_index=True,
        help_text="Current run status (managed by FSM)",
    )
    started_at = models.DateTimeField(
        default=timezone.now,
        db_index=True,
        help_text="When the run started",
    )
    finished_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the run completed or failed",
    )
    error = models.TextField(
        null=True,
        blank=True,
        help_text="Failure reason",
    )

    class Meta:
        db_table = "ai_run"
        ordering = ["-started_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["thread"],
                condition=Q(status=RunStatus.RUNNING),
                name="ai_run_single_running_per_thread",
            ),
        ]
        indexes = [
            models.Index(fields=["thread", "status"], name="ai_run_thread_status_idx"),
        ]

    def __str__(self) -> str:
        return f"AIRun({self.id}, {self.status})"

    @property
    def is_running(self) -> bool:
        return self.status == RunStatus.RUNNING

    @transition(field=status, source=RunStatus.RUNNING, target=RunStatus.COMPLETED)
    def complete(self):
        """
        Mark the run as completed.

        Transition: RUNNING -> COMPLETED
        """
        self.finished_at = timezone.now()

    @transition(field=status, source=RunStatus.RUNNING, target=RunStatus.FAILED)
    def fail(self, reason: str):
        """
        Mark the run as failed.

        Transition: RUNNING -> FAILED

        Args:
            reason: Error text shown to the thread participants
        """
        self.finished_at = timezone.now()
        self.error = reason


# =============================================================================
# Queue
# =============================================================================


class AIQueueItem(ConcurrentTransitionMixin, BaseModel):
    """
    A submission that arrived while the thread had a running run.

    Queue items are not part of the transcript: the AIMessage is only
    written when a drain claims the item. Items are drained FIFO by
    (created_at, id).
    """

    thread = models.ForeignKey(
        AIThread,
        on_delete=models.CASCADE,
        related_name="queue_items",
        help_text="Thread the submission targets",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="ai_queue_items",
        help_text="User who submitted the message",
    )
    sender_kind = models.CharField(
        max_length=20,
        choices=SenderKind.choices,
        help_text="Owner or collaborator submission",
    )
    content = models.TextField(
        help_text="Submitted message text",
    )
    status = FSMField(
        default=QueueItemStatus.PENDING,
        choices=QueueItemStatus.choices,
        db_index=True,
        help_text="Current queue item status (managed by FSM)",
    )
    consumed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When a drain claimed the item",
    )
    discarded_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the item was discarded",
    )

    class Meta:
        db_table = "ai_queue_item"
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(
                fields=["thread", "created_at"],
                name="ai_queue_pending_idx",
                condition=Q(status=QueueItemStatus.PENDING),
            ),
        ]

    def __str__(self) -> str:
        return f"AIQueueItem({self.pk}, {self.status})"

    @transition(field=status, source=QueueItemStatus.PENDING, target=QueueItemStatus.CONSUMED)
    def consume(self):
        """
        Claim the item for processing.

        Transition: PENDING -> CONSUMED
        """
        self.consumed_at = timezone.now()

    @transition(field=status, source=QueueItemStatus.PENDING, target=QueueItemStatus.DISCARDED)
    def discard(self):
        """
        Drop the item without processing it.

        Transition: PENDING -> DISCARDED
        """
        self.discarded_at = timezone.now()


# =============================================================================
# Transcript
# =============================================================================


class AIMessage(BaseModel):
    """
    One entry of a thread transcript.

    Append-only. System-role messages carry either chat-room context
    (content starting with the context prefix) or an error produced by a
    failed run (``Error: <reason>``).
    """

    thread = models.ForeignKey(
        AIThread,
        on_delete=models.CASCADE,
        related_name="messages",
        help_text="Thread this message belongs to",
    )
    role = models.CharField(
        max_length=20,
        choices=MessageRole.choices,
        help_text="Transcript role",
    )
    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="ai_messages",
        help_text="User who wrote the message (null for assistant/system)",
    )
    sender_kind = models.CharField(
        max_length=20,
        choices=SenderKind.choices,
        help_text="Who produced the message",
    )
    content = models.TextField(
        help_text="Message text",
    )

    class Meta:
        db_table = "ai_message"
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["thread", "created_at"], name="ai_message_thread_idx"),
        ]

    def __str__(self) -> str:
        return f"AIMessage({self.pk}, {self.role})"


class AIStreamEvent(BaseModel):
    """
    A fragment of partial output emitted while a run streams.

    Observers concatenate a run's deltas in seq order; the final
    assistant message remains authoritative.
    """

    thread = models.ForeignKey(
        AIThread,
        on_delete=models.CASCADE,
        related_name="stream_events",
        help_text="Thread the run belongs to",
    )
    run = models.ForeignKey(
        AIRun,
        on_delete=models.CASCADE,
        related_name="stream_events",
        help_text="Run that produced the fragment",
    )
    seq = models.PositiveIntegerField(
        help_text="Position of the fragment within the run, starting at 0",
    )
    delta = models.TextField(
        help_text="Text fragment",
    )

    class Meta:
        db_table = "ai_stream_event"
        ordering = ["seq"]
        constraints = [
            models.UniqueConstraint(
                fields=["run", "seq"],
                name="unique_ai_stream_event_seq",
            ),
        ]

    def __str__(self) -> str:
        return f"AIStreamEvent({self.run_id}, {self.seq})"


# =============================================================================
# Credentials
# =============================================================================


class UserLLMKey(BaseModel):
    """
    A user's API key for one provider.

    encrypted_key holds a ``v1:`` server-encrypted payload, a ``v2:``
    client-encrypted payload, or (legacy rows) the plaintext key.
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="llm_keys",
        help_text="Key owner",
    )
    provider = models.CharField(
        max_length=20,
        choices=ModelProvider.choices,
        help_text="Provider the key authenticates against",
    )
    encrypted_key = models.TextField(
        help_text="Encrypted API key payload",
    )
    key_last4 = models.CharField(
        max_length=8,
        help_text="Last characters of the key, for display",
    )

    class Meta:
        db_table = "ai_user_llm_key"
        constraints = [
            models.UniqueConstraint(
                fields=["user", "provider"],
                name="unique_user_llm_key_provider",
            ),
        ]

    def __str__(self) -> str:
        return f"UserLLMKey({self.user_id}, {self.provider}, ...{self.key_last4})"
