"""
Tests for AI models.

Covers:
- Provider resolution when a model is assigned
- Single running run per thread (partial unique constraint)
- Run and queue item transitions, including compare-and-swap saves
"""

import pytest
from django.db import IntegrityError, transaction
from django_fsm import ConcurrentTransition, TransitionNotAllowed

from ai.models import (
    AIQueueItem,
    AIRun,
    AIThread,
    ModelProvider,
    QueueItemStatus,
    RunStatus,
)
from ai.tests.factories import AIQueueItemFactory, AIRunFactory, AIThreadFactory


class TestModelProvider:
    @pytest.mark.parametrize(
        "model, expected",
        [
            ("gpt-4o", ModelProvider.OPENAI),
            ("o3-mini", ModelProvider.OPENAI),
            ("gemini-2.0-flash", ModelProvider.GOOGLE),
            ("gemini-1.5-pro", ModelProvider.GOOGLE),
        ],
    )
    def test_for_model(self, model, expected):
        assert ModelProvider.for_model(model) == expected


class TestAIThread:
    def test_provider_resolved_on_create(self, db):
        thread = AIThreadFactory(model="gemini-2.0-flash")

        thread.refresh_from_db()
        assert thread.provider == ModelProvider.GOOGLE

    def test_provider_follows_model_change(self, db):
        thread = AIThreadFactory(model="gpt-4o")

        thread.model = "gemini-2.0-flash"
        thread.save(update_fields=["model"])

        assert AIThread.objects.get(pk=thread.pk).provider == ModelProvider.GOOGLE

    def test_provider_kept_when_model_unchanged(self, db):
        thread = AIThreadFactory(model="gpt-4o")
        AIThread.objects.filter(pk=thread.pk).update(provider=ModelProvider.GOOGLE)
        thread = AIThread.objects.get(pk=thread.pk)

        thread.title = "Renamed"
        thread.save()

        assert AIThread.objects.get(pk=thread.pk).provider == ModelProvider.GOOGLE

    def test_is_archived(self, db):
        thread = AIThreadFactory()
        assert thread.is_archived is False

        thread.archived_at = thread.created_at
        assert thread.is_archived is True


class TestAIRunConstraint:
    def test_second_running_run_rejected(self, db):
        run = AIRunFactory()

        with pytest.raises(IntegrityError), transaction.atomic():
            AIRun.objects.create(thread=run.thread)

    def test_running_run_allowed_after_previous_finished(self, db):
        run = AIRunFactory()
        run.complete()
        run.save()

        second = AIRun.objects.create(thread=run.thread)

        assert second.status == RunStatus.RUNNING

    def test_runs_on_different_threads_independent(self, db):
        AIRunFactory()
        AIRunFactory()

        assert AIRun.objects.filter(status=RunStatus.RUNNING).count() == 2


class TestAIRunTransitions:
    def test_complete_sets_finished_at(self, db):
        run = AIRunFactory()

        run.complete()
        run.save()

        run.refresh_from_db()
        assert run.status == RunStatus.COMPLETED
        assert run.finished_at is not None
        assert run.error is None

    def test_fail_records_reason(self, db):
        run = AIRunFactory()

        run.fail("boom")
        run.save()

        run.refresh_from_db()
        assert run.status == RunStatus.FAILED
        assert run.error == "boom"
        assert run.finished_at is not None

    def test_terminal_state_is_final(self, db):
        run = AIRunFactory(status=RunStatus.FAILED)

        with pytest.raises(TransitionNotAllowed):
            run.complete()

    def test_stale_instance_cannot_overwrite(self, db):
        """A run finished elsewhere cannot be finished again from an old copy."""
        run = AIRunFactory()
        stale_copy = AIRun.objects.get(pk=run.pk)

        run.fail("reaped")
        run.save()

        stale_copy.complete()
        with pytest.raises(ConcurrentTransition), transaction.atomic():
            stale_copy.save()

        run.refresh_from_db()
        assert run.status == RunStatus.FAILED
        assert run.error == "reaped"


class TestAIQueueItem:
    def test_consume_once(self, db):
        item = AIQueueItemFactory()
        other_copy = AIQueueItem.objects.get(pk=item.pk)

        item.consume()
        item.save()

        other_copy.consume()
        with pytest.raises(ConcurrentTransition), transaction.atomic():
            other_copy.save()

        item.refresh_from_db()
        assert item.status == QueueItemStatus.CONSUMED
        assert item.consumed_at is not None

    def test_discarded_item_cannot_be_consumed(self, db):
        item = AIQueueItemFactory()
        item.discard()
        item.save()

        with pytest.raises(TransitionNotAllowed):
            item.consume()

    def test_fifo_ordering(self, db):
        thread = AIThreadFactory()
        first = AIQueueItemFactory(thread=thread)
        second = AIQueueItemFactory(thread=thread)

        assert list(AIQueueItem.objects.filter(thread=thread)) == [first, second]
