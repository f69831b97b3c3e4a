"""
Tests for AI API views.

Tests follow pattern: test_<scenario>_<expected_outcome>. They check
status codes, response bodies and database state; providers are
replaced by FakeProvider.
"""

import pytest
from django.utils import timezone
from rest_framework import status

from ai.models import (
    AIMessage,
    AIQueueItem,
    AIRun,
    ModelProvider,
    QueueItemStatus,
    RunStatus,
    SenderKind,
    UserLLMKey,
)
from ai.services import CredentialResolver, StreamSink
from ai.tests.factories import AIQueueItemFactory, AIRunFactory

# =============================================================================
# URL Constants
# =============================================================================


THREADS_URL = "/api/v1/ai/threads/"
KEYS_URL = "/api/v1/ai/keys/"


def messages_url(thread_id):
    return f"{THREADS_URL}{thread_id}/messages/"


def drain_url(thread_id):
    return f"{THREADS_URL}{thread_id}/drain/"


def discard_url(thread_id):
    return f"{THREADS_URL}{thread_id}/queue/discard/"


def stream_url(thread_id, run_id):
    return f"{THREADS_URL}{thread_id}/runs/{run_id}/stream/"


# =============================================================================
# Submit
# =============================================================================


class TestSubmitMessage:
    def test_owner_submission_runs_inline(self, thread, owner_client, fake_provider):
        response = owner_client.post(messages_url(thread.id), {"content": "Hello"}, format="json")

        assert response.status_code == status.HTTP_200_OK
        assert response.data["status"] == "started"
        assert response.data["run_status"] == RunStatus.COMPLETED
        assert response.data["queue_item_id"] is None
        run = AIRun.objects.get(pk=response.data["run_id"])
        assert run.thread_id == thread.id
        assert AIMessage.objects.filter(thread=thread).count() == 2

    def test_collaborator_submission_attributed(self, thread, collaborator_client, collaborator, fake_provider):
        response = collaborator_client.post(messages_url(thread.id), {"content": "Hi"}, format="json")

        assert response.status_code == status.HTTP_200_OK
        message = AIMessage.objects.get(thread=thread, sender=collaborator)
        assert message.sender_kind == SenderKind.COLLABORATOR

    def test_busy_thread_returns_202(self, thread, collaborator_client, fake_provider):
        AIRunFactory(thread=thread)

        response = collaborator_client.post(messages_url(thread.id), {"content": "Wait"}, format="json")

        assert response.status_code == status.HTTP_202_ACCEPTED
        assert response.data["status"] == "queued"
        item = AIQueueItem.objects.get(pk=response.data["queue_item_id"])
        assert item.status == QueueItemStatus.PENDING

    def test_failed_generation_still_200(self, thread, owner_client, fake_provider):
        fake_provider.error = RuntimeError("upstream down")

        response = owner_client.post(messages_url(thread.id), {"content": "Hello"}, format="json")

        assert response.status_code == status.HTTP_200_OK
        assert response.data["run_status"] == RunStatus.FAILED

    def test_client_key_forwarded(self, thread, owner, owner_client, fake_provider):
        UserLLMKey.objects.filter(user=owner).update(encrypted_key="v2:client-blob")

        response = owner_client.post(
            messages_url(thread.id),
            {"content": "Hello", "api_key": "sk-unlocked"},
            format="json",
        )

        assert response.data["run_status"] == RunStatus.COMPLETED
        assert fake_provider.calls[0]["api_key"] == "sk-unlocked"

    def test_viewer_forbidden(self, thread, viewer_client, fake_provider):
        response = viewer_client.post(messages_url(thread.id), {"content": "Hi"}, format="json")

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert not AIMessage.objects.filter(thread=thread).exists()

    def test_outsider_gets_404(self, thread, outsider_client, fake_provider):
        response = outsider_client.post(messages_url(thread.id), {"content": "Hi"}, format="json")

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_unauthenticated(self, thread, api_client):
        response = api_client.post(messages_url(thread.id), {"content": "Hi"}, format="json")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_archived_thread_conflict(self, thread, owner_client, fake_provider):
        thread.archived_at = timezone.now()
        thread.save()

        response = owner_client.post(messages_url(thread.id), {"content": "Hi"}, format="json")

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data["error_code"] == "THREAD_ARCHIVED"

    @pytest.mark.parametrize("content", ["", "   "])
    def test_blank_content_rejected(self, thread, owner_client, fake_provider, content):
        response = owner_client.post(messages_url(thread.id), {"content": content}, format="json")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "content" in response.data
        assert fake_provider.calls == []

    def test_oversized_content_rejected(self, thread, owner_client, fake_provider):
        response = owner_client.post(
            messages_url(thread.id), {"content": "x" * 32001}, format="json"
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert not AIMessage.objects.filter(thread=thread).exists()


# =============================================================================
# Drain and discard
# =============================================================================


class TestDrainQueue:
    def test_drain_processes_next_item(self, thread, owner, collaborator_client, fake_provider):
        AIQueueItemFactory(thread=thread, user=owner, content="queued")

        response = collaborator_client.post(drain_url(thread.id), {}, format="json")

        assert response.status_code == status.HTTP_200_OK
        assert response.data["status"] == "processed"
        assert response.data["run_status"] == RunStatus.COMPLETED

    def test_drain_idle(self, thread, owner_client, fake_provider):
        response = owner_client.post(drain_url(thread.id), {}, format="json")

        assert response.status_code == status.HTTP_200_OK
        assert response.data["status"] == "idle"

    def test_viewer_cannot_drain(self, thread, viewer_client, fake_provider):
        response = viewer_client.post(drain_url(thread.id), {}, format="json")

        assert response.status_code == status.HTTP_403_FORBIDDEN


class TestDiscardQueue:
    def test_owner_discards_pending(self, thread, owner, owner_client):
        AIQueueItemFactory(thread=thread, user=owner)
        AIQueueItemFactory(thread=thread, user=owner)

        response = owner_client.post(discard_url(thread.id))

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {"discarded": 2}
        assert not AIQueueItem.objects.filter(thread=thread, status=QueueItemStatus.PENDING).exists()

    def test_collaborator_forbidden(self, thread, owner, collaborator_client):
        AIQueueItemFactory(thread=thread, user=owner)

        response = collaborator_client.post(discard_url(thread.id))

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert AIQueueItem.objects.filter(thread=thread, status=QueueItemStatus.PENDING).count() == 1


# =============================================================================
# Stream replay
# =============================================================================


class TestRunStream:
    @pytest.fixture
    def streamed_run(self, thread):
        run = AIRunFactory(thread=thread)
        write = StreamSink.writer(run)
        for fragment in ["Hel", "lo", "!"]:
            write(fragment)
        return run

    def test_returns_events_and_text(self, thread, streamed_run, viewer_client):
        response = viewer_client.get(stream_url(thread.id, streamed_run.id))

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["run"]["status"] == RunStatus.RUNNING
        assert [e["seq"] for e in body["events"]] == [0, 1, 2]
        assert body["text"] == "Hello!"

    def test_after_param(self, thread, streamed_run, owner_client):
        response = owner_client.get(stream_url(thread.id, streamed_run.id), {"after": 0})

        assert response.json()["text"] == "lo!"

    def test_invalid_after(self, thread, streamed_run, owner_client):
        response = owner_client.get(stream_url(thread.id, streamed_run.id), {"after": "abc"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "INVALID_PARAMETER"

    def test_run_of_other_thread_404(self, thread, owner_client):
        foreign_run = AIRunFactory()

        response = owner_client.get(stream_url(thread.id, foreign_run.id))

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_outsider_404(self, thread, streamed_run, outsider_client):
        response = outsider_client.get(stream_url(thread.id, streamed_run.id))

        assert response.status_code == status.HTTP_404_NOT_FOUND


# =============================================================================
# Keys
# =============================================================================


class TestStoreKey:
    def test_stores_plaintext_key_encrypted(self, owner, owner_client):
        response = owner_client.put(
            KEYS_URL,
            {"provider": "google", "api_key": "gm-secret-2468"},
            format="json",
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {"ok": True, "provider": "google", "last4": "2468"}
        assert "api_key" not in response.data
        record = UserLLMKey.objects.get(user=owner, provider=ModelProvider.GOOGLE)
        assert record.encrypted_key.startswith("v1:")
        assert CredentialResolver.resolve(owner, ModelProvider.GOOGLE) == "gm-secret-2468"

    def test_stores_client_encrypted_key(self, owner, owner_client):
        response = owner_client.put(
            KEYS_URL,
            {"provider": "openai", "api_key": "v2:blob", "last4": "abcd"},
            format="json",
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data["last4"] == "abcd"
        assert UserLLMKey.objects.get(user=owner, provider=ModelProvider.OPENAI).encrypted_key == "v2:blob"

    def test_missing_server_secret(self, owner_client, settings):
        settings.AI_ENCRYPTION_SECRET = ""

        response = owner_client.put(
            KEYS_URL,
            {"provider": "openai", "api_key": "sk-plain"},
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "ENCRYPTION_SECRET_MISSING"

    def test_unknown_provider(self, owner_client):
        response = owner_client.put(
            KEYS_URL,
            {"provider": "anthropic", "api_key": "sk-plain"},
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "provider" in response.data

    def test_unauthenticated(self, api_client, db):
        response = api_client.put(KEYS_URL, {"provider": "openai", "api_key": "x"}, format="json")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
