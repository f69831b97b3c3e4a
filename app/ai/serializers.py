"""
Serializers for AI thread API.

Serializer Hierarchy:
    SubmitMessageSerializer: Message submission payload
    DrainQueueSerializer: Drain trigger payload
    RunOutcomeSerializer: Result of submit/drain
    StoreKeySerializer: Provider API key payload
    RunSerializer / StreamEventSerializer: Stream replay

Design Decisions:
    - Read and write serializers are separate
    - Plaintext API keys are write-only and never echoed back
"""

from __future__ import annotations

from django.conf import settings
from rest_framework import serializers

from ai.constants import RUN_CONFIG
from ai.models import AIRun, AIStreamEvent, ModelProvider
from ai.services.orchestrator import RunOutcomeStatus


class SubmitMessageSerializer(serializers.Serializer):
    """Payload for submitting a message to a thread."""

    content = serializers.CharField(
        trim_whitespace=False,
        max_length=getattr(settings, "AI_MAX_CONTENT_LENGTH", RUN_CONFIG.MAX_CONTENT_LENGTH),
    )
    api_key = serializers.CharField(
        required=False,
        allow_blank=True,
        write_only=True,
        help_text="Client-decrypted provider key, required for client-encrypted keys",
    )

    def validate_content(self, value: str) -> str:
        if not value.strip():
            raise serializers.ValidationError("Message content cannot be empty.")
        return value


class DrainQueueSerializer(serializers.Serializer):
    """Payload for triggering a queue drain."""

    api_key = serializers.CharField(
        required=False,
        allow_blank=True,
        write_only=True,
    )


class RunOutcomeSerializer(serializers.Serializer):
    """Outcome of a submit or drain call."""

    status = serializers.ChoiceField(choices=RunOutcomeStatus.choices)
    run_id = serializers.UUIDField(allow_null=True)
    run_status = serializers.CharField(allow_null=True)
    queue_item_id = serializers.IntegerField(allow_null=True)


class StoreKeySerializer(serializers.Serializer):
    """Payload for saving a provider API key."""

    provider = serializers.ChoiceField(choices=ModelProvider.choices)
    api_key = serializers.CharField(write_only=True)
    last4 = serializers.CharField(
        required=False,
        allow_blank=True,
        max_length=8,
        help_text="Last characters of a client-encrypted key, for display",
    )


class RunSerializer(serializers.ModelSerializer):
    class Meta:
        model = AIRun
        fields = ["id", "thread", "status", "started_at", "finished_at", "error"]
        read_only_fields = fields


class StreamEventSerializer(serializers.ModelSerializer):
    class Meta:
        model = AIStreamEvent
        fields = ["seq", "delta", "created_at"]
        read_only_fields = fields
