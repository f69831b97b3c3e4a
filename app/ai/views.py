"""
API views for AI threads.

URL Structure:
    /api/v1/ai/threads/{id}/messages/                 POST
    /api/v1/ai/threads/{id}/drain/                    POST
    /api/v1/ai/threads/{id}/queue/discard/            POST
    /api/v1/ai/threads/{id}/runs/{run_id}/stream/     GET
    /api/v1/ai/keys/                                  PUT

Design Decisions:
    - Generation runs inside the submit/drain request; the response is
      returned once the run has completed or failed
    - Queued submissions answer 202, everything else that was accepted 200
    - Threads the user cannot see answer 404
    - All operations use the service layer for business logic
"""

from __future__ import annotations

from django.shortcuts import get_object_or_404
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from ai.exceptions import CredentialError
from ai.models import AIRun
from ai.permissions import (
    CanInterveneInThread,
    IsThreadOwner,
    IsThreadParticipant,
    accessible_threads,
    sender_kind_for,
)
from ai.serializers import (
    DrainQueueSerializer,
    RunOutcomeSerializer,
    RunSerializer,
    StoreKeySerializer,
    StreamEventSerializer,
    SubmitMessageSerializer,
)
from ai.services import CredentialResolver, RunOrchestrator, RunOutcomeStatus, StreamSink
from core.exceptions import ValidationError

FAILURE_STATUS = {
    RunOrchestrator.THREAD_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    RunOrchestrator.THREAD_ARCHIVED: status.HTTP_409_CONFLICT,
}


def failure_response(result) -> Response:
    return Response(
        result.to_response(),
        status=FAILURE_STATUS.get(result.error_code, status.HTTP_400_BAD_REQUEST),
    )


def outcome_response(result) -> Response:
    if not result.success:
        return failure_response(result)

    outcome = result.data
    http_status = (
        status.HTTP_202_ACCEPTED
        if outcome.status == RunOutcomeStatus.QUEUED
        else status.HTTP_200_OK
    )
    return Response(RunOutcomeSerializer(outcome).data, status=http_status)


class ThreadAPIView(APIView):
    """Base view resolving the thread from the URL and checking object permissions."""

    permission_classes = [IsAuthenticated, IsThreadParticipant]

    def get_thread(self, request, thread_id):
        thread = get_object_or_404(accessible_threads(request.user), pk=thread_id)
        self.check_object_permissions(request, thread)
        return thread


class ThreadMessageSubmitView(ThreadAPIView):
    """
    Submit a message to an AI thread.

    POST /api/v1/ai/threads/{id}/messages/

    Payload:
        content: Message text
        api_key: Optional client-decrypted provider key
    """

    permission_classes = [IsAuthenticated, CanInterveneInThread]

    @extend_schema(
        operation_id="submit_ai_message",
        summary="Submit message",
        description=(
            "Send a message to the thread. When no run is active the reply is "
            "generated before the response returns (200, status=started). When a "
            "run is active the message is queued (202, status=queued) and is "
            "processed by a later drain."
        ),
        request=SubmitMessageSerializer,
        responses={
            200: OpenApiResponse(response=RunOutcomeSerializer, description="Run started and finished"),
            202: OpenApiResponse(response=RunOutcomeSerializer, description="Message queued"),
            400: OpenApiResponse(description="Invalid content"),
            403: OpenApiResponse(description="No permission to intervene"),
            404: OpenApiResponse(description="Thread not found"),
            409: OpenApiResponse(description="Thread is archived"),
        },
        tags=["AI - Threads"],
    )
    def post(self, request, thread_id):
        thread = self.get_thread(request, thread_id)

        serializer = SubmitMessageSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = RunOrchestrator.submit(
            thread_id=thread.id,
            user=request.user,
            content=serializer.validated_data["content"],
            sender_kind=sender_kind_for(thread, request.user),
            api_key=serializer.validated_data.get("api_key") or None,
        )
        return outcome_response(result)


class ThreadQueueDrainView(ThreadAPIView):
    """
    Process the next queued message of a thread.

    POST /api/v1/ai/threads/{id}/drain/
    """

    permission_classes = [IsAuthenticated, CanInterveneInThread]

    @extend_schema(
        operation_id="drain_ai_queue",
        summary="Drain queue",
        description=(
            "Claim the oldest pending message and generate its reply. Returns "
            "status=processed, idle (nothing to do) or queued (a run is active)."
        ),
        request=DrainQueueSerializer,
        responses={
            200: OpenApiResponse(response=RunOutcomeSerializer, description="Drain outcome"),
            404: OpenApiResponse(description="Thread not found"),
            409: OpenApiResponse(description="Thread is archived"),
        },
        tags=["AI - Threads"],
    )
    def post(self, request, thread_id):
        thread = self.get_thread(request, thread_id)

        serializer = DrainQueueSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = RunOrchestrator.drain(
            thread.id,
            api_key=serializer.validated_data.get("api_key") or None,
        )
        return outcome_response(result)


class ThreadQueueDiscardView(ThreadAPIView):
    """
    Discard every pending message of a thread.

    POST /api/v1/ai/threads/{id}/queue/discard/
    """

    permission_classes = [IsAuthenticated, IsThreadOwner]

    @extend_schema(
        operation_id="discard_ai_queue",
        summary="Discard queue",
        request=None,
        responses={
            200: OpenApiResponse(description="Number of discarded messages"),
            403: OpenApiResponse(description="Not the thread owner"),
            404: OpenApiResponse(description="Thread not found"),
        },
        tags=["AI - Threads"],
    )
    def post(self, request, thread_id):
        thread = self.get_thread(request, thread_id)

        result = RunOrchestrator.discard_pending(thread.id)
        if not result.success:
            return failure_response(result)
        return Response({"discarded": result.data})


class RunStreamView(ThreadAPIView):
    """
    Replay the partial output of a run.

    GET /api/v1/ai/threads/{id}/runs/{run_id}/stream/?after=seq
    """

    @extend_schema(
        operation_id="get_ai_run_stream",
        summary="Replay run stream",
        description=(
            "Return the run and its stream events in sequence order. Pass the "
            "last seen seq as `after` to fetch only newer events."
        ),
        parameters=[
            OpenApiParameter(
                name="after",
                type=OpenApiTypes.INT,
                location=OpenApiParameter.QUERY,
                description="Only return events with a greater seq",
                required=False,
            ),
        ],
        responses={
            200: OpenApiResponse(description="Run, events and concatenated text"),
            400: OpenApiResponse(description="Invalid after parameter"),
            404: OpenApiResponse(description="Thread or run not found"),
        },
        tags=["AI - Threads"],
    )
    def get(self, request, thread_id, run_id):
        thread = self.get_thread(request, thread_id)
        run = get_object_or_404(AIRun, pk=run_id, thread=thread)

        after = request.query_params.get("after")
        if after is not None:
            try:
                after = int(after)
            except ValueError:
                return Response(
                    {"error": "after must be an integer", "error_code": "INVALID_PARAMETER"},
                    status=status.HTTP_400_BAD_REQUEST,
                )

        events = StreamSink.events(run, after_seq=after)
        return Response(
            {
                "run": RunSerializer(run).data,
                "events": StreamEventSerializer(events, many=True).data,
                "text": StreamSink.replay(run, after_seq=after),
            }
        )


class LLMKeyView(APIView):
    """
    Save the current user's API key for a provider.

    PUT /api/v1/ai/keys/

    Payload:
        provider: "openai" | "google"
        api_key: Plaintext key, or a client-encrypted v2: payload
        last4: Display suffix for client-encrypted keys
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="store_ai_key",
        summary="Store provider API key",
        request=StoreKeySerializer,
        responses={
            200: OpenApiResponse(description="Key stored"),
            400: OpenApiResponse(description="Invalid key or server encryption not configured"),
        },
        tags=["AI - Keys"],
    )
    def put(self, request):
        serializer = StoreKeySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            record = CredentialResolver.store(
                user=request.user,
                provider=serializer.validated_data["provider"],
                api_key=serializer.validated_data["api_key"],
                last4=serializer.validated_data.get("last4"),
            )
        except (ValidationError, CredentialError) as e:
            return Response(e.to_dict(), status=status.HTTP_400_BAD_REQUEST)

        return Response({"ok": True, "provider": record.provider, "last4": record.key_last4})
