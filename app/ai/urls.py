"""
URL configuration for AI API.

URL Structure:
    /threads/{id}/messages/                 POST
    /threads/{id}/drain/                    POST
    /threads/{id}/queue/discard/            POST
    /threads/{id}/runs/{run_id}/stream/     GET
    /keys/                                  PUT

All URLs are prefixed with /api/v1/ai/ in the main URL configuration.
"""

from django.urls import path

from ai.views import (
    LLMKeyView,
    RunStreamView,
    ThreadMessageSubmitView,
    ThreadQueueDiscardView,
    ThreadQueueDrainView,
)

app_name = "ai"

urlpatterns = [
    path(
        "threads/<uuid:thread_id>/messages/",
        ThreadMessageSubmitView.as_view(),
        name="thread-messages",
    ),
    path(
        "threads/<uuid:thread_id>/drain/",
        ThreadQueueDrainView.as_view(),
        name="thread-drain",
    ),
    path(
        "threads/<uuid:thread_id>/queue/discard/",
        ThreadQueueDiscardView.as_view(),
        name="thread-queue-discard",
    ),
    path(
        "threads/<uuid:thread_id>/runs/<uuid:run_id>/stream/",
        RunStreamView.as_view(),
        name="run-stream",
    ),
    path("keys/", LLMKeyView.as_view(), name="keys"),
]
