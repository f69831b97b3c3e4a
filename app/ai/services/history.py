"""
Conversation history loading for provider calls.

Turns a thread's stored transcript into provider-ready ChatMessages:
chat-room context injections become user turns wrapped in context
markers, and user turns can be prefixed with the speaker's name so a
model can tell collaborators apart.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ai.constants import CONTEXT_CONFIG
from ai.models import AIMessage, MessageRole
from ai.providers.base import ChatMessage

if TYPE_CHECKING:
    from ai.models import AIThread


def is_context_injection(content: str) -> bool:
    return content.lstrip().startswith(CONTEXT_CONFIG.PREFIX)


def wrap_context(content: str) -> str:
    """Strip the context prefix and wrap the remainder in context markers."""
    body = content.lstrip()[len(CONTEXT_CONFIG.PREFIX) :].strip()
    return f"{CONTEXT_CONFIG.OPEN_TAG}\n{body}\n{CONTEXT_CONFIG.CLOSE_TAG}"


def display_name(user) -> str:
    """Full name when set, otherwise the username."""
    full_name = user.get_full_name().strip() if hasattr(user, "get_full_name") else ""
    return full_name or user.get_username()


class HistoryLoader:
    """Build the transcript sent to a provider."""

    @staticmethod
    def load(thread: AIThread, attribute_speakers: bool) -> list[ChatMessage]:
        """
        Load every message of a thread, oldest first.

        Args:
            thread: Thread to load
            attribute_speakers: Prefix user turns with ``[Name]: ``

        Returns:
            Provider-ready transcript. Context injections are returned as
            user turns; other system messages keep their role and are left
            to the provider adapter to keep or drop.
        """
        messages = (
            AIMessage.objects.filter(thread=thread)
            .select_related("sender")
            .order_by("created_at", "id")
        )

        history: list[ChatMessage] = []
        for message in messages:
            if is_context_injection(message.content):
                history.append(ChatMessage(role=MessageRole.USER, content=wrap_context(message.content)))
                continue

            content = message.content
            if attribute_speakers and message.role == MessageRole.USER and message.sender is not None:
                content = f"[{display_name(message.sender)}]: {content}"
            history.append(ChatMessage(role=str(message.role), content=content))

        return history
