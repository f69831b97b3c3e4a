"""
Append path for thread transcript messages.

Every AIMessage goes through MessageWriter: user turns written by the
orchestrator, assistant replies, run errors, and chat-room context
injected by the room bridge.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ai.constants import CONTEXT_CONFIG
from ai.models import AIMessage, MessageRole, SenderKind

if TYPE_CHECKING:
    from ai.models import AIThread


class MessageWriter:
    """Create transcript messages. Messages are never updated or deleted here."""

    @staticmethod
    def append_user(thread: AIThread, sender, sender_kind: str, content: str) -> AIMessage:
        return AIMessage.objects.create(
            thread=thread,
            role=MessageRole.USER,
            sender=sender,
            sender_kind=sender_kind,
            content=content,
        )

    @staticmethod
    def append_assistant(thread: AIThread, content: str) -> AIMessage:
        return AIMessage.objects.create(
            thread=thread,
            role=MessageRole.ASSISTANT,
            sender_kind=SenderKind.ASSISTANT,
            content=content,
        )

    @staticmethod
    def append_error(thread: AIThread, reason: str) -> AIMessage:
        return AIMessage.objects.create(
            thread=thread,
            role=MessageRole.SYSTEM,
            sender_kind=SenderKind.SYSTEM,
            content=f"Error: {reason}",
        )

    @staticmethod
    def append_context(thread: AIThread, text: str, sender=None) -> AIMessage:
        """
        Inject chat-room text into a thread.

        The message is stored as a system turn tagged with the context
        prefix; the history loader turns it into a wrapped user turn.
        """
        return AIMessage.objects.create(
            thread=thread,
            role=MessageRole.SYSTEM,
            sender=sender,
            sender_kind=SenderKind.SYSTEM,
            content=f"{CONTEXT_CONFIG.PREFIX}\n{text}",
        )
