"""
Base provider protocol definition.

Defines the interface every provider adapter implements and the shared
HTTP plumbing. Uses Python Protocol for structural subtyping.

Variants:
    STREAMING: emits text fragments through on_delta while generating
    SINGLE_SHOT: returns the whole reply at once, emits nothing

Usage:
    from ai.providers import get_provider

    provider = get_provider(thread.provider)
    text = provider.generate(
        messages=history,
        model=thread.model,
        system_prompt=thread.system_prompt,
        api_key=api_key,
        on_delta=writer,
    )
"""

from __future__ import annotations

import enum
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import httpx
from django.conf import settings

from ai.constants import CONTEXT_CONFIG, PROVIDER_CONFIG


class ProviderVariant(enum.Enum):
    """How a provider delivers its output."""

    STREAMING = "streaming"
    SINGLE_SHOT = "single_shot"


@dataclass(frozen=True)
class ChatMessage:
    """One provider-ready transcript entry."""

    role: str
    content: str


DeltaCallback = Callable[[str], None]


@runtime_checkable
class BaseProvider(Protocol):
    """
    Protocol for provider adapters.

    Attributes:
        variant: ProviderVariant of the adapter
        attributes_speakers: Whether user turns should be prefixed with
            the speaker's display name before reaching this provider
    """

    variant: ProviderVariant
    attributes_speakers: bool

    def generate(
        self,
        messages: list[ChatMessage],
        model: str,
        system_prompt: str | None,
        api_key: str,
        on_delta: DeltaCallback,
    ) -> str:
        """
        Generate the assistant reply for a transcript.

        Args:
            messages: Ordered transcript, oldest first
            model: Provider model identifier
            system_prompt: Thread custom prompt (None for the default)
            api_key: Plaintext provider API key
            on_delta: Called with each text fragment (streaming variants only)

        Returns:
            The complete reply text

        Raises:
            ProviderError: Transport failure, non-2xx status, or unusable body
        """
        ...


class BaseProviderImpl:
    """
    Shared functionality for the HTTP provider adapters.

    Attributes:
        base_url: API root (no trailing slash)
        timeout: httpx timeout for connect and read phases
        transport: Optional httpx transport (tests pass httpx.MockTransport)
    """

    variant: ProviderVariant
    attributes_speakers: bool = False

    base_url_setting: str = ""
    default_base_url: str = ""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: httpx.Timeout | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = (
            base_url or getattr(settings, self.base_url_setting, "") or self.default_base_url
        ).rstrip("/")
        self.timeout = timeout or httpx.Timeout(
            getattr(settings, "AI_PROVIDER_READ_TIMEOUT_SECONDS", PROVIDER_CONFIG.READ_TIMEOUT_SECONDS),
            connect=getattr(
                settings,
                "AI_PROVIDER_CONNECT_TIMEOUT_SECONDS",
                PROVIDER_CONFIG.CONNECT_TIMEOUT_SECONDS,
            ),
        )
        self.transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(timeout=self.timeout, transport=self.transport)

    def _build_system_prompt(self, system_prompt: str | None) -> str:
        """Thread prompt (or the default) followed by the context-marker instructions."""
        base = system_prompt or getattr(
            settings, "AI_DEFAULT_SYSTEM_PROMPT", PROVIDER_CONFIG.DEFAULT_SYSTEM_PROMPT
        )
        return f"{base}\n\n{CONTEXT_CONFIG.INSTRUCTION}"
