"""
AI provider implementations.

This package contains provider-specific adapters:
- base.py: BaseProvider protocol, ChatMessage, ProviderVariant
- openai.py: OpenAI chat completions (streaming)
- google.py: Google Gemini generateContent (single-shot)

Provider Selection:
    A thread stores its ModelProvider once, when its model is assigned.
    get_provider() maps that value to an adapter instance.

Usage:
    from ai.providers import get_provider

    provider = get_provider(thread.provider)
    if provider.variant is ProviderVariant.STREAMING:
        ...

Adding New Providers:
    1. Add a ModelProvider choice and its model-prefix rule
    2. Implement the BaseProvider protocol in a new module
    3. Register the class in PROVIDERS below
"""

from __future__ import annotations

from ai.models import ModelProvider

from .base import BaseProvider, ChatMessage, ProviderVariant
from .google import GeminiProvider
from .openai import OpenAIChatProvider

# Maps ModelProvider value to adapter class
PROVIDERS: dict[str, type] = {
    ModelProvider.OPENAI: OpenAIChatProvider,
    ModelProvider.GOOGLE: GeminiProvider,
}


def get_provider(provider_type: str, **kwargs) -> BaseProvider:
    """
    Get provider instance by type.

    Args:
        provider_type: ModelProvider value stored on the thread
        **kwargs: Adapter options (base_url, timeout, transport)

    Raises:
        ValueError: If provider type unknown
    """
    provider_class = PROVIDERS.get(provider_type)
    if not provider_class:
        raise ValueError(f"Unknown provider type: {provider_type}")
    return provider_class(**kwargs)


__all__ = [
    "BaseProvider",
    "ChatMessage",
    "ProviderVariant",
    "GeminiProvider",
    "OpenAIChatProvider",
    "PROVIDERS",
    "get_provider",
]
