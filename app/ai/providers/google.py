"""
Google Gemini provider (single-shot variant).

Gemini requires strictly alternating user/model turns and takes the
system prompt separately, so the transcript is reshaped before the call:
system entries are dropped, consecutive same-role entries are merged,
and a trailing model turn is removed so the request ends on a user turn.

No stream events are emitted; the reply arrives in one response.
"""

from __future__ import annotations

import logging

import httpx
from django.conf import settings

from ai.constants import PROVIDER_CONFIG
from ai.exceptions import ProviderError, ProviderHTTPError, ProviderResponseError
from ai.models import MessageRole

from .base import BaseProviderImpl, ChatMessage, DeltaCallback, ProviderVariant

logger = logging.getLogger(__name__)

GEMINI_USER_ROLE = "user"
GEMINI_MODEL_ROLE = "model"
TURN_SEPARATOR = "\n\n"


class GeminiProvider(BaseProviderImpl):
    """Single-shot adapter for the Gemini generateContent API."""

    variant = ProviderVariant.SINGLE_SHOT
    attributes_speakers = False

    base_url_setting = "GEMINI_API_BASE_URL"
    default_base_url = PROVIDER_CONFIG.GEMINI_API_BASE_URL

    def generate(
        self,
        messages: list[ChatMessage],
        model: str,
        system_prompt: str | None,
        api_key: str,
        on_delta: DeltaCallback,
    ) -> str:
        body = {
            "contents": self.build_contents(messages),
            "generationConfig": {
                "temperature": getattr(
                    settings, "AI_GEMINI_TEMPERATURE", PROVIDER_CONFIG.GEMINI_TEMPERATURE
                ),
            },
            "systemInstruction": {
                "parts": [{"text": self._build_system_prompt(system_prompt)}],
            },
        }

        try:
            with self._client() as client:
                response = client.post(
                    f"{self.base_url}/models/{model}:generateContent",
                    json=body,
                    headers={"x-goog-api-key": api_key},
                )
        except httpx.HTTPError as e:
            raise ProviderError(
                f"Gemini request failed: {e}",
                details={"exception": e.__class__.__name__},
            ) from e

        if not response.is_success:
            raise ProviderHTTPError(
                f"Gemini API Error: {response.text}",
                status_code=response.status_code,
            )

        text = self._extract_text(response)
        logger.debug("Gemini response received", extra={"model": model, "length": len(text)})
        return text

    @staticmethod
    def build_contents(messages: list[ChatMessage]) -> list[dict]:
        """
        Reshape a transcript into alternating Gemini turns.

        Example:
            user "a", user "b", assistant "c"
            -> [{"role": "user", "parts": [{"text": "a\\n\\nb"}]}]
        """
        contents: list[dict] = []
        for message in messages:
            if message.role == MessageRole.SYSTEM:
                continue

            role = GEMINI_USER_ROLE if message.role == MessageRole.USER else GEMINI_MODEL_ROLE
            if contents and contents[-1]["role"] == role:
                part = contents[-1]["parts"][0]
                part["text"] = f"{part['text']}{TURN_SEPARATOR}{message.content}"
            else:
                contents.append({"role": role, "parts": [{"text": message.content}]})

        if contents and contents[-1]["role"] == GEMINI_MODEL_ROLE:
            contents.pop()
        return contents

    @staticmethod
    def _extract_text(response: httpx.Response) -> str:
        try:
            result = response.json()
            text = result["candidates"][0]["content"]["parts"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ProviderResponseError(
                "No response content from Gemini",
                details={"body": response.text[:500]},
            ) from e

        if not text:
            raise ProviderResponseError("No response content from Gemini")
        return text
