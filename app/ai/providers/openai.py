"""
OpenAI chat completions provider (streaming variant).

Calls POST {base_url}/chat/completions with stream=true and reads the
server-sent events line by line:

    data: {"choices": [{"delta": {"content": "Hel"}}]}
    data: {"choices": [{"delta": {"content": "lo"}}]}
    data: [DONE]

Each non-empty delta is forwarded to on_delta and accumulated into the
final text.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator

import httpx

from ai.constants import PROVIDER_CONFIG
from ai.exceptions import ProviderError, ProviderHTTPError, ProviderResponseError

from .base import BaseProviderImpl, ChatMessage, DeltaCallback, ProviderVariant

logger = logging.getLogger(__name__)

SSE_DATA_PREFIX = "data:"
SSE_DONE = "[DONE]"


class OpenAIChatProvider(BaseProviderImpl):
    """Streaming adapter for OpenAI-compatible chat completion APIs."""

    variant = ProviderVariant.STREAMING
    attributes_speakers = True

    base_url_setting = "OPENAI_API_BASE_URL"
    default_base_url = PROVIDER_CONFIG.OPENAI_API_BASE_URL

    def generate(
        self,
        messages: list[ChatMessage],
        model: str,
        system_prompt: str | None,
        api_key: str,
        on_delta: DeltaCallback,
    ) -> str:
        payload = {
            "model": model,
            "messages": self._build_messages(messages, system_prompt),
            "stream": True,
        }
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

        parts: list[str] = []
        try:
            with self._client() as client:
                with client.stream(
                    "POST",
                    f"{self.base_url}/chat/completions",
                    json=payload,
                    headers=headers,
                ) as response:
                    if not response.is_success:
                        response.read()
                        raise ProviderHTTPError(
                            f"OpenAI API Error: {response.text}",
                            status_code=response.status_code,
                        )

                    for delta in self._iter_deltas(response):
                        parts.append(delta)
                        on_delta(delta)
        except httpx.HTTPError as e:
            raise ProviderError(
                f"OpenAI request failed: {e}",
                details={"exception": e.__class__.__name__},
            ) from e

        text = "".join(parts)
        logger.debug(
            "OpenAI stream finished",
            extra={"model": model, "chunks": len(parts), "length": len(text)},
        )
        return text

    def _build_messages(
        self,
        messages: list[ChatMessage],
        system_prompt: str | None,
    ) -> list[dict]:
        built = [{"role": "system", "content": self._build_system_prompt(system_prompt)}]
        built.extend({"role": m.role, "content": m.content} for m in messages)
        return built

    def _iter_deltas(self, response: httpx.Response) -> Iterator[str]:
        """Yield text fragments until the end-of-stream marker."""
        for line in response.iter_lines():
            line = line.strip()
            if not line.startswith(SSE_DATA_PREFIX):
                continue

            data = line[len(SSE_DATA_PREFIX) :].strip()
            if data == SSE_DONE:
                return

            delta = self._parse_chunk(data)
            if delta:
                yield delta

    @staticmethod
    def _parse_chunk(data: str) -> str | None:
        try:
            chunk = json.loads(data)
        except json.JSONDecodeError as e:
            raise ProviderResponseError(
                "OpenAI stream returned malformed data",
                details={"line": data[:200]},
            ) from e

        if not isinstance(chunk, dict):
            raise ProviderResponseError(
                "OpenAI stream returned malformed data",
                details={"line": data[:200]},
            )

        if chunk.get("error"):
            error = chunk["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise ProviderResponseError(f"OpenAI API Error: {message}")

        choices = chunk.get("choices") or []
        if not choices:
            return None
        content = (choices[0].get("delta") or {}).get("content")
        return content or None
