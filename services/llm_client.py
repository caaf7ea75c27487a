from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from services.errors import UpstreamError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class TextGenerationClient:
    """Blocking client for an OpenAI-style chat-completions endpoint."""

    def __init__(
        self,
        api_url: Optional[str],
        model: Optional[str],
        api_key: Optional[str],
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        if not api_url:
            raise ValueError("A text-generation API URL is required.")
        if not model:
            raise ValueError("A text-generation model identifier is required.")
        if not api_key:
            raise ValueError("A text-generation API key is required.")
        self.api_url = api_url
        self.model = model
        self._client = httpx.Client(
            timeout=timeout,
            headers={"Authorization": f"Bearer {api_key}"},
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def generate(self, prompt: str) -> str:
        payload = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
        }
        try:
            response = self._client.post(self.api_url, json=payload)
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Request to text-generation API failed: {exc}") from exc

        if not response.is_success:
            body = response.text
            raise UpstreamError(
                f"Text-generation API returned an error: {response.status_code} {body}",
                status_code=response.status_code,
                body=body,
            )

        try:
            data: Any = response.json()
        except ValueError as exc:
            raise UpstreamError(
                f"Text-generation API returned a malformed body: {exc}",
                status_code=response.status_code,
                body=response.text,
            ) from exc

        content = self._first_choice_content(data)
        if not content:
            raise UpstreamError(
                "Text-generation API returned no content.",
                status_code=response.status_code,
            )
        logger.debug("Received completion of %d characters", len(content))
        return content

    @staticmethod
    def _first_choice_content(data: Any) -> Optional[str]:
        if not isinstance(data, dict):
            return None
        choices = data.get("choices")
        if not isinstance(choices, list) or not choices:
            return None
        first = choices[0]
        if not isinstance(first, dict):
            return None
        message = first.get("message")
        if not isinstance(message, dict):
            return None
        content = message.get("content")
        return content if isinstance(content, str) else None
