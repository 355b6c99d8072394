"""OpenRouter chat-completions client used to analyze day-chunks."""

from __future__ import annotations

import logging
from typing import Any

import requests

from .config import ServiceConfig
from .errors import ExternalServiceError

logger = logging.getLogger(__name__)


def extract_content(body: Any) -> str:
    """Return ``choices[0].message.content`` or raise ExternalServiceError."""
    try:
        content = body["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        raise ExternalServiceError("Missing content in response") from None
    if not isinstance(content, str):
        raise ExternalServiceError("Missing content in response")
    return content


class OpenRouterClient:
    """Sends one system prompt plus one user message per request.

    Temperature is pinned to 0 so the same chunk yields the same analysis.
    No retries: a failed request surfaces as ExternalServiceError.
    """

    def __init__(self, config: ServiceConfig, session: requests.Session | None = None):
        self.config = config
        self.session = session or requests.Session()

    def _headers(self) -> dict[str, str]:
        headers = {"Authorization": f"Bearer {self.config.api_key}"}
        # Optional attribution headers for OpenRouter rankings
        if self.config.site_url:
            headers["HTTP-Referer"] = self.config.site_url
        if self.config.site_name:
            headers["X-Title"] = self.config.site_name
        return headers

    def build_payload(self, system_prompt: str, user_content: str) -> dict[str, Any]:
        return {
            "model": self.config.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_content},
            ],
            "temperature": 0.0,
        }

    def complete(self, system_prompt: str, user_content: str) -> str:
        """Return the text of the first completion choice."""
        payload = self.build_payload(system_prompt, user_content)

        try:
            response = self.session.post(
                self.config.endpoint,
                json=payload,
                headers=self._headers(),
                timeout=self.config.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise ExternalServiceError(f"Request error: {e}") from e

        if not 200 <= response.status_code < 300:
            raise ExternalServiceError(
                "OpenRouter API error", status=response.status_code, detail=response.text
            )

        try:
            body = response.json()
        except ValueError as e:
            raise ExternalServiceError(f"Response parse error: {e}") from e

        content = extract_content(body)
        logger.debug("Completion received (%d chars) from %s", len(content), self.config.model)
        return content

    def close(self) -> None:
        self.session.close()
