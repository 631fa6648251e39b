"""
Text Completion Client

Thin wrapper over the OpenAI chat completions API: one free-text prompt in,
one free-text answer out. No structured output is requested; the callers
rely on prompt-engineered labels and parse the text themselves.

The API key is a server-side secret read from settings.
"""

import logging
from typing import Optional

from openai import OpenAI, OpenAIError

from src.common.settings import Settings, get_settings

logger = logging.getLogger(__name__)


class CompletionError(Exception):
    """The completion service failed or returned no usable text."""


class CompletionClient:
    """Client for single-prompt text completions."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[OpenAI] = None
    ):
        """
        Initialize completion client.

        Args:
            settings: Service settings (defaults to environment)
            client: Preconfigured OpenAI client (created from settings if omitted)
        """
        self.settings = settings or get_settings()
        self.model = self.settings.completion_model
        self.temperature = self.settings.completion_temperature
        self.max_tokens = self.settings.completion_max_tokens

        if client is None:
            if not self.settings.openai_api_key:
                raise ValueError("OPENAI_API_KEY not configured")
            client = OpenAI(api_key=self.settings.openai_api_key)
        self._client = client

    def complete(self, prompt: str) -> str:
        """
        Send one prompt and return the stripped completion text.

        Raises:
            CompletionError: On transport errors, API errors (quota, rate
                limit) or an empty answer
        """
        try:
            logger.debug(f"Requesting completion ({len(prompt)} chars, model={self.model})")
            response = self._client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except OpenAIError as e:
            logger.error(f"Completion request failed: {e}")
            raise CompletionError(str(e)) from e

        if not response.choices:
            raise CompletionError("Completion returned no choices")

        content = response.choices[0].message.content
        if not content or not content.strip():
            raise CompletionError("Completion returned empty text")

        return content.strip()
