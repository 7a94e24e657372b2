"""
Completion backend - one prompt in, one text reply out.

Relevance evaluation and query refinement both go through this single
call; neither needs conversation history or structured output from the
SDK (the evaluator scrapes its JSON out of the reply itself).
"""

from __future__ import annotations

import logging

from openai import OpenAI, OpenAIError

from crag_engine.core.errors import UpstreamUnavailable

logger = logging.getLogger(__name__)

DEFAULT_COMPLETION_MODEL = "google/gemini-2.0-flash-exp:free"


class OpenRouterCompletionBackend:
    """Production completion backend using the OpenAI SDK."""

    def __init__(self, client: OpenAI, model: str = DEFAULT_COMPLETION_MODEL):
        self._client = client
        self._model = model

    @property
    def model(self) -> str:
        return self._model

    def complete(self, prompt: str, model_id: str | None = None) -> str:
        """
        Send a single user message and return the reply text.

        Raises:
            UpstreamUnavailable: transport/auth/timeout errors or an empty reply
        """
        model = model_id or self._model
        try:
            response = self._client.chat.completions.create(
                model=model,
                messages=[{"role": "user", "content": prompt}],
            )
        except OpenAIError as e:
            raise UpstreamUnavailable(f"Completion call failed ({model}): {e}") from e

        if not response.choices:
            raise UpstreamUnavailable(f"Completion reply from {model} had no choices")
        content = response.choices[0].message.content
        if not content:
            raise UpstreamUnavailable(f"Completion reply from {model} was empty")
        return content
