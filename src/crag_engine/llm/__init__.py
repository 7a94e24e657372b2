"""
LLM module - OpenRouter access through the OpenAI SDK.
"""

from crag_engine.llm.client import build_openai_client
from crag_engine.llm.completion import (
    DEFAULT_COMPLETION_MODEL,
    OpenRouterCompletionBackend,
)

__all__ = [
    "build_openai_client",
    "DEFAULT_COMPLETION_MODEL",
    "OpenRouterCompletionBackend",
]
