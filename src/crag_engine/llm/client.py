"""
OpenAI SDK client pointed at OpenRouter.

OpenRouter speaks the OpenAI wire protocol, so the official SDK is used
for both embeddings and chat completions. SDK retries are disabled: the
only retry in the engine is the ordered list of embedding model ids,
each tried once.
"""

from __future__ import annotations

from openai import OpenAI

from crag_engine.config import CragConfig

APP_REFERER = "http://localhost:3000"
APP_TITLE = "Multi-LLM Chat CRAG"


def build_openai_client(config: CragConfig) -> OpenAI:
    """Create an OpenAI client for the configured gateway."""
    return OpenAI(
        api_key=config.api_key,
        base_url=config.base_url,
        timeout=config.request_timeout,
        max_retries=0,
        default_headers={
            "HTTP-Referer": APP_REFERER,
            "X-Title": APP_TITLE,
        },
    )
