"""
OpenInference Auto-Instrumentation

Registers the OpenInference OpenAI instrumentor so every embedding and
completion call the engine makes through the OpenAI SDK is traced.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

_instrumented = False


def register_instrumentors() -> bool:
    """
    Register OpenInference auto-instrumentors.

    This should be called once at startup, before any LLM calls.

    Returns:
        True if the OpenAI instrumentor was registered, False otherwise
    """
    global _instrumented
    if _instrumented:
        return True

    try:
        from openinference.instrumentation.openai import OpenAIInstrumentor
        OpenAIInstrumentor().instrument()
    except ImportError:
        logger.debug("OpenAI instrumentor not available")
        return False
    except Exception as e:
        logger.warning(f"Failed to instrument OpenAI: {e}")
        return False

    logger.info("Registered instrumentors: openai")
    _instrumented = True
    return True


def reset_instrumentation() -> None:
    """Reset instrumentation state (for testing)."""
    global _instrumented
    _instrumented = False
