"""
Observability Module - Phoenix + OpenTelemetry Integration

Traces each CRAG request (retrieve, evaluate, correct) and, through
OpenInference, every OpenAI SDK call underneath.

USAGE:
------
# At application startup:
from crag_engine.observability import init_phoenix

init_phoenix()  # Starts local Phoenix UI if PHOENIX_ENABLED=true

# In code that needs tracing:
from crag_engine.observability import get_tracer

tracer = get_tracer()
with tracer.start_span("crag.retrieve", attributes={"key": "value"}) as span:
    # ... do work ...
    span.set_attribute("result", "success")
"""

from __future__ import annotations

import logging

from crag_engine.observability.config import (
    PhoenixConfig,
    get_config,
    reset_config,
)
from crag_engine.observability.tracer import (
    TracerProtocol,
    SpanProtocol,
    NoOpTracer,
    NoOpSpan,
    get_tracer,
    reset_tracer,
)
from crag_engine.observability.attributes import (
    CRAG_STAGE,
    CRAG_QUERY,
    CRAG_RETRIEVED_DOC_COUNT,
    CRAG_EVALUATION_SCORE,
    CRAG_CORRECTED,
    retrieval_attributes,
    evaluation_attributes,
    correction_attributes,
)

logger = logging.getLogger(__name__)

_phoenix_initialized = False


def init_phoenix(config: PhoenixConfig | None = None) -> bool:
    """
    Initialize Phoenix observability.

    This should be called once at application startup.
    Sets up the OpenTelemetry tracer provider and registers auto-instrumentors.

    Args:
        config: Optional config (uses env vars if not provided)

    Returns:
        True if Phoenix was initialized, False if disabled or failed
    """
    global _phoenix_initialized
    if _phoenix_initialized:
        return True

    config = config or get_config()

    if not config.enabled:
        logger.debug("Phoenix observability disabled")
        return False

    try:
        from opentelemetry import trace
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor

        if config.is_remote:
            endpoint = config.traces_endpoint()
            logger.info(f"Phoenix connecting to remote: {endpoint}")
        else:
            import phoenix as px
            session = px.launch_app()
            endpoint = config.traces_endpoint(session.url)
            logger.info(f"Phoenix UI available at: {session.url}")

        provider = TracerProvider(resource=Resource.create(config.resource_attributes()))
        exporter = OTLPSpanExporter(endpoint=endpoint)
        provider.add_span_processor(BatchSpanProcessor(exporter))
        trace.set_tracer_provider(provider)

        from crag_engine.observability.instrumentation import register_instrumentors
        register_instrumentors()

        reset_tracer()
        _phoenix_initialized = True
        return True

    except ImportError as e:
        logger.warning(f"Phoenix exporter not installed, observability disabled: {e}")
        return False
    except Exception as e:
        logger.error(f"Failed to initialize Phoenix: {e}")
        return False


def shutdown_phoenix() -> None:
    """Shutdown Phoenix and cleanup resources."""
    global _phoenix_initialized

    if not _phoenix_initialized:
        return

    try:
        from opentelemetry import trace
        provider = trace.get_tracer_provider()
        if hasattr(provider, "shutdown"):
            provider.shutdown()
    except Exception as e:
        logger.warning(f"Error shutting down Phoenix: {e}")

    reset_tracer()
    reset_config()
    _phoenix_initialized = False


__all__ = [
    # Initialization
    "init_phoenix",
    "shutdown_phoenix",
    # Config
    "PhoenixConfig",
    "get_config",
    "reset_config",
    # Tracer
    "TracerProtocol",
    "SpanProtocol",
    "NoOpTracer",
    "NoOpSpan",
    "get_tracer",
    "reset_tracer",
    # Attributes
    "CRAG_STAGE",
    "CRAG_QUERY",
    "CRAG_RETRIEVED_DOC_COUNT",
    "CRAG_EVALUATION_SCORE",
    "CRAG_CORRECTED",
    # Helpers
    "retrieval_attributes",
    "evaluation_attributes",
    "correction_attributes",
]
