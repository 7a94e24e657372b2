"""
Tracing settings.

Kept apart from CragConfig: init_phoenix runs before the engine is built,
and tracing can be switched on for a process that never touches the LLM.
"""

import os
from dataclasses import dataclass

from crag_engine.config import env_bool

DEFAULT_PROJECT_NAME = "crag-engine"
TRACES_PATH = "/v1/traces"

# Resource attribute Phoenix uses to group traces into projects
PROJECT_NAME_ATTRIBUTE = "openinference.project.name"


@dataclass(frozen=True)
class PhoenixConfig:
    """Where and what to trace.

    Environment Variables:
        PHOENIX_ENABLED: Export spans at all (default: false)
        PHOENIX_PROJECT_NAME: Phoenix project for this process's traces
        PHOENIX_COLLECTOR_ENDPOINT: OTLP/HTTP collector; empty means launch
            a local Phoenix app and export to it
        PHOENIX_CAPTURE_LLM_CONTENT: Put queries and refined queries on spans
            (default: false)

    Queries against a private collection reveal what it holds. Leave
    capture_llm_content off unless the collector is trusted with that.
    """

    enabled: bool = False
    project_name: str = DEFAULT_PROJECT_NAME
    collector_endpoint: str | None = None
    capture_llm_content: bool = False

    @property
    def is_remote(self) -> bool:
        return self.collector_endpoint is not None

    def traces_endpoint(self, local_url: str | None = None) -> str:
        """
        OTLP/HTTP traces URL for the remote collector, or for a local app.

        Raises:
            ValueError: no collector configured and no local_url given
        """
        base = self.collector_endpoint or local_url
        if not base:
            raise ValueError("No collector endpoint configured and no local Phoenix URL")
        base = base.rstrip("/")
        return base if base.endswith(TRACES_PATH) else base + TRACES_PATH

    def resource_attributes(self) -> dict[str, str]:
        return {"service.name": DEFAULT_PROJECT_NAME, PROJECT_NAME_ATTRIBUTE: self.project_name}

    @classmethod
    def from_env(cls) -> "PhoenixConfig":
        return cls(
            enabled=env_bool("PHOENIX_ENABLED"),
            project_name=os.environ.get("PHOENIX_PROJECT_NAME") or DEFAULT_PROJECT_NAME,
            collector_endpoint=os.environ.get("PHOENIX_COLLECTOR_ENDPOINT") or None,
            capture_llm_content=env_bool("PHOENIX_CAPTURE_LLM_CONTENT"),
        )


_config: PhoenixConfig | None = None


def get_config() -> PhoenixConfig:
    """Process-wide tracing settings, read from the environment once."""
    global _config
    if _config is None:
        _config = PhoenixConfig.from_env()
    return _config


def reset_config() -> None:
    global _config
    _config = None
