"""
Engine Configuration

Loads CRAG settings from environment variables. The CLI loads a .env file
first (python-dotenv), so everything here can also come from .env.
"""

import os
from dataclasses import dataclass, field

DEFAULT_EMBEDDING_MODELS: tuple[str, ...] = (
    "openai/text-embedding-ada-002",
    "text-embedding-ada-002",
    "openai/text-embedding-3-small",
    "text-embedding-3-small",
)


def env_bool(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).lower() in ("true", "1", "yes")


def _env_list(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.environ.get(name)
    if not raw:
        return default
    return tuple(item.strip() for item in raw.split(",") if item.strip())


@dataclass
class CragConfig:
    """Configuration for the CRAG engine.

    Environment Variables:
        OPENROUTER_API_KEY: API key; without it both LLM calls and remote
            embeddings are disabled and local fallbacks are used
        OPENROUTER_BASE_URL: OpenAI-compatible base URL
        CRAG_COMPLETION_MODEL: Model for evaluation and query refinement
        CRAG_EMBEDDING_MODELS: Comma-separated embedding model ids, tried in order
        CRAG_RELEVANCE_THRESHOLD: Relevance cut-off in [0, 1] (default: 0.7)
        CRAG_TOP_K / CRAG_PERSONAL_TOP_K: Result counts (default: 5 / 3)
        CRAG_REQUEST_TIMEOUT: Seconds per external call (default: 30)
        CRAG_MAX_EMBEDDING_CHARS: Truncation before embedding (default: 8000)
        CRAG_CACHE_KEY: "sha256" (default) or "prefix" (first 100 chars)
        CRAG_CACHE_MAX_ENTRIES: LRU bound, 0 for unbounded (default: 0)
        CRAG_STRICT_DIMENSIONS: Reject writes whose embedding length differs
            from the collection's (default: false)
        USE_POSTGRES / DATABASE_URL: Persist documents in PostgreSQL
    """

    api_key: str | None = None
    base_url: str = "https://openrouter.ai/api/v1"
    completion_model: str = "google/gemini-2.0-flash-exp:free"
    embedding_models: tuple[str, ...] = field(default=DEFAULT_EMBEDDING_MODELS)
    relevance_threshold: float = 0.7
    top_k: int = 5
    personal_top_k: int = 3
    request_timeout: float = 30.0
    max_embedding_chars: int = 8000
    cache_key: str = "sha256"
    cache_max_entries: int = 0
    strict_dimensions: bool = False
    use_postgres: bool = False
    database_url: str = "postgresql://localhost/crag"

    @property
    def llm_enabled(self) -> bool:
        return bool(self.api_key)

    @classmethod
    def from_env(cls) -> "CragConfig":
        """Load config from environment variables."""
        return cls(
            api_key=os.environ.get("OPENROUTER_API_KEY") or None,
            base_url=os.environ.get("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1"),
            completion_model=os.environ.get(
                "CRAG_COMPLETION_MODEL", "google/gemini-2.0-flash-exp:free"
            ),
            embedding_models=_env_list("CRAG_EMBEDDING_MODELS", DEFAULT_EMBEDDING_MODELS),
            relevance_threshold=float(os.environ.get("CRAG_RELEVANCE_THRESHOLD", "0.7")),
            top_k=int(os.environ.get("CRAG_TOP_K", "5")),
            personal_top_k=int(os.environ.get("CRAG_PERSONAL_TOP_K", "3")),
            request_timeout=float(os.environ.get("CRAG_REQUEST_TIMEOUT", "30")),
            max_embedding_chars=int(os.environ.get("CRAG_MAX_EMBEDDING_CHARS", "8000")),
            cache_key=os.environ.get("CRAG_CACHE_KEY", "sha256").lower(),
            cache_max_entries=int(os.environ.get("CRAG_CACHE_MAX_ENTRIES", "0")),
            strict_dimensions=env_bool("CRAG_STRICT_DIMENSIONS"),
            use_postgres=env_bool("USE_POSTGRES"),
            database_url=os.environ.get("DATABASE_URL", "postgresql://localhost/crag"),
        )


# Global config singleton
_config: CragConfig | None = None


def get_config() -> CragConfig:
    """Get the global engine config (lazy-loaded from env)."""
    global _config
    if _config is None:
        _config = CragConfig.from_env()
    return _config


def reset_config() -> None:
    """Reset config (useful for testing)."""
    global _config
    _config = None
