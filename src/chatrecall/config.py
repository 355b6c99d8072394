"""Central configuration for paths, constants and the analysis service."""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel

from .errors import ConfigurationError

# Batches are capped to keep per-call latency and partial-failure blast radius small
MAX_BATCH_CHUNKS = 10

DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_MODEL = "gpt-4.1-2025-04-14"
DEFAULT_DATA_DIR = Path.home() / ".chatrecall"

# Cache backends: one JSON file per chunk index, or a single SQLite table
CACHE_BACKENDS = ("files", "sqlite")

# Ranked environment names per setting; the first one set wins
API_KEY_VARS = ("OPENROUTER_API_KEY", "VITE_OPENROUTER_API_KEY")
BASE_URL_VARS = ("OPENROUTER_BASE_URL", "VITE_OPENROUTER_BASE_URL")
MODEL_VARS = ("OPENROUTER_MODEL", "VITE_OPENROUTER_MODEL")
SITE_URL_VARS = ("SITE_URL", "VITE_SITE_URL")
SITE_NAME_VARS = ("SITE_NAME", "VITE_SITE_NAME")
TIMEOUT_VARS = ("CHATRECALL_REQUEST_TIMEOUT",)
DATA_DIR_VARS = ("CHATRECALL_DATA_DIR",)
CACHE_BACKEND_VARS = ("CHATRECALL_CACHE_BACKEND",)


def load_env() -> None:
    """Load .env from the working directory, then from its parent.

    Variables already present in the environment are never overridden.
    """
    cwd = Path.cwd()
    load_dotenv(cwd / ".env")
    load_dotenv(cwd.parent / ".env")


def resolve_setting(*names: str, default: str | None = None) -> str | None:
    """Return the value of the first environment variable in *names* that is set."""
    for name in names:
        value = os.environ.get(name)
        if value:
            return value
    return default


class ServiceConfig(BaseModel):
    """Connection settings for the chat-completions analysis service."""

    api_key: str
    base_url: str = DEFAULT_BASE_URL
    model: str = DEFAULT_MODEL
    site_url: str | None = None
    site_name: str | None = None
    timeout: float | None = None

    @property
    def endpoint(self) -> str:
        return f"{self.base_url.rstrip('/')}/chat/completions"


def load_service_config() -> ServiceConfig:
    """Build a ServiceConfig from the environment.

    Raises ConfigurationError when no API key is available, so a missing
    credential stops processing before any chunk is touched.
    """
    load_env()

    api_key = resolve_setting(*API_KEY_VARS)
    if not api_key:
        raise ConfigurationError(
            f"OpenRouter API key missing: set one of {', '.join(API_KEY_VARS)}"
        )

    timeout = resolve_setting(*TIMEOUT_VARS)
    try:
        timeout_value = float(timeout) if timeout else None
    except ValueError:
        raise ConfigurationError(f"Invalid request timeout: {timeout!r}") from None

    return ServiceConfig(
        api_key=api_key,
        base_url=resolve_setting(*BASE_URL_VARS, default=DEFAULT_BASE_URL),
        model=resolve_setting(*MODEL_VARS, default=DEFAULT_MODEL),
        site_url=resolve_setting(*SITE_URL_VARS),
        site_name=resolve_setting(*SITE_NAME_VARS),
        timeout=timeout_value,
    )


def resolve_data_dir() -> Path:
    """Data directory — override with CHATRECALL_DATA_DIR."""
    return Path(resolve_setting(*DATA_DIR_VARS, default=str(DEFAULT_DATA_DIR))).expanduser()


def resolve_cache_backend() -> str:
    backend = resolve_setting(*CACHE_BACKEND_VARS, default="files").lower()
    if backend not in CACHE_BACKENDS:
        raise ConfigurationError(
            f"Unknown cache backend {backend!r}; expected one of {', '.join(CACHE_BACKENDS)}"
        )
    return backend


class DataPaths:
    """File layout under the data directory."""

    def __init__(self, data_dir: Path):
        self.data_dir = data_dir

    @property
    def cache_dir(self) -> Path:
        return self.data_dir / "cache"

    @property
    def sqlite_path(self) -> Path:
        return self.data_dir / "cache.db"

    @property
    def imports_path(self) -> Path:
        return self.data_dir / "imports" / "chat_imports.json"

    @property
    def analysis_path(self) -> Path:
        return self.data_dir / "analysis.json"
